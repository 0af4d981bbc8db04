#!/usr/bin/env python3
"""
UCD Update System - Source Downloader
Downloads the Unicode Character Database files, the JIS X 0208 and CP932
mapping tables, Unihan.zip and the CLDR English annotations
"""

import requests
import sys
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from build_database import (
    CLDR_ANNOTATIONS_FILE,
    MAPPING_FILES,
    UCD_FILES,
    UNICODE_VERSION,
    UNIHAN_DIR,
)

UCD_BASE_URL = "https://www.unicode.org/Public/{version}/ucd"
MAPPINGS_BASE_URL = "https://www.unicode.org/Public/MAPPINGS"
CLDR_ANNOTATIONS_URL = ("https://raw.githubusercontent.com/unicode-org/cldr-json/main/cldr-json/"
                        "cldr-annotations-full/annotations/en/annotations.json")

# Mapping tables live outside the versioned UCD tree
MAPPING_URLS = {
    MAPPING_FILES['jis0208']: f"{MAPPINGS_BASE_URL}/OBSOLETE/EASTASIA/JIS/JIS0208.TXT",
    MAPPING_FILES['cp932']: f"{MAPPINGS_BASE_URL}/VENDORS/MICSFT/WINDOWS/CP932.TXT",
}

UNIHAN_ZIP = 'Unihan.zip'


class UcdDownloader:
    def __init__(self, output_dir: str = "data/ucd", unicode_version: str = UNICODE_VERSION):
        self.output_dir = Path(output_dir)
        self.unicode_version = unicode_version
        self.base_url = UCD_BASE_URL.format(version=unicode_version)

        # Ensure directories exist
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def file_targets(self) -> List[Tuple[str, str]]:
        """(url, relative output path) for every plain text source"""
        targets = [(f"{self.base_url}/{relative}", relative) for relative in UCD_FILES.values()]
        targets.extend((url, relative) for relative, url in MAPPING_URLS.items())
        targets.append((CLDR_ANNOTATIONS_URL, CLDR_ANNOTATIONS_FILE))
        return targets

    def download_file(self, url: str, relative: str) -> bool:
        """Download a file from URL to a path under the output directory"""
        if not url:
            return False

        file_path = self.output_dir / relative
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            print(f"Downloading {relative}...")

            # Stream download for large files
            response = requests.get(url, stream=True, timeout=60)
            response.raise_for_status()

            total_size = int(response.headers.get('content-length', 0))
            downloaded = 0

            with open(file_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)

                        # Progress indicator
                        if total_size > 0:
                            percent = (downloaded / total_size) * 100
                            print(f"\rProgress: {percent:.1f}%", end='', flush=True)

            print(f"\n  Saved to {file_path} ({downloaded:,} bytes)")
            return True

        except requests.RequestException as e:
            print(f"\n❌ Error downloading {relative}: {e}")
            return False
        except IOError as e:
            print(f"\n❌ Error saving {relative}: {e}")
            return False

    def extract_zip(self, zip_path: Path, target_dir: Path) -> Optional[Path]:
        """Extract the .txt members of a ZIP file into target_dir"""
        try:
            print(f"Extracting {zip_path.name}...")
            target_dir.mkdir(parents=True, exist_ok=True)

            with zipfile.ZipFile(zip_path, 'r') as zip_ref:
                txt_files = [f for f in zip_ref.namelist() if f.endswith('.txt')]

                if not txt_files:
                    print(f"No text files found in {zip_path.name}")
                    return None

                for member in txt_files:
                    # Flatten any directory structure inside the archive
                    target = target_dir / Path(member).name
                    with zip_ref.open(member) as source, open(target, 'wb') as out:
                        out.write(source.read())

            print(f"  Extracted {len(txt_files)} files to {target_dir}")
            return target_dir

        except zipfile.BadZipFile as e:
            print(f"❌ Error: {zip_path.name} is not a valid ZIP file: {e}")
            return None
        except IOError as e:
            print(f"❌ Error extracting {zip_path.name}: {e}")
            return None

    def download_unihan(self) -> bool:
        if not self.download_file(f"{self.base_url}/{UNIHAN_ZIP}", UNIHAN_ZIP):
            return False
        return self.extract_zip(self.output_dir / UNIHAN_ZIP, self.output_dir / UNIHAN_DIR) is not None

    def cleanup_downloads(self):
        """Remove the downloaded ZIP once it has been extracted"""
        try:
            for zip_file in self.output_dir.glob("*.zip"):
                zip_file.unlink()
                print(f"Cleaned up: {zip_file.name}")
        except OSError as e:
            print(f"⚠️  Could not clean up downloads: {e}")

    def download_all(self, cleanup: bool = True) -> Dict[str, bool]:
        """
        Main method to download every source file
        Returns: {relative path: success}
        """
        print("=== UCD Update System ===")
        print(f"Downloading UCD files (Unicode {self.unicode_version})...\n")

        results: Dict[str, bool] = {}
        for url, relative in self.file_targets():
            results[relative] = self.download_file(url, relative)

        print("\nDownloading Unihan.zip...")
        results[UNIHAN_DIR] = self.download_unihan()

        # Cleanup if requested
        if cleanup:
            self.cleanup_downloads()

        # Summary
        print("\n=== Download Summary ===")
        print(f"Files saved to: {self.output_dir}")
        for relative, ok in results.items():
            print(f"  {'✓' if ok else '✗'} {relative}")

        return results


def main():
    """Command line interface"""
    import argparse

    parser = argparse.ArgumentParser(description='Download the Unicode Character Database sources')
    parser.add_argument('--output-dir', default='data/ucd',
                        help='Directory to save the UCD files to (default: data/ucd)')
    parser.add_argument('--unicode-version', default=UNICODE_VERSION,
                        help=f'Unicode version to download (default: {UNICODE_VERSION})')
    parser.add_argument('--no-cleanup', action='store_true',
                        help='Keep Unihan.zip after extraction')

    args = parser.parse_args()

    downloader = UcdDownloader(args.output_dir, args.unicode_version)
    results = downloader.download_all(cleanup=not args.no_cleanup)

    # Exit with appropriate code
    downloaded_count = sum(1 for ok in results.values() if ok)

    if downloaded_count == len(results):
        print("\n✓ All files downloaded successfully!")
        sys.exit(0)
    elif downloaded_count >= 1:
        print("\n⚠ Partial success - some files failed to download")
        sys.exit(1)
    else:
        print("\n✗ Failed to download UCD files")
        sys.exit(2)


if __name__ == "__main__":
    main()
