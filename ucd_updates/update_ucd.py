#!/usr/bin/env python3
"""
UCD Update System - Main Orchestrator
Downloads the latest sources and rebuilds the database in one go
"""

import sys
from pathlib import Path

from build_database import UNICODE_VERSION, UCD_FILES, DatabaseBuilder
from ucd_records import UcdBuildError
from ucd_updates.download_ucd import UcdDownloader


class UcdUpdateOrchestrator:
    def __init__(self, project_root: str, unicode_version: str = UNICODE_VERSION):
        self.project_root = Path(project_root)
        self.ucd_dir = self.project_root / "data" / "ucd"
        self.public_dir = self.project_root / "public"
        self.unicode_version = unicode_version

        self.database_path = self.public_dir / "unicode.db"
        self.search_index_path = self.public_dir / "unicode-search.bin"
        self.search_names_path = self.public_dir / "unicode-search-names.json"

        # Initialize components
        self.downloader = UcdDownloader(str(self.ucd_dir), unicode_version)
        self.builder = DatabaseBuilder(str(self.database_path), unicode_version=unicode_version)

    def update_database(self, skip_download: bool = False) -> bool:
        """
        Main update process

        Args:
            skip_download: Rebuild from the files already in data/ucd
        """
        print("=== UCD Update System ===")
        print("Starting automated database update process...")

        # Step 1: Download sources
        if skip_download:
            print("\n[1/2] Skipping download")
        else:
            print("\n[1/2] Downloading UCD sources...")
            results = self.downloader.download_all()
            if not results.get(UCD_FILES['unicode_data']):
                print("✗ Failed to download UnicodeData.txt")
                return False
            failed = [relative for relative, ok in results.items() if not ok]
            if failed:
                print(f"⚠️  Continuing without: {', '.join(failed)}")

        # Step 2: Build
        print("\n[2/2] Building database...")
        try:
            self.builder.build_database(
                str(self.ucd_dir),
                str(self.search_index_path),
                str(self.search_names_path),
            )
        except (UcdBuildError, OSError) as e:
            print(f"✗ Build failed: {e}")
            return False

        print("\nDatabase update completed successfully!")

        # Show summary
        self.show_update_summary()

        return True

    def show_update_summary(self):
        """Show a summary of the update"""
        print("\n=== Update Summary ===")

        for filepath in (self.database_path, self.search_index_path, self.search_names_path):
            if filepath.exists():
                size_mb = filepath.stat().st_size / (1024 * 1024)
                print(f"  {filepath.name}: {size_mb:.1f} MB")

    def quick_verify(self) -> bool:
        """Quick verification that the sources and artifacts are present"""
        print("=== Quick Verification ===")

        unicode_data = self.ucd_dir / UCD_FILES['unicode_data']
        if not unicode_data.exists():
            print(f"Missing: {unicode_data}")
            return False

        if unicode_data.stat().st_size == 0:
            print(f"Empty file: {unicode_data}")
            return False

        for filepath in (self.database_path, self.search_index_path, self.search_names_path):
            if not filepath.exists():
                print(f"Missing: {filepath}")
                return False
            print(f"Found: {filepath.name}")

        print("All checks passed")
        return True


def main():
    """Command line interface"""
    import argparse

    parser = argparse.ArgumentParser(description='Automated UCD download and database rebuild')
    parser.add_argument('--project-root', default='.',
                        help='Path to project root directory (default: current directory)')
    parser.add_argument('--skip-download', action='store_true',
                        help='Rebuild from the files already downloaded')
    parser.add_argument('--verify-only', action='store_true',
                        help='Only run verification, do not update')

    args = parser.parse_args()

    project_root = Path(args.project_root).resolve()
    if not project_root.is_dir():
        print(f"Error: Project root not found at {project_root}")
        sys.exit(1)

    orchestrator = UcdUpdateOrchestrator(str(project_root))

    # Verify-only mode
    if args.verify_only:
        success = orchestrator.quick_verify()
        sys.exit(0 if success else 1)

    success = orchestrator.update_database(skip_download=args.skip_download)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
