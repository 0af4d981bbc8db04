#!/usr/bin/env python3
"""
Unified Database Builder for the Unicode Character Database
Creates a single normalized SQLite database plus a search index

This script runs every building step in one pass:
1. Parses the UCD text files and companion tables (in parallel)
2. Resolves block, script and width for every character
3. Writes all tables in batched transactions to a temporary file
4. Creates the secondary indexes, verifies, VACUUMs and ANALYZEs
5. Swaps the finished file into place atomically
6. Builds and exports the search index alongside the database write
"""

import os
import sqlite3
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import ucd_parser
from search_index import SearchIndex, build_search_documents, discard_staged, publish_staged
from ucd_normalize import normalize
from ucd_records import (
    FormatError,
    PersistenceFailure,
    UcdBuildError,
    UcdSources,
    UnicodeDataset,
)

UNICODE_VERSION = "16.0.0"

# File layout under the UCD directory
UCD_FILES = {
    'unicode_data': 'UnicodeData.txt',
    'name_aliases': 'NameAliases.txt',
    'blocks': 'Blocks.txt',
    'scripts': 'Scripts.txt',
    'east_asian_width': 'EastAsianWidth.txt',
    'standardized_variants': 'StandardizedVariants.txt',
    'emoji_data': 'emoji/emoji-data.txt',
    'emoji_variants': 'emoji/emoji-variation-sequences.txt',
}

MAPPING_FILES = {
    'jis0208': 'mappings/JIS0208.TXT',
    'cp932': 'mappings/CP932.TXT',
}

UNIHAN_DIR = 'Unihan'
CLDR_ANNOTATIONS_FILE = 'cldr/annotations-en.json'

TABLES = [
    'characters',
    'decomposition_mappings',
    'name_aliases',
    'blocks',
    'script_ranges',
    'east_asian_width_ranges',
    'unihan_properties',
    'cldr_annotations',
    'variation_sequences',
    'metadata',
]


class DatabaseBuilder:
    def __init__(self, output_path: str = "public/unicode.db", batch_size: int = 500,
                 unicode_version: str = UNICODE_VERSION):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.output_path = output_path
        self.batch_size = batch_size
        self.unicode_version = unicode_version

        # Ensure output directory exists
        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

    #
    #  Loading
    #

    def load_optional(self, path: str, parse: Callable, empty):
        """Parse a companion file, or report it and return empty when it is missing"""
        if not os.path.exists(path):
            print(f"⚠️  {path} not found, continuing without it")
            return empty
        return parse(path)

    def load_sources(self, ucd_dir: str, workers: int = 4) -> UcdSources:
        """Parse every source file, independent files in parallel"""
        print(f"📖 Loading UCD sources from {ucd_dir}...")

        def path(relative: str) -> str:
            return os.path.join(ucd_dir, relative)

        unicode_data = path(UCD_FILES['unicode_data'])
        if not os.path.exists(unicode_data):
            raise FileNotFoundError(f"UnicodeData.txt not found: {unicode_data}")

        def text_parser(parse, *args):
            return lambda p: parse(ucd_parser.read_source(p), os.path.basename(p), *args)

        tasks = {
            'characters': lambda: text_parser(ucd_parser.parse_unicode_data)(unicode_data),
            'aliases': lambda: self.load_optional(
                path(UCD_FILES['name_aliases']), text_parser(ucd_parser.parse_name_aliases), []),
            'blocks': lambda: self.load_optional(
                path(UCD_FILES['blocks']), text_parser(ucd_parser.parse_blocks), []),
            'scripts': lambda: self.load_optional(
                path(UCD_FILES['scripts']), text_parser(ucd_parser.parse_scripts), []),
            'east_asian_widths': lambda: self.load_optional(
                path(UCD_FILES['east_asian_width']), text_parser(ucd_parser.parse_east_asian_width), []),
            'emoji': lambda: self.load_optional(
                path(UCD_FILES['emoji_data']), text_parser(ucd_parser.parse_emoji_data), frozenset()),
            'jis0208': lambda: self.load_optional(
                path(MAPPING_FILES['jis0208']), text_parser(ucd_parser.parse_legacy_mapping), frozenset()),
            'cp932': lambda: self.load_optional(
                path(MAPPING_FILES['cp932']), text_parser(ucd_parser.parse_legacy_mapping), frozenset()),
            'unihan': lambda: self.load_optional(
                path(UNIHAN_DIR), ucd_parser.parse_unihan_directory, []),
            'cldr_annotations': lambda: self.load_optional(
                path(CLDR_ANNOTATIONS_FILE), text_parser(ucd_parser.parse_cldr_annotations), []),
            'standardized_variants': lambda: self.load_optional(
                path(UCD_FILES['standardized_variants']),
                text_parser(ucd_parser.parse_variation_sequences, 'standardized'), []),
            'emoji_variants': lambda: self.load_optional(
                path(UCD_FILES['emoji_variants']),
                text_parser(ucd_parser.parse_variation_sequences, 'emoji'), []),
        }

        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            futures = {name: pool.submit(task) for name, task in tasks.items()}
            # Nothing is resolved until every parser has finished
            wait(futures.values())
            results = {name: future.result() for name, future in futures.items()}

        sources = UcdSources(**results)

        print(f"   Characters: {len(sources.characters):,}")
        print(f"   Name aliases: {len(sources.aliases):,}")
        print(f"   Blocks: {len(sources.blocks):,}")
        print(f"   Script ranges: {len(sources.scripts):,}")
        print(f"   East Asian width ranges: {len(sources.east_asian_widths):,}")
        print(f"   Emoji: {len(sources.emoji):,} codepoints")
        print(f"   JIS X 0208: {len(sources.jis0208):,} codepoints")
        print(f"   CP932: {len(sources.cp932):,} codepoints")
        print(f"   Unihan properties: {len(sources.unihan):,}")
        print(f"   CLDR annotations: {len(sources.cldr_annotations):,}")
        print(f"   Standardized variants: {len(sources.standardized_variants):,}")
        print(f"   Emoji variation sequences: {len(sources.emoji_variants):,}")

        return sources

    def report_inconsistencies(self, dataset: UnicodeDataset) -> None:
        if not dataset.inconsistencies:
            return

        counts: Dict[str, int] = {}
        for note in dataset.inconsistencies:
            counts[note.kind] = counts.get(note.kind, 0) + 1
        for kind, count in sorted(counts.items()):
            print(f"⚠️  {count:,} {kind} rows reference codepoints missing from UnicodeData.txt")
        for note in dataset.inconsistencies[:5]:
            print(f"   {note.kind}: U+{note.codepoint:04X} -> U+{note.referenced_codepoint:04X}")

    #
    #  Schema
    #

    def create_database_schema(self, conn: sqlite3.Connection) -> None:
        """Create all tables, dropping any that already exist"""
        cursor = conn.cursor()

        print("📋 Creating database schema...")

        for table in TABLES:
            cursor.execute(f"DROP TABLE IF EXISTS {table}")

        cursor.execute("""
            CREATE TABLE characters (
                codepoint INTEGER PRIMARY KEY,
                name TEXT,
                category TEXT NOT NULL,
                block TEXT,
                script TEXT,
                bidi_class TEXT,
                decomposition_type TEXT,      -- NULL when there is no decomposition
                east_asian_width TEXT,
                is_emoji INTEGER DEFAULT 0,
                is_jis_0208 INTEGER DEFAULT 0,
                is_cp932 INTEGER DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE decomposition_mappings (
                source_cp INTEGER NOT NULL,
                target_cp INTEGER NOT NULL,
                position INTEGER NOT NULL,    -- 0..n-1 in mapping order
                PRIMARY KEY (source_cp, position)
            )
        """)

        cursor.execute("""
            CREATE TABLE name_aliases (
                codepoint INTEGER NOT NULL,
                alias TEXT NOT NULL,
                type TEXT NOT NULL,           -- correction, control, alternate, figment, abbreviation
                PRIMARY KEY (codepoint, type, alias)
            )
        """)

        cursor.execute("""
            CREATE TABLE blocks (
                start_cp INTEGER NOT NULL,
                end_cp INTEGER NOT NULL,
                name TEXT NOT NULL,
                PRIMARY KEY (start_cp, end_cp)
            )
        """)

        # id keeps source order, which decides overlaps
        for table in ('script_ranges', 'east_asian_width_ranges'):
            cursor.execute(f"""
                CREATE TABLE {table} (
                    id INTEGER PRIMARY KEY,
                    start_cp INTEGER NOT NULL,
                    end_cp INTEGER NOT NULL,
                    value TEXT NOT NULL
                )
            """)

        cursor.execute("""
            CREATE TABLE unihan_properties (
                codepoint INTEGER NOT NULL,
                property TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (codepoint, property)
            )
        """)

        cursor.execute("""
            CREATE TABLE cldr_annotations (
                codepoint INTEGER PRIMARY KEY,
                keywords TEXT,
                tts TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE variation_sequences (
                id INTEGER PRIMARY KEY,
                base_cp INTEGER NOT NULL,
                variation_selector INTEGER NOT NULL,
                description TEXT NOT NULL,
                source TEXT NOT NULL,         -- standardized or emoji
                UNIQUE (base_cp, variation_selector, source, description)
            )
        """)

        cursor.execute("""
            CREATE TABLE metadata (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        conn.commit()

    def create_indexes(self, conn: sqlite3.Connection) -> None:
        print("📋 Creating indexes...")
        with conn:
            conn.execute("CREATE INDEX idx_characters_name ON characters(name)")
            conn.execute("CREATE INDEX idx_characters_block ON characters(block)")
            conn.execute("CREATE INDEX idx_decomp_source ON decomposition_mappings(source_cp)")
            conn.execute("CREATE INDEX idx_decomp_target ON decomposition_mappings(target_cp)")
            conn.execute("CREATE INDEX idx_unihan_codepoint ON unihan_properties(codepoint)")
            conn.execute("CREATE INDEX idx_variation_base ON variation_sequences(base_cp)")

    #
    #  Population
    #

    def insert_batches(self, conn: sqlite3.Connection, sql: str, rows: Sequence[Tuple], label: str) -> int:
        """Insert rows in batches of batch_size, one transaction per batch"""
        inserted = 0
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            with conn:
                conn.executemany(sql, batch)
            inserted += len(batch)
        print(f"   {label}: {inserted:,} rows")
        return inserted

    def populate_characters(self, conn: sqlite3.Connection, dataset: UnicodeDataset) -> None:
        print(f"📝 Populating {len(dataset.characters):,} characters...")
        rows = [
            (c.codepoint, c.name, c.general_category, c.block_name, c.script_name, c.bidi_class,
             c.decomposition_type, c.east_asian_width, int(c.is_emoji), int(c.is_jis0208), int(c.is_cp932))
            for c in dataset.characters
        ]
        self.insert_batches(conn, """
            INSERT INTO characters (codepoint, name, category, block, script, bidi_class,
                                    decomposition_type, east_asian_width, is_emoji, is_jis_0208, is_cp932)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, rows, "characters")

        rows = [(e.source_codepoint, e.target_codepoint, e.position) for e in dataset.decompositions]
        self.insert_batches(conn, """
            INSERT INTO decomposition_mappings (source_cp, target_cp, position) VALUES (?, ?, ?)
        """, rows, "decomposition_mappings")

        rows = [(a.codepoint, a.alias, a.alias_type) for a in dataset.aliases]
        self.insert_batches(conn, """
            INSERT OR IGNORE INTO name_aliases (codepoint, alias, type) VALUES (?, ?, ?)
        """, rows, "name_aliases")

    def populate_ranges(self, conn: sqlite3.Connection, dataset: UnicodeDataset) -> None:
        print("📝 Populating range tables...")
        self.insert_batches(conn, "INSERT INTO blocks (start_cp, end_cp, name) VALUES (?, ?, ?)",
                            [tuple(b) for b in dataset.blocks], "blocks")
        self.insert_batches(conn, "INSERT INTO script_ranges (start_cp, end_cp, value) VALUES (?, ?, ?)",
                            [tuple(s) for s in dataset.scripts], "script_ranges")
        self.insert_batches(conn, "INSERT INTO east_asian_width_ranges (start_cp, end_cp, value) VALUES (?, ?, ?)",
                            [tuple(w) for w in dataset.east_asian_widths], "east_asian_width_ranges")

    def populate_supplementary(self, conn: sqlite3.Connection, dataset: UnicodeDataset) -> None:
        print("📝 Populating Unihan, CLDR and variation sequences...")
        self.insert_batches(conn, """
            INSERT OR IGNORE INTO unihan_properties (codepoint, property, value) VALUES (?, ?, ?)
        """, [tuple(p) for p in dataset.unihan], "unihan_properties")

        self.insert_batches(conn, """
            INSERT OR IGNORE INTO cldr_annotations (codepoint, keywords, tts) VALUES (?, ?, ?)
        """, [tuple(a) for a in dataset.cldr_annotations], "cldr_annotations")

        rows = [(v.base_codepoint, v.variation_selector, v.description, v.source)
                for v in dataset.variation_sequences]
        self.insert_batches(conn, """
            INSERT OR IGNORE INTO variation_sequences (base_cp, variation_selector, description, source)
            VALUES (?, ?, ?, ?)
        """, rows, "variation_sequences")

    def populate_metadata(self, conn: sqlite3.Connection) -> None:
        with conn:
            conn.executemany("INSERT INTO metadata (key, value) VALUES (?, ?)", [
                ('unicode_version', self.unicode_version),
                ('built_at', datetime.now().strftime('%Y-%m-%d %H:%M:%S')),
            ])

    #
    #  Verification
    #

    def expected_counts(self, dataset: UnicodeDataset) -> Dict[str, int]:
        return {
            'characters': len(dataset.characters),
            'decomposition_mappings': len(dataset.decompositions),
            'name_aliases': len(dataset.aliases),
            'blocks': len(dataset.blocks),
            'script_ranges': len(dataset.scripts),
            'east_asian_width_ranges': len(dataset.east_asian_widths),
            'unihan_properties': len(dataset.unihan),
            'cldr_annotations': len(dataset.cldr_annotations),
            'variation_sequences': len(dataset.variation_sequences),
        }

    def verify_database(self, conn: sqlite3.Connection, dataset: UnicodeDataset) -> None:
        """Check row counts against the dataset and run an integrity check"""
        cursor = conn.cursor()

        print("🔍 Verifying database...")

        for table, expected in self.expected_counts(dataset).items():
            cursor.execute(f"SELECT COUNT(*) FROM {table}")
            count = cursor.fetchone()[0]
            print(f"   {table}: {count:,}")
            if count != expected:
                raise PersistenceFailure(f"{table} has {count:,} rows, expected {expected:,}")

        check_cursor = conn.execute("PRAGMA integrity_check")
        result = check_cursor.fetchone()[0]
        if result != "ok":
            raise PersistenceFailure(f"Database integrity check failed: {result}")

        # Sample lookup, as a consumer would do it
        cursor.execute("SELECT name FROM characters WHERE codepoint = ?", (0x41,))
        sample = cursor.fetchone()
        if sample:
            print(f"   Lookup test (U+0041): {sample[0]}")

    #
    #  Writer
    #

    def stage_database(self, dataset: UnicodeDataset) -> str:
        """
        Write and verify the dataset in a temporary file beside the output.

        Returns the temporary path. On any failure the file is removed and
        whatever was published before stays untouched.
        """
        output_dir = os.path.dirname(os.path.abspath(self.output_path))
        fd, temp_path = tempfile.mkstemp(prefix=".unicode-", suffix=".db.tmp", dir=output_dir)
        os.close(fd)

        conn = None
        finished = False
        try:
            conn = sqlite3.connect(temp_path)
            conn.execute("PRAGMA synchronous = NORMAL;")

            self.create_database_schema(conn)
            self.populate_characters(conn, dataset)
            self.populate_ranges(conn, dataset)
            self.populate_supplementary(conn, dataset)
            self.populate_metadata(conn)
            self.create_indexes(conn)

            self.verify_database(conn, dataset)

            print("🔧 Optimizing database...")
            conn.execute("VACUUM")
            conn.execute("ANALYZE")
            conn.commit()
            conn.close()
            conn = None
            finished = True
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Database write failed: {e}") from e
        finally:
            if conn is not None:
                conn.close()
            if not finished:
                discard_staged([(temp_path, self.output_path)])

        return temp_path

    def publish(self, staged: List[Tuple[str, str]]) -> None:
        publish_staged(staged)
        size_mb = os.path.getsize(self.output_path) / (1024 * 1024)
        print(f"📊 Final database size: {size_mb:.2f} MB")

    def write_database(self, dataset: UnicodeDataset) -> str:
        """Write the dataset and swap it into place"""
        temp_path = self.stage_database(dataset)
        self.publish([(temp_path, self.output_path)])
        return self.output_path

    #
    #  Search index
    #

    def build_search_index(self, dataset: UnicodeDataset) -> SearchIndex:
        documents = build_search_documents(dataset)
        index = SearchIndex.build(documents)
        print(f"🔍 Search index built with {len(documents):,} entries")
        return index

    #
    #  Pipeline
    #

    def build_database(self, ucd_dir: str = "data/ucd", search_index_path: Optional[str] = None,
                       search_names_path: Optional[str] = None, workers: int = 4) -> UnicodeDataset:
        """Main method to build the complete database and search index"""
        print(f"🚀 Building database: {self.output_path}")
        print(f"📅 Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        sources = self.load_sources(ucd_dir, workers)

        print("🔧 Resolving blocks, scripts and widths...")
        dataset = normalize(sources)
        self.report_inconsistencies(dataset)

        want_search = search_index_path is not None and search_names_path is not None
        with ThreadPoolExecutor(max_workers=1) as pool:
            # The index only reads the dataset, so it can build during the write
            search_future = pool.submit(self.build_search_index, dataset) if want_search else None
            staged = [(self.stage_database(dataset), self.output_path)]
            try:
                # Nothing is published until every artifact is staged
                if search_future is not None:
                    index = search_future.result()
                    try:
                        staged = index.stage(search_index_path, search_names_path) + staged
                    finally:
                        index.close()
                self.publish(staged)
            finally:
                discard_staged(staged)

        if want_search:
            print(f"✅ Search index saved: {search_index_path}")

        print(f"✅ Database built successfully: {self.output_path}")
        print(f"📅 Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

        return dataset


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Build the Unicode character database and search index")
    parser.add_argument("--ucd-dir", default="data/ucd",
                        help="Directory holding the downloaded UCD files")
    parser.add_argument("--output", default="public/unicode.db",
                        help="Output database path")
    parser.add_argument("--search-index", default="public/unicode-search.bin",
                        help="Output path of the serialized search index")
    parser.add_argument("--search-names", default="public/unicode-search-names.json",
                        help="Output path of the search name map")
    parser.add_argument("--batch-size", type=int, default=500,
                        help="Rows per insert transaction")
    parser.add_argument("--workers", type=int, default=4,
                        help="Parser threads")
    parser.add_argument("--unicode-version", default=UNICODE_VERSION,
                        help="Unicode version recorded in the metadata table")

    args = parser.parse_args()

    try:
        builder = DatabaseBuilder(args.output, batch_size=args.batch_size, unicode_version=args.unicode_version)
        builder.build_database(args.ucd_dir, args.search_index, args.search_names, workers=args.workers)
    except FormatError as e:
        print(f"\n❌ Parse error: {e}")
        sys.exit(1)
    except (UcdBuildError, OSError, ValueError) as e:
        print(f"\n❌ Database build failed: {e}")
        sys.exit(1)

    print("\n🎉 Database ready!")
    print(f"   Location: {args.output}")
    print(f"   Search index: {args.search_index}")


if __name__ == "__main__":
    main()
