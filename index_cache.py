"""
Version-tagged blob cache for the exported search index.

A single key/value table in a small SQLite file. The search index is
reused only while the stored version tag matches the database version;
any other tag means the index is rebuilt and the cache overwritten.
"""

import json
import os
import sqlite3
from typing import Callable, List, Optional

from search_index import SearchDocument, SearchIndex

SEARCH_INDEX_KEY = 'search-index'
SEARCH_NAMES_KEY = 'search-names'
SEARCH_INDEX_VERSION_KEY = 'search-index-version'


class IndexCache:
    def __init__(self, path: str):
        self.path = path
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.conn = sqlite3.connect(path)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
        """)
        self.conn.commit()

    def get(self, key: str) -> Optional[bytes]:
        row = self.conn.execute("SELECT value FROM cache WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def put(self, key: str, value: bytes) -> None:
        with self.conn:
            self.conn.execute("INSERT OR REPLACE INTO cache (key, value) VALUES (?, ?)", (key, value))

    def close(self) -> None:
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def load_or_build_search_index(cache: IndexCache, version: str,
                               build_documents: Callable[[], List[SearchDocument]]) -> SearchIndex:
    """Import the cached index when its tag equals version, else build and store it"""
    cached_version = cache.get(SEARCH_INDEX_VERSION_KEY)
    cached_index = cache.get(SEARCH_INDEX_KEY)
    cached_names = cache.get(SEARCH_NAMES_KEY)

    if cached_index is not None and cached_names is not None and cached_version is not None \
            and cached_version.decode('utf-8') == version:
        print(f"✅ Search index cache hit (version: {version})")
        return SearchIndex.import_index(cached_index, json.loads(cached_names.decode('utf-8')))

    previous = cached_version.decode('utf-8') if cached_version is not None else None
    print(f"🔍 Search index cache miss (cached: {previous}, current: {version}), building...")

    documents = build_documents()
    index = SearchIndex.build(documents)
    print(f"   Index built with {len(documents):,} entries")

    blob, names = index.export()
    cache.put(SEARCH_INDEX_KEY, blob)
    cache.put(SEARCH_NAMES_KEY, json.dumps({str(cp): name for cp, name in names.items()}).encode('utf-8'))
    cache.put(SEARCH_INDEX_VERSION_KEY, version.encode('utf-8'))
    print(f"✅ Search index cached (version: {version})")

    return index
