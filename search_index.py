#!/usr/bin/env python3
"""
Character Search Index
Builds a substring search index over character names, Japanese readings,
definitions and CLDR keywords, and ranks raw hits by how well the
character's name matches the query.

The index is an in-memory SQLite database with an FTS5 table using the
trigram tokenizer, so any substring of three or more characters is an
index lookup. Shorter queries fall back to a case-folded scan of the
same table.
"""

import errno
import json
import os
import sqlite3
import tempfile
from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from ucd_records import UnicodeDataset

# Unihan properties that feed the search text
SEARCH_PROPERTIES = ('kJapaneseKun', 'kJapaneseOn', 'kDefinition')

# Raw hits fetched per requested result; the FTS index is not relevance-aware
OVERFETCH_FACTOR = 3

# Shortest query the trigram tokenizer can MATCH
TRIGRAM_LENGTH = 3


class SearchDocument(NamedTuple):
    """One searchable entry: the codepoint, its name for ranking, and the full text"""
    codepoint: int
    name: str
    text: str


def assemble_documents(names: Dict[int, str],
                       unihan_values: Dict[int, List[str]],
                       cldr_keywords: Dict[int, str]) -> List[SearchDocument]:
    """
    Build one document per codepoint that has a name, a reading or
    definition, or CLDR keywords. The text is the available fields joined
    with spaces, in that order. Documents come back sorted by codepoint.
    """
    codepoints = set(cp for cp, name in names.items() if name)
    codepoints.update(cp for cp, values in unihan_values.items() if values)
    codepoints.update(cp for cp, keywords in cldr_keywords.items() if keywords)

    documents = []
    for cp in sorted(codepoints):
        name = names.get(cp) or ''
        values = unihan_values.get(cp) or []
        parts = [name, ' '.join(values), cldr_keywords.get(cp) or '']
        text = ' '.join(part for part in parts if part)
        if text:
            documents.append(SearchDocument(cp, name, text))
    return documents


def build_search_documents(dataset: UnicodeDataset) -> List[SearchDocument]:
    """Search documents straight from the normalized dataset"""
    names = {c.codepoint: c.name for c in dataset.characters if c.name}

    unihan_values: Dict[int, List[str]] = defaultdict(list)
    for prop in dataset.unihan:
        if prop.property in SEARCH_PROPERTIES:
            unihan_values[prop.codepoint].append(prop.value)

    cldr_keywords = {a.codepoint: a.keywords for a in dataset.cldr_annotations if a.keywords}

    return assemble_documents(names, unihan_values, cldr_keywords)


def load_search_documents(conn: sqlite3.Connection) -> List[SearchDocument]:
    """Search documents from a published database"""
    cursor = conn.cursor()

    cursor.execute("SELECT codepoint, name FROM characters WHERE name IS NOT NULL")
    names = dict(cursor.fetchall())

    unihan_values: Dict[int, List[str]] = defaultdict(list)
    placeholders = ', '.join('?' for _ in SEARCH_PROPERTIES)
    # rowid order is insertion order, which matches the dataset order
    cursor.execute(f"""
        SELECT codepoint, value FROM unihan_properties
        WHERE property IN ({placeholders})
        ORDER BY rowid
    """, SEARCH_PROPERTIES)
    for codepoint, value in cursor.fetchall():
        unihan_values[codepoint].append(value)

    cursor.execute("SELECT codepoint, keywords FROM cldr_annotations WHERE keywords IS NOT NULL")
    cldr_keywords = dict(cursor.fetchall())

    return assemble_documents(names, unihan_values, cldr_keywords)


#
#  Ranking
#

def is_word_boundary(text: str, index: int) -> bool:
    """True outside the string or on a space or hyphen"""
    if index < 0 or index >= len(text):
        return True
    return text[index] in (' ', '-')


def calculate_score(name: Optional[str], query: str) -> int:
    """
    Score how well a character name matches the query.

    1000 for an exact (case-insensitive) match. Otherwise the best single
    occurrence of the query in the name:
        600  whole leading word      "FISH CAKE"
        400  whole interior word     "POLE AND FISH"
        200  leading prefix          "FISHEYE"
        150  starts an interior word "CAT-FISHING"
         50  plain substring         "CATFISH"
    Shorter names get up to 100 extra points.
    """
    if not name:
        return 0

    upper_query = query.upper()
    upper_name = name.upper()

    match_score = 0
    if upper_name == upper_query:
        match_score = 1000
    else:
        start = 0
        while start <= len(upper_name) - len(upper_query):
            found = upper_name.find(upper_query, start)
            if found == -1:
                break

            before = is_word_boundary(upper_name, found - 1)
            after = is_word_boundary(upper_name, found + len(upper_query))

            if found == 0 and after:
                score = 600
            elif before and after:
                score = 400
            elif found == 0:
                score = 200
            elif before:
                score = 150
            else:
                score = 50

            match_score = max(match_score, score)
            start = found + 1

    length_bonus = max(0, 100 - len(name))
    return match_score + length_bonus


def rank_results(codepoints: Iterable[int], query: str, names: Dict[int, str]) -> List[int]:
    """Order codepoints by descending score, ties by ascending codepoint"""
    scored = [(calculate_score(names.get(cp), query), cp) for cp in codepoints]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [cp for _, cp in scored]


#
#  Staged files
#

def write_temp_file(path: str, data: bytes) -> str:
    """Write data to a temporary file in path's directory and return its name"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
    except OSError:
        os.remove(temp_path)
        raise
    return temp_path


def discard_staged(staged: List[Tuple[str, str]]) -> None:
    for temp_path, _ in staged:
        if os.path.exists(temp_path):
            os.remove(temp_path)


def publish_staged(staged: List[Tuple[str, str]]) -> None:
    """Move every staged file onto its target; leftovers are removed on failure"""
    try:
        # Fail before the first rename rather than halfway through
        for _, final_path in staged:
            if os.path.isdir(final_path):
                raise IsADirectoryError(errno.EISDIR, "Cannot replace a directory", final_path)
        for temp_path, final_path in staged:
            os.replace(temp_path, final_path)
    finally:
        discard_staged(staged)


#
#  Index
#

class SearchIndex:
    def __init__(self, conn: sqlite3.Connection, names: Dict[int, str]):
        self.conn = conn
        self.names = names

    @staticmethod
    def _connect() -> sqlite3.Connection:
        # Built in a worker thread, queried from the main thread
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        # SQLite's own lower() only folds ASCII
        conn.create_function("fold_case", 1, str.lower, deterministic=True)
        return conn

    @classmethod
    def build(cls, documents: Iterable[SearchDocument]) -> 'SearchIndex':
        """Index every document; names are kept aside for ranking only"""
        conn = cls._connect()
        conn.execute("""
            CREATE VIRTUAL TABLE search_fts USING fts5(
                text,
                tokenize = 'trigram'
            )
        """)

        names: Dict[int, str] = {}
        rows = []
        for doc in documents:
            rows.append((doc.codepoint, doc.text))
            if doc.name:
                names[doc.codepoint] = doc.name

        with conn:
            conn.executemany("INSERT INTO search_fts(rowid, text) VALUES (?, ?)", rows)
            conn.execute("INSERT INTO search_fts(search_fts) VALUES ('optimize')")

        return cls(conn, names)

    def __len__(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM search_fts").fetchone()[0]

    def lookup(self, query: str, limit: int) -> List[int]:
        """Raw substring hits in codepoint order, not ranked"""
        query = query.strip()
        if not query or limit <= 0:
            return []

        if len(query) >= TRIGRAM_LENGTH:
            phrase = '"' + query.replace('"', '""') + '"'
            cursor = self.conn.execute(
                "SELECT rowid FROM search_fts WHERE search_fts MATCH ? ORDER BY rowid LIMIT ?",
                (phrase, limit),
            )
        else:
            cursor = self.conn.execute(
                "SELECT rowid FROM search_fts WHERE instr(fold_case(text), ?) > 0 ORDER BY rowid LIMIT ?",
                (query.lower(), limit),
            )
        return [row[0] for row in cursor.fetchall()]

    def rank(self, codepoints: Iterable[int], query: str) -> List[int]:
        return rank_results(codepoints, query, self.names)

    def search(self, query: str, limit: int = 100) -> List[int]:
        """Ranked codepoints for a free-text query"""
        query = query.strip()
        if not query:
            return []
        raw = self.lookup(query, limit * OVERFETCH_FACTOR)
        return self.rank(raw, query)[:limit]

    def export(self) -> Tuple[bytes, Dict[int, str]]:
        """The serialized index database and a copy of the name map"""
        return self.conn.serialize(), dict(self.names)

    @classmethod
    def import_index(cls, blob: bytes, names: Dict[int, str]) -> 'SearchIndex':
        conn = cls._connect()
        conn.deserialize(blob)
        return cls(conn, {int(cp): name for cp, name in names.items()})

    def stage(self, index_path: str, names_path: str) -> List[Tuple[str, str]]:
        """
        Write the index blob and the names JSON to temporary files beside
        their targets. Returns (temp, final) pairs for publish_staged.
        """
        blob, names = self.export()
        names_json = json.dumps({str(cp): name for cp, name in sorted(names.items())},
                                ensure_ascii=False, separators=(',', ':'))

        staged: List[Tuple[str, str]] = []
        try:
            staged.append((write_temp_file(index_path, blob), index_path))
            staged.append((write_temp_file(names_path, names_json.encode('utf-8')), names_path))
        except OSError:
            discard_staged(staged)
            raise
        return staged

    def save(self, index_path: str, names_path: str) -> None:
        """Write the index blob and the names JSON side by side, both or neither"""
        publish_staged(self.stage(index_path, names_path))

    @classmethod
    def load(cls, index_path: str, names_path: str) -> 'SearchIndex':
        with open(index_path, 'rb') as f:
            blob = f.read()
        with open(names_path, 'r', encoding='utf-8') as f:
            names = json.load(f)
        return cls.import_index(blob, names)

    def close(self) -> None:
        self.conn.close()
