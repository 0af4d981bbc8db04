"""
Read-side helpers for a published character database.

Everything here is a point lookup by codepoint or a bounded range
containment lookup; nothing scans a whole table.
"""

import sqlite3
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple


class CharacterInfo(NamedTuple):
    codepoint: int
    name: Optional[str]
    category: Optional[str]
    block: Optional[str]
    block_range: Optional[Tuple[int, int]]
    script: Optional[str]
    bidi_class: Optional[str]
    decomposition_type: Optional[str]
    east_asian_width: Optional[str]
    is_emoji: bool
    is_jis0208: bool
    is_cp932: bool
    aliases: List[Tuple[str, str]]           # (alias, type)
    decomposition: List[int]
    unihan_properties: List[Tuple[str, str]]  # (property, value)
    cldr_keywords: Optional[str]
    cldr_tts: Optional[str]
    variation_sequences: List[Tuple[int, str, str]]  # (selector, description, source)


def format_codepoint(cp: int) -> str:
    """U+XXXX with at least four hex digits"""
    return f"U+{cp:04X}"


def find_block_range(conn: sqlite3.Connection, codepoint: int) -> Optional[Tuple[int, int]]:
    row = conn.execute("""
        SELECT start_cp, end_cp FROM blocks
        WHERE start_cp <= ? AND end_cp >= ?
        ORDER BY start_cp
        LIMIT 1
    """, (codepoint, codepoint)).fetchone()
    return (row[0], row[1]) if row else None


def get_character_info(conn: sqlite3.Connection, codepoint: int) -> Optional[CharacterInfo]:
    """Everything known about one codepoint, or None when it has no row"""
    cursor = conn.cursor()

    cursor.execute("""
        SELECT codepoint, name, category, block, script, bidi_class,
               decomposition_type, east_asian_width, is_emoji, is_jis_0208, is_cp932
        FROM characters WHERE codepoint = ?
    """, (codepoint,))
    row = cursor.fetchone()
    if not row:
        return None

    cursor.execute("SELECT alias, type FROM name_aliases WHERE codepoint = ? ORDER BY rowid", (codepoint,))
    aliases = [(alias, alias_type) for alias, alias_type in cursor.fetchall()]

    cursor.execute("""
        SELECT target_cp FROM decomposition_mappings
        WHERE source_cp = ?
        ORDER BY position
    """, (codepoint,))
    decomposition = [r[0] for r in cursor.fetchall()]

    cursor.execute("SELECT property, value FROM unihan_properties WHERE codepoint = ? ORDER BY rowid", (codepoint,))
    unihan = [(prop, value) for prop, value in cursor.fetchall()]

    cursor.execute("SELECT keywords, tts FROM cldr_annotations WHERE codepoint = ?", (codepoint,))
    cldr = cursor.fetchone()

    cursor.execute("""
        SELECT variation_selector, description, source FROM variation_sequences
        WHERE base_cp = ?
        ORDER BY id
    """, (codepoint,))
    variations = [(selector, description, source) for selector, description, source in cursor.fetchall()]

    return CharacterInfo(
        codepoint=row[0],
        name=row[1],
        category=row[2],
        block=row[3],
        block_range=find_block_range(conn, codepoint),
        script=row[4],
        bidi_class=row[5],
        decomposition_type=row[6],
        east_asian_width=row[7],
        is_emoji=bool(row[8]),
        is_jis0208=bool(row[9]),
        is_cp932=bool(row[10]),
        aliases=aliases,
        decomposition=decomposition,
        unihan_properties=unihan,
        cldr_keywords=cldr[0] if cldr else None,
        cldr_tts=cldr[1] if cldr else None,
        variation_sequences=variations,
    )


def get_characters_info(conn: sqlite3.Connection, codepoints: Iterable[int]) -> Dict[int, CharacterInfo]:
    """Lookups for several codepoints; codepoints without a row are left out"""
    results = {}
    for cp in codepoints:
        info = get_character_info(conn, cp)
        if info:
            results[cp] = info
    return results


def get_display_name(info: CharacterInfo) -> str:
    """Correction alias, then the name, then a control alias, then <Category-XXXX>"""
    for alias, alias_type in info.aliases:
        if alias_type == 'correction':
            return alias

    if info.name:
        return info.name

    for alias, alias_type in info.aliases:
        if alias_type == 'control':
            return alias

    return f"<{info.category}-{info.codepoint:04X}>"
