"""
Parsers for the Unicode Character Database and its companion tables.

Each parser takes the full text of one file (already read) plus the name
of that file, and returns typed records. Comment lines and blank lines are
skipped everywhere; anything else that does not fit the format raises
FormatError naming the file and the line.

Formats handled:
  UnicodeData.txt              CP;Name;Category;CCC;Bidi;Decomposition;...
  NameAliases.txt              CP;Alias;Type
  Blocks/Scripts/EAW/emoji     CP[..CP];Value[;...]  # comment
  JIS0208.TXT, CP932.TXT       0xXXXX  0xYYYY  [0xZZZZ]  # comment
  Unihan_*.txt                 U+HHHH<TAB>kProperty<TAB>value
  CLDR annotations.json        {"annotations": {"annotations": {"😀": {...}}}}
  StandardizedVariants.txt,
  emoji-variation-sequences    CP CP2; description; ...
"""

import json
import os
import re
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple, Union

from ucd_records import (
    MAX_CODEPOINT,
    Block,
    CharacterRecord,
    CldrAnnotation,
    EastAsianWidthRange,
    FormatError,
    IntervalRecord,
    NameAlias,
    ScriptRange,
    UnihanProperty,
    VariationSequence,
)
from ucd_ranges import expand_range

PathLike = Union[str, os.PathLike]

# Comment lines and blank lines
UCD_skip_regexp = re.compile(r"^\s*#|^\s*$")

UCD_codepoint_regexp = re.compile(r"^[0-9A-Fa-f]{1,6}$")
UCD_interval_regexp = re.compile(r"^\s*([0-9A-Fa-f]{1,6})(?:\.\.([0-9A-Fa-f]{1,6}))?\s*;(.*)$")
NameRange_regexp = re.compile(r"^<(.+), (First|Last)>$")
NonName_regexp = re.compile(r"^<[^>]*>$")
Compatibility_regexp = re.compile(r"^<([^>]*)>\s*(.*)$")
UnihanCodepoint_regexp = re.compile(r"^U\+([0-9A-Fa-f]{4,6})$")
LegacyToken_regexp = re.compile(r"^0[xX][0-9A-Fa-f]+$")

ANNOTATION_JOINER = " | "


def read_source(path: PathLike) -> str:
    """Read a source file as UTF-8 text in full"""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def iter_data_lines(text: str):
    """Yield (line_number, line) for every line that is not a comment or blank"""
    for line_number, line in enumerate(text.splitlines(), start=1):
        if UCD_skip_regexp.match(line):
            continue
        yield line_number, line


def strip_comment(line: str) -> str:
    return line.split('#', 1)[0]


def parse_codepoint(token: str, source: str, line_number: int, line: str) -> int:
    token = token.strip()
    if not UCD_codepoint_regexp.match(token):
        raise FormatError(source, line_number, line, f"bad codepoint {token!r}")
    cp = int(token, 16)
    if cp > MAX_CODEPOINT:
        raise FormatError(source, line_number, line, f"codepoint out of range {token!r}")
    return cp


def parse_codepoint_list(field: str, source: str, line_number: int, line: str) -> Tuple[int, ...]:
    return tuple(parse_codepoint(t, source, line_number, line) for t in field.split())


#
#  UnicodeData.txt
#

def parse_decomposition(field: str, source: str, line_number: int, line: str) -> Tuple[Optional[str], Tuple[int, ...]]:
    """
    Parse a decomposition field in one of two forms:
      (a) compatibility: "<tag> HEX HEX ..."  -> (tag, codepoints)
      (b) canonical:     "HEX HEX ..."        -> ("canonical", codepoints)
    An empty codepoint list always gives a None type.
    """
    field = field.strip()
    if not field:
        return None, ()
    m = Compatibility_regexp.match(field)
    if m:
        decomposition_type = m.group(1)
        mapping = parse_codepoint_list(m.group(2), source, line_number, line)
    else:
        decomposition_type = "canonical"
        mapping = parse_codepoint_list(field, source, line_number, line)
    if not mapping:
        return None, ()
    return decomposition_type, mapping


def parse_unicode_data(text: str, source: str = "UnicodeData.txt") -> List[CharacterRecord]:
    """
    Parse UnicodeData.txt into one CharacterRecord per codepoint.

    "<X, First>" / "<X, Last>" pairs are expanded into every codepoint of
    the range, named "X-HEX" and carrying no decomposition. Other bracketed
    names such as "<control>" become None.
    """
    records: List[CharacterRecord] = []
    range_start: Optional[Tuple[int, str, int, str]] = None  # (codepoint, base name, line number, line)

    for line_number, line in iter_data_lines(text):
        fields = line.split(';')
        if len(fields) < 6:
            raise FormatError(source, line_number, line, "expected at least 6 ';' fields")

        cp = parse_codepoint(fields[0], source, line_number, line)
        name = fields[1].strip()
        category = fields[2].strip()
        bidi_class = fields[4].strip()

        range_match = NameRange_regexp.match(name)
        if range_match:
            base_name, edge = range_match.group(1), range_match.group(2)
            if edge == 'First':
                if range_start is not None:
                    raise FormatError(source, line_number, line, "range start while another range is open")
                range_start = (cp, base_name, line_number, line)
                continue
            if range_start is None:
                raise FormatError(source, line_number, line, "range end without a range start")
            first_cp, first_name, _, _ = range_start
            if first_name != base_name:
                raise FormatError(source, line_number, line, f"range end does not match start {first_name!r}")
            if cp < first_cp:
                raise FormatError(source, line_number, line, "range end precedes range start")
            for range_cp, range_name in expand_range(first_cp, cp, base_name):
                records.append(CharacterRecord(range_cp, range_name, category, bidi_class, None, ()))
            range_start = None
            continue

        if range_start is not None:
            raise FormatError(source, line_number, line, "expected range end")

        decomposition_type, mapping = parse_decomposition(fields[5], source, line_number, line)

        if not name or NonName_regexp.match(name):
            name = None

        records.append(CharacterRecord(cp, name, category, bidi_class, decomposition_type, mapping))

    if range_start is not None:
        _, _, line_number, line = range_start
        raise FormatError(source, line_number, line, "range start never closed")

    return records


#
#  NameAliases.txt
#

def parse_name_aliases(text: str, source: str = "NameAliases.txt") -> List[NameAlias]:
    aliases = []
    for line_number, line in iter_data_lines(text):
        fields = strip_comment(line).split(';')
        if len(fields) < 3:
            raise FormatError(source, line_number, line, "expected CP;Alias;Type")
        cp = parse_codepoint(fields[0], source, line_number, line)
        alias = fields[1].strip()
        alias_type = fields[2].strip()
        if not alias or not alias_type:
            raise FormatError(source, line_number, line, "empty alias or type")
        aliases.append(NameAlias(cp, alias, alias_type))
    return aliases


#
#  Codepoint/range -> value files
#

def parse_interval_line(line: str, source: str, line_number: int) -> Tuple[int, int, List[str]]:
    """
    Split "CP[..CP]; field; field  # comment" into (lo, hi, fields).
    Fields are stripped; the comment is dropped.
    """
    m = UCD_interval_regexp.match(strip_comment(line))
    if not m:
        raise FormatError(source, line_number, line, "expected CP[..CP];VALUE")
    lo = parse_codepoint(m.group(1), source, line_number, line)
    hi = parse_codepoint(m.group(2), source, line_number, line) if m.group(2) else lo
    if hi < lo:
        raise FormatError(source, line_number, line, "range end precedes range start")
    fields = [f.strip() for f in m.group(3).split(';')]
    return lo, hi, fields


def parse_interval_records(text: str, source: str, require_range: bool = False) -> List[IntervalRecord]:
    """Generic CP[..CP];VALUE parser; the value is the first field after the codepoints"""
    records = []
    for line_number, line in iter_data_lines(text):
        if require_range and '..' not in strip_comment(line):
            raise FormatError(source, line_number, line, "expected start..end range")
        lo, hi, fields = parse_interval_line(line, source, line_number)
        if not fields[0]:
            raise FormatError(source, line_number, line, "missing value")
        records.append(IntervalRecord(lo, hi, fields[0]))
    return records


def parse_blocks(text: str, source: str = "Blocks.txt") -> List[Block]:
    return parse_interval_records(text, source, require_range=True)


def parse_scripts(text: str, source: str = "Scripts.txt") -> List[ScriptRange]:
    return parse_interval_records(text, source)


def parse_east_asian_width(text: str, source: str = "EastAsianWidth.txt") -> List[EastAsianWidthRange]:
    return parse_interval_records(text, source)


def parse_emoji_data(text: str, source: str = "emoji-data.txt", property_name: str = "Emoji") -> FrozenSet[int]:
    """
    Collect codepoints carrying exactly property_name.

    emoji-data.txt lists several properties with the same line shape
    (Emoji, Emoji_Presentation, Extended_Pictographic, ...); only lines whose
    property field equals property_name are taken.
    """
    codepoints = set()
    for line_number, line in iter_data_lines(text):
        lo, hi, fields = parse_interval_line(line, source, line_number)
        if fields[0] == property_name:
            codepoints.update(range(lo, hi + 1))
    return frozenset(codepoints)


#
#  Legacy double-byte mapping tables
#

def parse_legacy_mapping(text: str, source: str) -> FrozenSet[int]:
    """
    Collect the Unicode side of a vendor mapping table.

    JIS0208.TXT lines are "0xSJIS 0xJIS 0xUNICODE # name", CP932.TXT lines
    are "0xCP932 0xUNICODE # name"; the last hex token is the codepoint.
    A line with a single token is a byte with no mapping and is skipped.
    """
    codepoints = set()
    for line_number, line in iter_data_lines(text):
        tokens = strip_comment(line).split()
        if not tokens:
            continue
        for token in tokens:
            if not LegacyToken_regexp.match(token):
                raise FormatError(source, line_number, line, f"expected 0x-prefixed hex, got {token!r}")
        if len(tokens) < 2:
            continue
        cp = int(tokens[-1], 16)
        if cp > MAX_CODEPOINT:
            raise FormatError(source, line_number, line, "codepoint out of range")
        codepoints.add(cp)
    return frozenset(codepoints)


#
#  Unihan
#

def parse_unihan_text(text: str, source: str) -> List[UnihanProperty]:
    properties = []
    for line_number, line in iter_data_lines(text):
        parts = line.split('\t')
        if len(parts) < 3:
            raise FormatError(source, line_number, line, "expected U+HHHH<TAB>property<TAB>value")
        m = UnihanCodepoint_regexp.match(parts[0])
        if not m:
            raise FormatError(source, line_number, line, f"bad codepoint {parts[0]!r}")
        properties.append(UnihanProperty(int(m.group(1), 16), parts[1], '\t'.join(parts[2:])))
    return properties


def parse_unihan_directory(dir_path: PathLike) -> List[UnihanProperty]:
    """Parse every Unihan*.txt in dir_path, in filename order"""
    dir_path = Path(dir_path)
    properties: List[UnihanProperty] = []
    for path in sorted(dir_path.iterdir()):
        if path.is_file() and path.name.startswith('Unihan') and path.name.endswith('.txt'):
            properties.extend(parse_unihan_text(read_source(path), path.name))
    return properties


#
#  CLDR annotations
#

def parse_cldr_annotations(text: str, source: str = "annotations.json") -> List[CldrAnnotation]:
    """
    Parse a CLDR annotations document.

    Keys are literal characters. Keys made of more than one codepoint (ZWJ
    sequences, flags, keycaps) are dropped; only single codepoints are kept.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        lines = e.doc.splitlines()
        line = lines[e.lineno - 1] if e.lineno <= len(lines) else ""
        raise FormatError(source, e.lineno, line, f"invalid JSON: {e.msg}") from e

    # cldr-json nests the mapping as {"annotations": {"identity": ..., "annotations": {...}}}
    mapping = data
    while isinstance(mapping, dict) and isinstance(mapping.get('annotations'), dict):
        mapping = mapping['annotations']
    if not isinstance(mapping, dict):
        raise FormatError(source, 1, text[:80], "expected an object keyed by characters")

    annotations = []
    for key, value in mapping.items():
        if len(key) != 1:
            continue
        if not isinstance(value, dict):
            raise FormatError(source, 1, key, "annotation entry is not an object")
        keywords = value.get('default') or []
        tts = value.get('tts') or []
        for field, items in (('default', keywords), ('tts', tts)):
            if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
                raise FormatError(source, 1, key, f"'{field}' must be a list of strings")
        annotations.append(CldrAnnotation(
            ord(key),
            ANNOTATION_JOINER.join(keywords) if keywords else None,
            ANNOTATION_JOINER.join(tts) if tts else None,
        ))
    return annotations


#
#  Variation sequences
#

def parse_variation_sequences(text: str, source: str, origin: str) -> List[VariationSequence]:
    """Parse "BASE VS; description; ..." lines; origin tags which list a row came from"""
    sequences = []
    for line_number, line in iter_data_lines(text):
        fields = strip_comment(line).split(';')
        if len(fields) < 2:
            raise FormatError(source, line_number, line, "expected 'CP CP; description;'")
        codepoints = fields[0].split()
        if len(codepoints) != 2:
            raise FormatError(source, line_number, line, "expected exactly two codepoints")
        base = parse_codepoint(codepoints[0], source, line_number, line)
        selector = parse_codepoint(codepoints[1], source, line_number, line)
        sequences.append(VariationSequence(base, selector, fields[1].strip(), origin))
    return sequences
