"""
Shared fixtures: a miniature UCD directory with every source file the
builder reads, small enough to reason about row by row.
"""

import sqlite3

import pytest

from build_database import DatabaseBuilder
from ucd_normalize import normalize

UNICODE_DATA = """\
0000;<control>;Cc;0;BN;;;;;N;NULL;;;;
0031;DIGIT ONE;Nd;0;EN;;1;1;1;N;;;;;
0032;DIGIT TWO;Nd;0;EN;;2;2;2;N;;;;;
0041;LATIN CAPITAL LETTER A;Lu;0;L;;;;;N;;;;0061;
00BD;VULGAR FRACTION ONE HALF;No;0;ON;<fraction> 0031 2044 0032;;;1/2;N;FRACTION ONE HALF;;;;
00C0;LATIN CAPITAL LETTER A WITH GRAVE;Lu;0;L;0041 0300;;;;N;LATIN CAPITAL LETTER A GRAVE;;;00E0;
01A2;LATIN CAPITAL LETTER OI;Lu;0;L;;;;;N;LATIN CAPITAL LETTER O I;;;01A3;
0300;COMBINING GRAVE ACCENT;Mn;230;NSM;;;;;N;NON-SPACING GRAVE;;;;
2044;FRACTION SLASH;Sm;0;CS;;;;;N;;;;;
263A;WHITE SMILING FACE;So;0;ON;;;;;N;;;;;
3042;HIRAGANA LETTER A;Lo;0;L;;;;;N;;;;;
4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;
4E05;<CJK Ideograph, Last>;Lo;0;L;;;;;N;;;;;
FE0E;VARIATION SELECTOR-15;Mn;0;NSM;;;;;N;;;;;
FE0F;VARIATION SELECTOR-16;Mn;0;NSM;;;;;N;;;;;
1F365;FISH CAKE WITH SWIRL DESIGN;So;0;ON;;;;;N;;;;;
1F3A3;FISHING POLE AND FISH;So;0;ON;;;;;N;;;;;
1F41F;FISH;So;0;ON;;;;;N;;;;;
"""

NAME_ALIASES = """\
# NameAliases-16.0.0.txt
0000;NULL;control
0000;NUL;abbreviation
01A2;LATIN CAPITAL LETTER GHA;correction
"""

BLOCKS = """\
# Blocks-16.0.0.txt
0000..007F; Basic Latin
0080..00FF; Latin-1 Supplement
0100..017F; Latin Extended-A
0180..024F; Latin Extended-B
0300..036F; Combining Diacritical Marks
2000..206F; General Punctuation
2600..26FF; Miscellaneous Symbols
3040..309F; Hiragana
4E00..9FFF; CJK Unified Ideographs
FE00..FE0F; Variation Selectors
1F300..1F5FF; Miscellaneous Symbols and Pictographs
"""

# The trailing 0041 line overlaps an earlier one and must lose
SCRIPTS = """\
# Scripts-16.0.0.txt
0000..0040    ; Common # Cc  [65] <control-0000>..COMMERCIAL AT
0041          ; Latin # L&       LATIN CAPITAL LETTER A
00BD          ; Common # No       VULGAR FRACTION ONE HALF
00C0          ; Latin
01A2          ; Latin
0300          ; Inherited
2044          ; Common
263A          ; Common
3042          ; Hiragana
4E00..4E05    ; Han
FE0E..FE0F    ; Inherited
1F300..1F5FF  ; Common
0041          ; Greek
"""

EAST_ASIAN_WIDTH = """\
# EastAsianWidth-16.0.0.txt
0000..001F;N   # Cc    [32] <control-0000>..<control-001F>
0020..007E;Na  # Zs     [95] SPACE..TILDE
00BD;A         # No         VULGAR FRACTION ONE HALF
00C0;N
01A2;N
0300;A
2044;N
263A;N
3042;W
4E00..9FFF;W
FE00..FE0F;A
1F300..1F5FF;W
1F41F;N
"""

EMOJI_DATA = """\
# emoji-data.txt
263A          ; Emoji                # E0.6   [1] (☺️)       smiling face
1F365         ; Emoji                # E0.6   [1] (🍥)       fish cake with swirl
1F3A3         ; Emoji                # E0.6   [1] (🎣)       fishing pole
1F41F         ; Emoji                # E0.6   [1] (🐟)       fish
1F41F         ; Emoji_Presentation   # E0.6   [1] (🐟)       fish
2044          ; Extended_Pictographic
"""

JIS0208 = """\
#   Name:             JIS X 0208 (1990) to Unicode
0x82A0\t0x2422\t0x3042\t# HIRAGANA LETTER A
0x88EA\t0x306C\t0x4E00\t# <CJK>
"""

CP932 = """\
#    Name:     cp932 to Unicode table
0x00\t0x0000\t#NULL
0x41\t0x0041\t#LATIN CAPITAL LETTER A
0x80\t\t#UNDEFINED
0x82A0\t0x3042\t#HIRAGANA LETTER A
"""

UNIHAN_READINGS = """\
# Unihan_Readings.txt
U+4E00\tkDefinition\tone; a, an; alone
U+4E00\tkJapaneseKun\tHITOTSU HITO
U+4E00\tkJapaneseOn\tICHI ITSU
U+4E00\tkMandarin\tyī
U+4E01\tkDefinition\tmale adult; robust, vigorous
"""

UNIHAN_IRG = """\
# Unihan_IRGSources.txt
U+4E00\tkTotalStrokes\t1
"""

CLDR_ANNOTATIONS = """\
{
  "annotations": {
    "identity": {"language": "en"},
    "annotations": {
      "🐟": {"default": ["fish", "pisces", "zodiac"], "tts": ["fish"]},
      "🍥": {"default": ["cake", "fish", "pastry", "swirl"], "tts": ["fish cake with swirl"]},
      "☺": {"default": ["face", "outlined", "relaxed", "smile"], "tts": ["smiling face"]},
      "👨‍👩‍👧": {"default": ["family"], "tts": ["family: man, woman, girl"]}
    }
  }
}
"""

STANDARDIZED_VARIANTS = """\
# StandardizedVariants-16.0.0.txt
0030 FE00; short diagonal stroke form; # DIGIT ZERO
263A FE0E; text style; # WHITE SMILING FACE
"""

EMOJI_VARIATION_SEQUENCES = """\
# emoji-variation-sequences.txt
263A FE0E  ; text style;  # (1.1) WHITE SMILING FACE
263A FE0F  ; emoji style; # (1.1) WHITE SMILING FACE
"""

UCD_LAYOUT = {
    'UnicodeData.txt': UNICODE_DATA,
    'NameAliases.txt': NAME_ALIASES,
    'Blocks.txt': BLOCKS,
    'Scripts.txt': SCRIPTS,
    'EastAsianWidth.txt': EAST_ASIAN_WIDTH,
    'StandardizedVariants.txt': STANDARDIZED_VARIANTS,
    'emoji/emoji-data.txt': EMOJI_DATA,
    'emoji/emoji-variation-sequences.txt': EMOJI_VARIATION_SEQUENCES,
    'mappings/JIS0208.TXT': JIS0208,
    'mappings/CP932.TXT': CP932,
    'Unihan/Unihan_Readings.txt': UNIHAN_READINGS,
    'Unihan/Unihan_IRGSources.txt': UNIHAN_IRG,
    'cldr/annotations-en.json': CLDR_ANNOTATIONS,
}


def write_ucd_dir(root, files):
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return root


@pytest.fixture
def ucd_dir(tmp_path_factory):
    """A complete miniature UCD directory"""
    return write_ucd_dir(tmp_path_factory.mktemp("ucd"), UCD_LAYOUT)


@pytest.fixture
def sources(ucd_dir, tmp_path_factory):
    builder = DatabaseBuilder(str(tmp_path_factory.mktemp("out") / "unicode.db"))
    return builder.load_sources(str(ucd_dir), workers=2)


@pytest.fixture
def dataset(sources):
    return normalize(sources)


@pytest.fixture
def published_db(ucd_dir, tmp_path):
    """Build the database from the miniature UCD and open it read-only"""
    output = tmp_path / "public" / "unicode.db"
    builder = DatabaseBuilder(str(output), batch_size=4)
    builder.build_database(str(ucd_dir))
    conn = sqlite3.connect(f"file:{output}?mode=ro", uri=True)
    yield conn
    conn.close()
