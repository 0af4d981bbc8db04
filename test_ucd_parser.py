#!/usr/bin/env python3
"""
Unit tests for the UCD line-format parsers.
Each parser is fed literal text, no files involved.
"""

import pytest

from ucd_parser import (
    parse_blocks,
    parse_cldr_annotations,
    parse_decomposition,
    parse_east_asian_width,
    parse_emoji_data,
    parse_legacy_mapping,
    parse_name_aliases,
    parse_scripts,
    parse_unicode_data,
    parse_unihan_directory,
    parse_unihan_text,
    parse_variation_sequences,
)
from ucd_records import FormatError, IntervalRecord, NameAlias, VariationSequence

CJK_RANGE = """\
4DFF;HEXAGRAM FOR AFTER COMPLETION;So;0;ON;;;;;N;;;;;
4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;
4E03;<CJK Ideograph, Last>;Lo;0;L;;;;;N;;;;;
A000;YI SYLLABLE IT;Lo;0;L;;;;;N;;;;;
"""


def test_first_last_range_is_expanded():
    """Every codepoint in a First/Last range gets a generated name"""
    records = parse_unicode_data(CJK_RANGE)

    assert [r.codepoint for r in records] == [0x4DFF, 0x4E00, 0x4E01, 0x4E02, 0x4E03, 0xA000]
    assert records[1].name == "CJK Ideograph-4E00"
    assert records[4].name == "CJK Ideograph-4E03"
    for r in records[1:5]:
        assert r.general_category == "Lo"
        assert r.bidi_class == "L"
        assert r.decomposition_type is None
        assert r.decomposition == ()


def test_generated_names_pad_to_four_digits():
    text = "0010;<Test, First>;Co;0;L;;;;;N;;;;;\n0011;<Test, Last>;Co;0;L;;;;;N;;;;;\n"
    names = [r.name for r in parse_unicode_data(text)]
    assert names == ["Test-0010", "Test-0011"]


def test_supplementary_range_names_keep_all_digits():
    text = ("F0000;<Plane 15 Private Use, First>;Co;0;L;;;;;N;;;;;\n"
            "F0001;<Plane 15 Private Use, Last>;Co;0;L;;;;;N;;;;;\n")
    assert parse_unicode_data(text)[1].name == "Plane 15 Private Use-F0001"


def test_control_and_empty_names_become_none():
    text = "0000;<control>;Cc;0;BN;;;;;N;NULL;;;;\n0020;;Zs;0;WS;;;;;N;;;;;\n"
    records = parse_unicode_data(text)
    assert [r.name for r in records] == [None, None]


@pytest.mark.parametrize("text, reason", [
    ("4E05;<CJK Ideograph, Last>;Lo;0;L;;;;;N;;;;;\n", "without a range start"),
    ("4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n"
     "4E05;<Hangul Syllable, Last>;Lo;0;L;;;;;N;;;;;\n", "does not match"),
    ("4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n"
     "4E01;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n", "another range is open"),
    ("4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n", "never closed"),
    ("4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n"
     "4E01;SOMETHING;Lo;0;L;;;;;N;;;;;\n", "expected range end"),
])
def test_broken_ranges_raise(text, reason):
    with pytest.raises(FormatError) as excinfo:
        parse_unicode_data(text)
    assert reason in str(excinfo.value)


def test_format_error_carries_line():
    text = "0041;LATIN CAPITAL LETTER A;Lu;0;L;;;;;N;;;;0061;\nZZZZ;BROKEN;Lu;0;L;;;;;N;;;;;\n"
    with pytest.raises(FormatError) as excinfo:
        parse_unicode_data(text)
    err = excinfo.value
    assert err.source == "UnicodeData.txt"
    assert err.line_number == 2
    assert err.line == "ZZZZ;BROKEN;Lu;0;L;;;;;N;;;;;"


def test_too_few_fields_raise():
    with pytest.raises(FormatError):
        parse_unicode_data("0041;LATIN CAPITAL LETTER A;Lu\n")


def test_unclosed_range_reports_its_line():
    text = "0041;LATIN CAPITAL LETTER A;Lu;0;L;;;;;N;;;;0061;\n4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;\n"
    with pytest.raises(FormatError) as excinfo:
        parse_unicode_data(text)
    err = excinfo.value
    assert err.line_number == 2
    assert err.line == "4E00;<CJK Ideograph, First>;Lo;0;L;;;;;N;;;;;"


def test_decomposition_forms():
    assert parse_decomposition("<fraction> 0031 2044 0032", "t", 1, "") == ("fraction", (0x31, 0x2044, 0x32))
    assert parse_decomposition("0041 0300", "t", 1, "") == ("canonical", (0x41, 0x300))
    assert parse_decomposition("", "t", 1, "") == (None, ())
    # A tag with nothing after it has no edges, so no type either
    assert parse_decomposition("<compat>", "t", 1, "") == (None, ())


def test_non_hex_decomposition_raises():
    with pytest.raises(FormatError):
        parse_unicode_data("00C0;A WITH GRAVE;Lu;0;L;0041 XYZ;;;;N;;;;;\n")


def test_name_aliases():
    text = "# comment\n\n0000;NULL;control\n01A2;LATIN CAPITAL LETTER GHA;correction\n"
    assert parse_name_aliases(text) == [
        NameAlias(0x0000, "NULL", "control"),
        NameAlias(0x01A2, "LATIN CAPITAL LETTER GHA", "correction"),
    ]


def test_blocks_require_range():
    assert parse_blocks("0000..007F; Basic Latin\n") == [IntervalRecord(0, 0x7F, "Basic Latin")]
    with pytest.raises(FormatError):
        parse_blocks("0041; Basic Latin\n")


def test_scripts_accept_single_codepoints_and_comments():
    text = "0000..001F    ; Common # Cc  [32] <control-0000>..<control-001F>\n0041 ; Latin # L& A\n"
    assert parse_scripts(text) == [IntervalRecord(0, 0x1F, "Common"), IntervalRecord(0x41, 0x41, "Latin")]


def test_east_asian_width_without_spaces():
    assert parse_east_asian_width("3000;F  # Zs IDEOGRAPHIC SPACE\n") == [IntervalRecord(0x3000, 0x3000, "F")]


def test_interval_end_before_start_raises():
    with pytest.raises(FormatError):
        parse_scripts("0041..0030 ; Latin\n")


def test_emoji_property_must_match_exactly():
    text = """\
0023          ; Emoji                # E0.0   [1] (#️)       hash sign
1F41F         ; Emoji_Presentation   # E0.6   [1] (🐟)       fish
00A9          ; Extended_Pictographic# E0.6   [1] (©️)       copyright
1F600..1F602  ; Emoji                # E1.0   [3] (😀..😂)
"""
    assert parse_emoji_data(text) == frozenset({0x23, 0x1F600, 0x1F601, 0x1F602})
    assert parse_emoji_data(text, property_name="Extended_Pictographic") == frozenset({0xA9})


def test_jis0208_takes_last_column():
    text = "# header\n0x8140\t0x2121\t0x3000\t# IDEOGRAPHIC SPACE\n0x82A0\t0x2422\t0x3042\t# HIRAGANA LETTER A\n"
    assert parse_legacy_mapping(text, "JIS0208.TXT") == frozenset({0x3000, 0x3042})


def test_cp932_skips_unmapped_bytes():
    text = "0x41\t0x0041\t#LATIN CAPITAL LETTER A\n0x80\t\t#UNDEFINED\n0xA0\t\t#UNDEFINED\n"
    assert parse_legacy_mapping(text, "CP932.TXT") == frozenset({0x41})


def test_legacy_mapping_rejects_bare_hex():
    with pytest.raises(FormatError):
        parse_legacy_mapping("8140 3000 # no prefix\n", "CP932.TXT")


def test_unihan_value_keeps_tabs():
    text = "# Unihan\nU+4E00\tkDefinition\tone; a, an; alone\nU+20000\tkRSUnicode\t1.4\textra\n"
    props = parse_unihan_text(text, "Unihan_Readings.txt")
    assert [(p.codepoint, p.property, p.value) for p in props] == [
        (0x4E00, "kDefinition", "one; a, an; alone"),
        (0x20000, "kRSUnicode", "1.4\textra"),
    ]


def test_unihan_bad_codepoint_raises():
    with pytest.raises(FormatError):
        parse_unihan_text("4E00\tkDefinition\tone\n", "Unihan_Readings.txt")


def test_unihan_directory_reads_files_in_name_order(tmp_path):
    (tmp_path / "Unihan_Readings.txt").write_text("U+4E00\tkDefinition\tone\n", encoding="utf-8")
    (tmp_path / "Unihan_DictionaryLikeData.txt").write_text("U+4E00\tkTotalStrokes\t1\n", encoding="utf-8")
    (tmp_path / "README.txt").write_text("not a data file\n", encoding="utf-8")

    props = parse_unihan_directory(tmp_path)
    assert [p.property for p in props] == ["kTotalStrokes", "kDefinition"]


def test_cldr_annotations_single_codepoints_only():
    text = '''{"annotations": {"identity": {}, "annotations": {
        "🐟": {"default": ["fish", "pisces"], "tts": ["fish"]},
        "👍🏽": {"default": ["thumbs up"], "tts": ["thumbs up: medium skin tone"]},
        "©": {"default": ["copyright"]}
    }}}'''
    annotations = parse_cldr_annotations(text)
    assert [(a.codepoint, a.keywords, a.tts) for a in annotations] == [
        (0x1F41F, "fish | pisces", "fish"),
        (0xA9, "copyright", None),
    ]


def test_cldr_malformed_json_raises():
    with pytest.raises(FormatError):
        parse_cldr_annotations('{"annotations": ')


@pytest.mark.parametrize("entry", [
    '{"default": "fish"}',
    '{"default": ["fish"], "tts": "fish"}',
    '{"default": ["fish", 3]}',
])
def test_cldr_values_must_be_string_lists(entry):
    text = '{"annotations": {"annotations": {"🐟": %s}}}' % entry
    with pytest.raises(FormatError) as excinfo:
        parse_cldr_annotations(text)
    assert excinfo.value.line == "🐟"


def test_variation_sequences():
    text = "# header\n0030 FE00; short diagonal stroke form; # DIGIT ZERO\n263A FE0F  ; emoji style; # (1.1)\n"
    assert parse_variation_sequences(text, "StandardizedVariants.txt", "standardized") == [
        VariationSequence(0x30, 0xFE00, "short diagonal stroke form", "standardized"),
        VariationSequence(0x263A, 0xFE0F, "emoji style", "standardized"),
    ]


def test_variation_sequence_needs_two_codepoints():
    with pytest.raises(FormatError):
        parse_variation_sequences("263A; text style;\n", "StandardizedVariants.txt", "standardized")
