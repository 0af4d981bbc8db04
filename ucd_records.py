"""
Record types and errors shared by the UCD database pipeline.

Every source format parses into its own NamedTuple with a fixed set of
typed fields, so downstream stages never poke at loosely shaped dicts.
"""

from typing import FrozenSet, List, NamedTuple, Optional, Tuple

MAX_CODEPOINT = 0x10FFFF


class UcdBuildError(Exception):
    """Base class for fatal pipeline errors"""


class FormatError(UcdBuildError):
    """A source line does not match the shape its format requires."""

    def __init__(self, source: str, line_number: int, line: str, reason: str = "unexpected syntax"):
        self.source = source
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"{source}:{line_number}: {reason}: {line!r}")


class PersistenceFailure(UcdBuildError):
    """A batch write or post-write check failed; nothing was published."""


# --- Parsed records -------------------------------------------------------

class CharacterRecord(NamedTuple):
    codepoint: int
    name: Optional[str]
    general_category: str
    bidi_class: str
    decomposition_type: Optional[str]
    decomposition: Tuple[int, ...]


class NameAlias(NamedTuple):
    codepoint: int
    alias: str
    alias_type: str


class IntervalRecord(NamedTuple):
    start_cp: int
    end_cp: int
    value: str

    def contains(self, codepoint: int) -> bool:
        return self.start_cp <= codepoint <= self.end_cp


# Blocks, scripts and widths share the interval shape
Block = IntervalRecord
ScriptRange = IntervalRecord
EastAsianWidthRange = IntervalRecord


class UnihanProperty(NamedTuple):
    codepoint: int
    property: str
    value: str


class CldrAnnotation(NamedTuple):
    codepoint: int
    keywords: Optional[str]
    tts: Optional[str]


class VariationSequence(NamedTuple):
    base_codepoint: int
    variation_selector: int
    description: str
    source: str


# --- Normalized records ---------------------------------------------------

class Character(NamedTuple):
    codepoint: int
    name: Optional[str]
    general_category: str
    block_name: Optional[str]
    script_name: Optional[str]
    bidi_class: str
    decomposition_type: Optional[str]
    east_asian_width: Optional[str]
    is_emoji: bool
    is_jis0208: bool
    is_cp932: bool


class DecompositionEdge(NamedTuple):
    source_codepoint: int
    position: int
    target_codepoint: int


class LookupInconsistency(NamedTuple):
    """A row that references a codepoint missing from UnicodeData.txt.

    These are tolerated: the row is still written, the note is only reported.
    """
    kind: str
    codepoint: int
    referenced_codepoint: int


class UcdSources(NamedTuple):
    """Everything the parsers produced, handed to normalization in one piece."""
    characters: List[CharacterRecord]
    aliases: List[NameAlias]
    blocks: List[IntervalRecord]
    scripts: List[IntervalRecord]
    east_asian_widths: List[IntervalRecord]
    emoji: FrozenSet[int]
    jis0208: FrozenSet[int]
    cp932: FrozenSet[int]
    unihan: List[UnihanProperty]
    cldr_annotations: List[CldrAnnotation]
    standardized_variants: List[VariationSequence]
    emoji_variants: List[VariationSequence]


class UnicodeDataset(NamedTuple):
    """The normalized entity set. Built once, then only read."""
    characters: List[Character]
    decompositions: List[DecompositionEdge]
    aliases: List[NameAlias]
    blocks: List[IntervalRecord]
    scripts: List[IntervalRecord]
    east_asian_widths: List[IntervalRecord]
    unihan: List[UnihanProperty]
    cldr_annotations: List[CldrAnnotation]
    variation_sequences: List[VariationSequence]
    inconsistencies: List[LookupInconsistency]
