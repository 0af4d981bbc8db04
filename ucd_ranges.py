"""
Interval resolution for Blocks.txt, Scripts.txt and EastAsianWidth.txt.

Policy: intervals are consulted in the order they appear in the source
file and the first one containing the codepoint wins. Scripts and widths
may list the same codepoint more than once, so this order is part of the
result, not an implementation detail.
"""

import bisect
from typing import Iterator, List, Optional, Sequence, Tuple

from ucd_records import IntervalRecord


def generated_name(base_name: str, codepoint: int) -> str:
    """Name synthesized for a member of a <X, First>..<X, Last> range"""
    return f"{base_name}-{codepoint:04X}"


def expand_range(first_cp: int, last_cp: int, base_name: str) -> Iterator[Tuple[int, str]]:
    """Yield (codepoint, generated name) for every codepoint in [first_cp, last_cp]"""
    for cp in range(first_cp, last_cp + 1):
        yield cp, generated_name(base_name, cp)


def resolve(codepoint: int, intervals: Sequence[IntervalRecord]) -> Optional[str]:
    """Return the value of the first interval containing codepoint, or None"""
    for interval in intervals:
        if interval.start_cp <= codepoint <= interval.end_cp:
            return interval.value
    return None


def first_match_segments(intervals: Sequence[IntervalRecord]) -> List[IntervalRecord]:
    """
    Carve intervals into sorted, disjoint segments with first-match semantics.

    Intervals are visited in source order; each one only claims the parts of
    its range that no earlier interval claimed. Looking a codepoint up in the
    result gives the same value as resolve() over the original sequence.
    """
    starts: List[int] = []
    segments: List[IntervalRecord] = []

    for interval in intervals:
        lo, hi = interval.start_cp, interval.end_cp
        if lo > hi:
            continue

        pieces = []
        cursor = lo
        i = max(0, bisect.bisect_right(starts, lo) - 1)
        while i < len(segments) and segments[i].start_cp <= hi:
            claimed = segments[i]
            i += 1
            if claimed.end_cp < cursor:
                continue
            if claimed.start_cp > cursor:
                pieces.append(IntervalRecord(cursor, claimed.start_cp - 1, interval.value))
            cursor = claimed.end_cp + 1
            if cursor > hi:
                break
        if cursor <= hi:
            pieces.append(IntervalRecord(cursor, hi, interval.value))

        for piece in pieces:
            j = bisect.bisect_left(starts, piece.start_cp)
            starts.insert(j, piece.start_cp)
            segments.insert(j, piece)

    return segments


class RangeResolver:
    """
    Reusable first-match resolver over one interval table.

    The table is carved into disjoint segments once, then every lookup is a
    bisection. For a table that is already disjoint (blocks) this is just a
    sort; for overlapping tables (scripts, widths) earlier lines keep the
    codepoints they cover.
    """

    def __init__(self, intervals: Sequence[IntervalRecord]):
        self.intervals = list(intervals)
        self._segments = first_match_segments(self.intervals)
        self._starts = [s.start_cp for s in self._segments]

    def resolve(self, codepoint: int) -> Optional[str]:
        i = bisect.bisect_right(self._starts, codepoint) - 1
        if i >= 0 and self._segments[i].contains(codepoint):
            return self._segments[i].value
        return None

    def __len__(self) -> int:
        return len(self.intervals)
