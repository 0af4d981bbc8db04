"""
Join the parsed source streams into the normalized entity set.

This is the only place entities are created. Block, script and width are
resolved per character with first-match range resolution, flags come from
set membership, and decompositions become positioned edges.
"""

from typing import Callable, Hashable, Iterable, List, TypeVar

from ucd_ranges import RangeResolver
from ucd_records import (
    Character,
    DecompositionEdge,
    LookupInconsistency,
    UcdSources,
    UnicodeDataset,
)

T = TypeVar('T')


def dedupe(rows: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Drop rows whose key was already seen, keeping the first occurrence"""
    seen = set()
    result = []
    for row in rows:
        k = key(row)
        if k in seen:
            continue
        seen.add(k)
        result.append(row)
    return result


def decomposition_edges(codepoint: int, mapping) -> List[DecompositionEdge]:
    return [DecompositionEdge(codepoint, position, target) for position, target in enumerate(mapping)]


def normalize(sources: UcdSources) -> UnicodeDataset:
    blocks = RangeResolver(sources.blocks)
    scripts = RangeResolver(sources.scripts)
    widths = RangeResolver(sources.east_asian_widths)

    characters: List[Character] = []
    decompositions: List[DecompositionEdge] = []
    known = {record.codepoint for record in sources.characters}
    inconsistencies: List[LookupInconsistency] = []

    for record in sources.characters:
        cp = record.codepoint
        edges = decomposition_edges(cp, record.decomposition)
        decompositions.extend(edges)

        characters.append(Character(
            codepoint=cp,
            name=record.name,
            general_category=record.general_category,
            block_name=blocks.resolve(cp),
            script_name=scripts.resolve(cp),
            bidi_class=record.bidi_class,
            # The type only exists together with at least one edge
            decomposition_type=record.decomposition_type if edges else None,
            east_asian_width=widths.resolve(cp),
            is_emoji=cp in sources.emoji,
            is_jis0208=cp in sources.jis0208,
            is_cp932=cp in sources.cp932,
        ))

        for edge in edges:
            if edge.target_codepoint not in known:
                inconsistencies.append(LookupInconsistency('decomposition', cp, edge.target_codepoint))

    aliases = dedupe(sources.aliases, key=lambda a: (a.codepoint, a.alias_type, a.alias))
    for alias in aliases:
        if alias.codepoint not in known:
            inconsistencies.append(LookupInconsistency('alias', alias.codepoint, alias.codepoint))

    unihan = dedupe(sources.unihan, key=lambda p: (p.codepoint, p.property))
    cldr_annotations = dedupe(sources.cldr_annotations, key=lambda a: a.codepoint)

    # Concatenated, not merged: the same (base, selector) may appear once per
    # source with a different description. Only exact repeats collapse.
    variation_sequences = dedupe(
        list(sources.standardized_variants) + list(sources.emoji_variants),
        key=lambda v: (v.base_codepoint, v.variation_selector, v.source, v.description),
    )

    return UnicodeDataset(
        characters=characters,
        decompositions=decompositions,
        aliases=aliases,
        blocks=list(sources.blocks),
        scripts=list(sources.scripts),
        east_asian_widths=list(sources.east_asian_widths),
        unihan=unihan,
        cldr_annotations=cldr_annotations,
        variation_sequences=variation_sequences,
        inconsistencies=inconsistencies,
    )
