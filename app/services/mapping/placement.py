"""Usage: guess which line-item column or row dropped fragments belong to.

Column and row extents come from the cached geometry of fragments already
mapped to line-item fields. A fragment is placed where its midpoint falls;
when the midpoint sits inside several spans, the span with far more hits wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

from app.schemas.fragments import BoundingRect, SourceFragment
from app.services.mapping.field_keys import LINE_ITEM_COLUMNS, LineItemKey, decode_line_item_key
from app.services.mapping.models import FieldMappingTable, FragmentGeometry

PlacementKey = Union[str, int]

# a span must collect this many times the runner-up's midpoint hits to win
DOMINANCE_FACTOR = 9


@dataclass(frozen=True)
class Span:
    start: float
    end: float
    count: int


@dataclass(frozen=True)
class FragmentOverlap:
    fragment_id: str
    midpoint: float | None
    ratios: dict[PlacementKey, float]
    inside: tuple[PlacementKey, ...]
    best: PlacementKey | None
    best_ratio: float


@dataclass(frozen=True)
class OverlapSummary:
    spans: dict[PlacementKey, Span]
    overlaps: list[FragmentOverlap]
    midpoint_hits: dict[PlacementKey, int]


def column_spans(
    table: FieldMappingTable,
    *,
    exclude_line: int | None = None,
) -> dict[PlacementKey, Span]:
    """Horizontal extent of every mapped column, optionally ignoring one line."""

    spans = _collect_spans(
        table,
        lambda parsed: None if parsed.line_number == exclude_line else parsed.column,
        lambda geometry: (geometry.left, geometry.right),
    )
    return {column: spans[column] for column in LINE_ITEM_COLUMNS if column in spans}


def row_spans(table: FieldMappingTable) -> dict[PlacementKey, Span]:
    """Vertical extent of every mapped line."""

    spans = _collect_spans(
        table,
        lambda parsed: parsed.line_number,
        lambda geometry: (geometry.top, geometry.bottom),
    )
    return {line_number: spans[line_number] for line_number in sorted(spans)}


def predict_columns(
    table: FieldMappingTable,
    fragments: Sequence[SourceFragment],
    target_line_number: int,
) -> OverlapSummary:
    """Measure dropped fragments against the columns of the other lines."""

    spans = column_spans(table, exclude_line=target_line_number)
    return _summarize(fragments, spans, lambda bounds: (bounds.left, bounds.right))


def predict_rows(
    table: FieldMappingTable,
    fragments: Sequence[SourceFragment],
) -> OverlapSummary:
    """Measure dropped fragments against the rows already mapped."""

    return _summarize(fragments, row_spans(table), lambda bounds: (bounds.top, bounds.bottom))


def propose_placements(summary: OverlapSummary) -> dict[str, Optional[PlacementKey]]:
    """Fragment id -> proposed column or row; ``None`` when ambiguous or outside."""

    return {
        overlap.fragment_id: _dominant(overlap.inside, summary.midpoint_hits)
        for overlap in summary.overlaps
    }


def propose_columns(
    table: FieldMappingTable,
    fragments: Sequence[SourceFragment],
    target_line_number: int,
) -> dict[str, Optional[PlacementKey]]:
    return propose_placements(predict_columns(table, fragments, target_line_number))


def propose_rows(
    table: FieldMappingTable,
    fragments: Sequence[SourceFragment],
) -> dict[str, Optional[PlacementKey]]:
    return propose_placements(predict_rows(table, fragments))


def _collect_spans(
    table: FieldMappingTable,
    key_of: Callable[[LineItemKey], PlacementKey | None],
    edges: Callable[[FragmentGeometry], tuple[float, float]],
) -> dict[PlacementKey, Span]:
    extents: dict[PlacementKey, tuple[float, float, int]] = {}
    for field_key, entry in table.items():
        parsed = decode_line_item_key(field_key)
        if parsed is None:
            continue
        span_key = key_of(parsed)
        if span_key is None:
            continue
        for geometry in entry.cached_geometry:
            start, end = edges(geometry)
            if span_key in extents:
                low, high, count = extents[span_key]
                extents[span_key] = (min(low, start), max(high, end), count + 1)
            else:
                extents[span_key] = (start, end, 1)
    return {key: Span(start=low, end=high, count=count) for key, (low, high, count) in extents.items()}


def _summarize(
    fragments: Iterable[SourceFragment],
    spans: dict[PlacementKey, Span],
    extent: Callable[[BoundingRect], tuple[float, float]],
) -> OverlapSummary:
    hits: dict[PlacementKey, int] = {key: 0 for key in spans}
    overlaps: list[FragmentOverlap] = []
    for fragment in fragments:
        start, end = extent(fragment.bounds)
        size = end - start
        if size <= 0:
            overlaps.append(
                FragmentOverlap(
                    fragment_id=fragment.id,
                    midpoint=None,
                    ratios={key: 0.0 for key in spans},
                    inside=(),
                    best=None,
                    best_ratio=0.0,
                )
            )
            continue

        midpoint = (start + end) / 2
        ratios: dict[PlacementKey, float] = {}
        inside: list[PlacementKey] = []
        best: PlacementKey | None = None
        best_ratio = 0.0
        for key, span in spans.items():
            covered = max(0.0, min(end, span.end) - max(start, span.start))
            ratio = covered / size
            ratios[key] = ratio
            if span.start <= midpoint <= span.end:
                inside.append(key)
                hits[key] += 1
            if ratio > best_ratio:
                best, best_ratio = key, ratio
        overlaps.append(
            FragmentOverlap(
                fragment_id=fragment.id,
                midpoint=midpoint,
                ratios=ratios,
                inside=tuple(inside),
                best=best,
                best_ratio=best_ratio,
            )
        )
    return OverlapSummary(spans=spans, overlaps=overlaps, midpoint_hits=hits)


def _dominant(
    inside: Sequence[PlacementKey],
    hits: dict[PlacementKey, int],
) -> PlacementKey | None:
    if not inside:
        return None
    if len(inside) == 1:
        return inside[0]
    ranked = sorted(inside, key=lambda key: hits.get(key, 0), reverse=True)
    first, second = hits.get(ranked[0], 0), hits.get(ranked[1], 0)
    if second == 0 or first >= second * DOMINANCE_FACTOR:
        return ranked[0]
    return None
