"""Usage: value types held by the mapping store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from app.schemas.document import StructuredDocument
from app.schemas.fragments import SourceFragment


@dataclass(frozen=True)
class FragmentGeometry:
    id: str
    top: float
    left: float
    right: float
    bottom: float


@dataclass(frozen=True)
class FieldMappingEntry:
    source_ids: tuple[str, ...]
    cached_geometry: tuple[FragmentGeometry, ...] = ()


FieldMappingTable = Mapping[str, FieldMappingEntry]


@dataclass(frozen=True)
class TransactionSnapshot:
    field_mapping_table: FieldMappingTable
    structured_document: StructuredDocument


@dataclass(frozen=True)
class MappingState:
    field_mapping_table: FieldMappingTable = field(default_factory=dict)
    structured_document: StructuredDocument = field(default_factory=StructuredDocument)
    past: tuple[TransactionSnapshot, ...] = ()
    future: tuple[TransactionSnapshot, ...] = ()
    # last fragment list seen, used when a transition brings no geometry context
    fragments: tuple[SourceFragment, ...] = ()

    def snapshot(self) -> TransactionSnapshot:
        return TransactionSnapshot(
            field_mapping_table=self.field_mapping_table,
            structured_document=self.structured_document,
        )


def compute_geometry(
    source_ids: Iterable[str] | None,
    fragments: Iterable[SourceFragment] | None,
) -> tuple[FragmentGeometry, ...]:
    """Bounding rectangles of the referenced fragments; unknown ids are skipped."""

    if not source_ids or fragments is None:
        return ()
    by_id = {fragment.id: fragment for fragment in fragments}
    geometry: list[FragmentGeometry] = []
    for source_id in source_ids:
        fragment = by_id.get(source_id)
        if fragment is None or not fragment.polygon:
            continue
        bounds = fragment.bounds
        geometry.append(
            FragmentGeometry(
                id=source_id,
                top=bounds.top,
                left=bounds.left,
                right=bounds.right,
                bottom=bounds.bottom,
            )
        )
    return tuple(geometry)
