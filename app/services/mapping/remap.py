"""Usage: turn line-number shifts into ordered mapping operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, Sequence

from app.schemas.fragments import SourceFragment
from app.services.mapping.line_items import KeyRemap
from app.services.mapping.models import FieldMappingEntry, FieldMappingTable, compute_geometry


@dataclass(frozen=True)
class MappingOperation:
    kind: Literal["set", "clear"]
    key: str
    source_ids: tuple[str, ...] = ()

    @classmethod
    def set(cls, key: str, source_ids: Iterable[str]) -> "MappingOperation":
        ids = tuple(source_ids)
        if not ids:
            return cls(kind="clear", key=key)
        return cls(kind="set", key=key, source_ids=ids)

    @classmethod
    def clear(cls, key: str) -> "MappingOperation":
        return cls(kind="clear", key=key)


def remap_for_shift(
    table: Mapping[str, FieldMappingEntry],
    pairs: Sequence[KeyRemap],
) -> list[MappingOperation]:
    """Move mapped entries along ``pairs`` without clobbering shifted keys.

    Entries are captured before anything is emitted, all clears come before
    any set, so a key that is both a destination and a source in the same
    batch (2->3 and 3->4) ends up holding the right entry.
    """

    captured = [(pair, table.get(pair.old_key)) for pair in pairs]
    operations = [
        MappingOperation.clear(pair.old_key) for pair, entry in captured if entry is not None
    ]
    operations.extend(
        MappingOperation.set(pair.new_key, entry.source_ids)
        for pair, entry in captured
        if entry is not None
    )
    return operations


def apply_operations(
    table: FieldMappingTable,
    operations: Iterable[MappingOperation],
    fragments: Sequence[SourceFragment] | None = None,
) -> FieldMappingTable:
    """Apply operations in order; ``table`` itself comes back when nothing changed.

    A set computes geometry from ``fragments`` when they are given and keeps
    the key's previous geometry otherwise. Clearing an unmapped key is a no-op.
    """

    working: dict[str, FieldMappingEntry] | None = None
    for operation in operations:
        current = table if working is None else working
        if operation.kind == "clear" or not operation.source_ids:
            if operation.key not in current:
                continue
            working = dict(current) if working is None else working
            del working[operation.key]
            continue

        if fragments is not None:
            geometry = compute_geometry(operation.source_ids, fragments)
        else:
            previous = current.get(operation.key)
            geometry = previous.cached_geometry if previous else ()
        working = dict(current) if working is None else working
        working[operation.key] = FieldMappingEntry(
            source_ids=operation.source_ids,
            cached_geometry=geometry,
        )
    return table if working is None else working
