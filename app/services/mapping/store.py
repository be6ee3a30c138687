"""Usage: undoable store for field mappings and the structured document.

Every transition is a pure function ``(state, ...) -> state``; returning the
same state object means nothing changed and no history was recorded.
``TransactionStore`` owns one state value and exposes the transitions as
methods for a single caller (one gesture, one call).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from app.core.config import settings
from app.schemas.document import StructuredDocument
from app.schemas.fragments import SourceFragment
from app.services.mapping.field_keys import decode_line_item_key
from app.services.mapping.line_items import InvariantIssue, check_invariants
from app.services.mapping.models import (
    FieldMappingEntry,
    FieldMappingTable,
    MappingState,
    compute_geometry,
)
from app.services.mapping.remap import MappingOperation, apply_operations

if TYPE_CHECKING:
    from app.services.mapping.transactions import Transaction

logger = logging.getLogger(__name__)


def apply_field_update(
    state: MappingState,
    key: str,
    source_ids: Sequence[str] | None,
    fragments: Sequence[SourceFragment] | None = None,
) -> MappingState:
    context = _fragment_context(state, fragments)
    table = apply_operations(
        state.field_mapping_table,
        [MappingOperation.set(key, source_ids or ())],
        context,
    )
    if table is state.field_mapping_table:
        return state
    return _commit(state, table, state.structured_document, context)


def apply_batch(
    state: MappingState,
    operations: Iterable[MappingOperation],
    fragments: Sequence[SourceFragment] | None = None,
) -> MappingState:
    context = _fragment_context(state, fragments)
    table = apply_operations(state.field_mapping_table, operations, context)
    if table is state.field_mapping_table:
        return state
    return _commit(state, table, state.structured_document, context)


def apply_transaction(
    state: MappingState,
    operations: Iterable[MappingOperation],
    document: StructuredDocument,
    fragments: Sequence[SourceFragment] | None = None,
) -> MappingState:
    context = _fragment_context(state, fragments)
    table = apply_operations(state.field_mapping_table, operations, context)
    if table is state.field_mapping_table and document == state.structured_document:
        return state
    # purge before the snapshot so undo returns to the pre-purge state
    table = _purge_orphans(table, document)
    return _commit(state, table, document, context)


def set_document(state: MappingState, document: StructuredDocument) -> MappingState:
    if document == state.structured_document:
        return state
    return _commit(state, state.field_mapping_table, document, state.fragments)


def replace_all(state: MappingState, table: FieldMappingTable) -> MappingState:
    return _commit(state, dict(table), state.structured_document, state.fragments)


def undo(state: MappingState) -> MappingState:
    if not state.past:
        return state
    previous = state.past[-1]
    return MappingState(
        field_mapping_table=previous.field_mapping_table,
        structured_document=previous.structured_document,
        past=state.past[:-1],
        future=(state.snapshot(), *state.future),
        fragments=state.fragments,
    )


def redo(state: MappingState) -> MappingState:
    if not state.future:
        return state
    upcoming, *rest = state.future
    return MappingState(
        field_mapping_table=upcoming.field_mapping_table,
        structured_document=upcoming.structured_document,
        past=(*state.past, state.snapshot()),
        future=tuple(rest),
        fragments=state.fragments,
    )


def recompute_geometry(
    state: MappingState,
    fragments: Sequence[SourceFragment] | None,
) -> MappingState:
    """Refresh cached geometry from a new fragment list. Not an undo step."""

    if fragments is None:
        return state
    context = tuple(fragments)
    table = {
        key: FieldMappingEntry(
            source_ids=entry.source_ids,
            cached_geometry=compute_geometry(entry.source_ids, context),
        )
        for key, entry in state.field_mapping_table.items()
    }
    return MappingState(
        field_mapping_table=table,
        structured_document=state.structured_document,
        past=state.past,
        future=state.future,
        fragments=context,
    )


def build_reverse_index(table: FieldMappingTable) -> dict[str, list[str]]:
    """Fragment id -> field keys referencing it, in table order."""

    index: dict[str, list[str]] = {}
    for key, entry in table.items():
        for source_id in entry.source_ids:
            index.setdefault(source_id, []).append(key)
    return index


class TransactionStore:
    """Owns one mapping state and its undo/redo history."""

    def __init__(
        self,
        document: StructuredDocument | None = None,
        *,
        fragments: Sequence[SourceFragment] | None = None,
        check_invariants: bool = False,
    ) -> None:
        self._state = MappingState(
            structured_document=document or StructuredDocument(),
            fragments=tuple(fragments or ()),
        )
        self._check_invariants = check_invariants
        self.last_invariant_issues: list[InvariantIssue] = []

    @property
    def state(self) -> MappingState:
        return self._state

    @property
    def field_mapping_table(self) -> FieldMappingTable:
        return self._state.field_mapping_table

    @property
    def structured_document(self) -> StructuredDocument:
        return self._state.structured_document

    @property
    def can_undo(self) -> bool:
        return bool(self._state.past)

    @property
    def can_redo(self) -> bool:
        return bool(self._state.future)

    @property
    def reverse_index(self) -> dict[str, list[str]]:
        return build_reverse_index(self._state.field_mapping_table)

    def apply_field_update(
        self,
        key: str,
        source_ids: Sequence[str] | None,
        fragments: Sequence[SourceFragment] | None = None,
    ) -> bool:
        return self._transition(apply_field_update(self._state, key, source_ids, fragments))

    def apply_batch(
        self,
        operations: Iterable[MappingOperation],
        fragments: Sequence[SourceFragment] | None = None,
    ) -> bool:
        return self._transition(apply_batch(self._state, operations, fragments))

    def apply_transaction(
        self,
        operations: Iterable[MappingOperation],
        document: StructuredDocument,
        fragments: Sequence[SourceFragment] | None = None,
    ) -> bool:
        changed = self._transition(apply_transaction(self._state, operations, document, fragments))
        if changed and self._check_invariants:
            self._run_invariant_checks()
        return changed

    def apply(
        self,
        transaction: "Transaction",
        fragments: Sequence[SourceFragment] | None = None,
    ) -> bool:
        return self.apply_transaction(transaction.operations, transaction.document, fragments)

    def set_document(self, document: StructuredDocument) -> bool:
        return self._transition(set_document(self._state, document))

    def replace_all(self, table: FieldMappingTable) -> bool:
        return self._transition(replace_all(self._state, table))

    def undo(self) -> bool:
        return self._transition(undo(self._state))

    def redo(self) -> bool:
        return self._transition(redo(self._state))

    def recompute_geometry(self, fragments: Sequence[SourceFragment] | None) -> None:
        self._state = recompute_geometry(self._state, fragments)

    def _transition(self, next_state: MappingState) -> bool:
        if next_state is self._state:
            return False
        self._state = next_state
        logger.debug(
            "Mapping state updated: fields=%d lines=%d past=%d future=%d",
            len(next_state.field_mapping_table),
            len(next_state.structured_document.line_items),
            len(next_state.past),
            len(next_state.future),
        )
        return True

    def _run_invariant_checks(self) -> None:
        issues = check_invariants(
            self._state.structured_document,
            list(self._state.field_mapping_table),
        )
        self.last_invariant_issues = issues
        if issues:
            logger.warning(
                "Mapping invariant violations: %s",
                [issue.message for issue in issues],
            )


def _fragment_context(
    state: MappingState,
    fragments: Sequence[SourceFragment] | None,
) -> tuple[SourceFragment, ...]:
    if fragments is None:
        return state.fragments
    return tuple(fragments)


def _purge_orphans(table: FieldMappingTable, document: StructuredDocument) -> FieldMappingTable:
    valid = set(document.line_numbers())
    pruned = {}
    for key, entry in table.items():
        parsed = decode_line_item_key(key)
        if parsed and parsed.line_number not in valid:
            logger.debug("Purging orphaned mapping: %s", key)
            continue
        pruned[key] = entry
    if len(pruned) == len(table):
        return table
    return pruned


def _commit(
    state: MappingState,
    table: FieldMappingTable,
    document: StructuredDocument,
    fragments: tuple[SourceFragment, ...],
) -> MappingState:
    return MappingState(
        field_mapping_table=table,
        structured_document=document,
        past=(*state.past, state.snapshot()),
        future=(),
        fragments=fragments,
    )


def create_store(
    document: StructuredDocument | None = None,
    *,
    fragments: Sequence[SourceFragment] | None = None,
) -> TransactionStore:
    """A store for one editing session, configured from application settings."""

    return TransactionStore(
        document,
        fragments=fragments,
        check_invariants=settings.check_mapping_invariants,
    )
