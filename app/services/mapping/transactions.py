"""Usage: assemble single-undo-step transactions from edits and extractions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from app.schemas.document import StructuredDocument
from app.schemas.extraction import RuleEngineResult
from app.schemas.fragments import SourceFragment
from app.services.mapping.field_keys import (
    HEADER_FIELDS,
    LINE_ITEM_COLUMNS,
    decode_line_item_key,
    encode_line_item_key,
)
from app.services.mapping.field_values import (
    EXTRACTION_FIELD_ALIASES,
    HEADER_FIELD_KINDS,
    LINE_ITEM_FIELD_KINDS,
    parse_decimal,
    parse_integer,
    sanitize_value,
)
from app.services.mapping.line_items import add_blank, ensure_exists, insert_after, remove
from app.services.mapping.models import FieldMappingTable
from app.services.mapping.remap import MappingOperation, remap_for_shift

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    operations: tuple[MappingOperation, ...]
    document: StructuredDocument


def resolve_field_key(field_id: str) -> str | None:
    """Map a layout-map field id onto a document field key, if it has one."""

    key = EXTRACTION_FIELD_ALIASES.get(field_id, field_id)
    if key in HEADER_FIELDS or decode_line_item_key(key) is not None:
        return key
    return None


def set_field_value(document: StructuredDocument, key: str, value: str) -> StructuredDocument:
    if key in HEADER_FIELDS:
        return document.model_copy(update={key: sanitize_value(value, HEADER_FIELD_KINDS[key])})

    parsed = decode_line_item_key(key)
    if parsed is None:
        raise ValueError(f"Not a document field key: {key}")
    document = ensure_exists(document, parsed.line_number)
    cleaned = sanitize_value(value, LINE_ITEM_FIELD_KINDS[parsed.column])
    return _update_line(document, parsed.line_number, {parsed.column: _typed(parsed.column, cleaned)})


def extraction_transaction(
    result: RuleEngineResult,
    document: StructuredDocument,
) -> Transaction:
    """Write extracted values into the document and link them to their fragments."""

    operations: list[MappingOperation] = []
    for extraction in result.extractions:
        key = resolve_field_key(extraction.field_id)
        if key is None:
            logger.debug("Extraction has no document field: %s", extraction.field_id)
            continue
        document = set_field_value(document, key, extraction.value)
        operations.append(MappingOperation.set(key, extraction.source_fragment_ids()))
    return Transaction(operations=tuple(operations), document=document)


def add_line_transaction(
    document: StructuredDocument,
    line_number: int | None = None,
) -> Transaction:
    return Transaction(operations=(), document=add_blank(document, line_number))


def remove_line_transaction(
    table: FieldMappingTable,
    document: StructuredDocument,
    line_number: int,
) -> Transaction:
    result = remove(document, line_number)
    operations = [MappingOperation.clear(key) for key in result.removed_keys if key in table]
    operations.extend(remap_for_shift(table, result.remapped_keys))
    return Transaction(operations=tuple(operations), document=result.document)


def insert_line_transaction(
    table: FieldMappingTable,
    document: StructuredDocument,
    after_line_number: int,
) -> tuple[Transaction, int]:
    result = insert_after(document, after_line_number)
    operations = remap_for_shift(table, result.remapped_keys)
    return Transaction(operations=tuple(operations), document=result.document), result.new_line_number


def commit_line_mapping(
    document: StructuredDocument,
    line_number: int,
    assignments: Sequence[tuple[SourceFragment, str]],
) -> Transaction:
    """Assign fragments to columns of one line and fill the line from their text.

    SKU texts are de-duplicated and joined with spaces, descriptions joined
    with newlines, quantities summed and unit prices averaged. An empty column
    leaves its fragment unassigned.
    """

    texts: dict[str, list[str]] = {column: [] for column in LINE_ITEM_COLUMNS}
    ids: dict[str, list[str]] = {column: [] for column in LINE_ITEM_COLUMNS}
    for fragment, column in assignments:
        if not column:
            continue
        _check_column(column)
        texts[column].append(fragment.text)
        if fragment.id not in ids[column]:
            ids[column].append(fragment.id)

    updates: dict[str, object] = {}
    for column in LINE_ITEM_COLUMNS:
        value = _column_value(column, texts[column])
        if value is not None:
            updates[column] = value

    document = ensure_exists(document, line_number)
    if updates:
        document = _update_line(document, line_number, updates)

    operations = tuple(
        MappingOperation.set(encode_line_item_key(line_number, column), ids[column])
        for column in LINE_ITEM_COLUMNS
        if ids[column]
    )
    return Transaction(operations=operations, document=document)


def commit_column_assignments(
    document: StructuredDocument,
    column: str,
    assignments: Sequence[tuple[SourceFragment, int]],
) -> Transaction:
    """Assign fragments to one column across several lines.

    Missing lines are created; each line's cell is aggregated the same way as
    :func:`commit_line_mapping` and linked to its de-duplicated fragment ids.
    """

    _check_column(column)
    texts: dict[int, list[str]] = {}
    ids: dict[int, list[str]] = {}
    for fragment, line_number in assignments:
        texts.setdefault(line_number, []).append(fragment.text)
        line_ids = ids.setdefault(line_number, [])
        if fragment.id not in line_ids:
            line_ids.append(fragment.id)

    operations: list[MappingOperation] = []
    for line_number in sorted(texts):
        document = ensure_exists(document, line_number)
        value = _column_value(column, texts[line_number])
        if value is not None:
            document = _update_line(document, line_number, {column: value})
        operations.append(
            MappingOperation.set(encode_line_item_key(line_number, column), ids[line_number])
        )
    return Transaction(operations=tuple(operations), document=document)


def _check_column(column: str) -> None:
    if column not in LINE_ITEM_COLUMNS:
        raise ValueError(f"Unknown line item column: {column}")


def _column_value(column: str, texts: Sequence[str]) -> object | None:
    cleaned = [text for text in (" ".join(raw.split()) for raw in texts) if text]
    if not cleaned:
        return None
    if column == "sku":
        return " ".join(dict.fromkeys(cleaned))
    if column == "description":
        return "\n".join(cleaned)
    if column == "quantity":
        quantities = [value for value in map(parse_integer, cleaned) if value is not None]
        return sum(quantities) if quantities else None
    prices = [value for value in map(parse_decimal, cleaned) if value is not None]
    return sum(prices) / len(prices) if prices else None


def _typed(column: str, cleaned: str) -> object:
    if column == "quantity":
        return parse_integer(cleaned) or 0
    if column == "unit_price":
        return parse_decimal(cleaned) or 0.0
    return cleaned


def _update_line(
    document: StructuredDocument,
    line_number: int,
    updates: dict[str, object],
) -> StructuredDocument:
    items = tuple(
        item.model_copy(update=updates) if item.line_number == line_number else item
        for item in document.line_items
    )
    return document.model_copy(update={"line_items": items})
