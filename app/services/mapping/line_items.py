"""Usage: insert, remove and renumber line items of a structured document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from app.schemas.document import LineItem, StructuredDocument
from app.services.mapping.field_keys import (
    LINE_ITEM_COLUMNS,
    decode_line_item_key,
    encode_line_item_key,
    line_item_keys,
)


@dataclass(frozen=True)
class KeyRemap:
    old_key: str
    new_key: str


@dataclass(frozen=True)
class RemoveResult:
    document: StructuredDocument
    removed_keys: list[str] = field(default_factory=list)
    remapped_keys: list[KeyRemap] = field(default_factory=list)


@dataclass(frozen=True)
class InsertResult:
    document: StructuredDocument
    remapped_keys: list[KeyRemap]
    new_line_number: int


@dataclass(frozen=True)
class InvariantIssue:
    type: str
    message: str
    field_key: str | None = None
    line_number: int | None = None


def next_sequential(document: StructuredDocument) -> int:
    """First positive line number not in use; gaps are filled before appending."""

    expected = 1
    for number in sorted(document.line_numbers()):
        if number > expected:
            return expected
        if number == expected:
            expected += 1
    return expected


def add_blank(document: StructuredDocument, line_number: int | None = None) -> StructuredDocument:
    target = line_number if line_number is not None else next_sequential(document)
    if document.has_line(target):
        return document
    items = [*document.line_items, LineItem(line_number=target)]
    return _with_items(document, items)


def ensure_exists(document: StructuredDocument, line_number: int) -> StructuredDocument:
    if document.has_line(line_number):
        return document
    return add_blank(document, line_number)


def remove(document: StructuredDocument, line_number: int) -> RemoveResult:
    if not document.has_line(line_number):
        return RemoveResult(document=document)

    remapped: list[KeyRemap] = []
    items: list[LineItem] = []
    for item in sorted(document.line_items, key=lambda entry: entry.line_number):
        if item.line_number == line_number:
            continue
        if item.line_number > line_number:
            remapped.extend(_shift_keys(item.line_number, item.line_number - 1))
            item = item.model_copy(update={"line_number": item.line_number - 1})
        items.append(item)

    return RemoveResult(
        document=_with_items(document, items),
        removed_keys=line_item_keys(line_number),
        remapped_keys=remapped,
    )


def insert_after(document: StructuredDocument, after_line_number: int) -> InsertResult:
    new_line_number = after_line_number + 1
    remapped: list[KeyRemap] = []
    items: list[LineItem] = []
    for item in sorted(document.line_items, key=lambda entry: entry.line_number):
        if item.line_number >= new_line_number:
            remapped.extend(_shift_keys(item.line_number, item.line_number + 1))
            item = item.model_copy(update={"line_number": item.line_number + 1})
        items.append(item)
    items.append(LineItem(line_number=new_line_number))

    return InsertResult(
        document=_with_items(document, items),
        remapped_keys=remapped,
        new_line_number=new_line_number,
    )


def check_invariants(
    document: StructuredDocument,
    mapping_keys: Iterable[str],
) -> list[InvariantIssue]:
    issues: list[InvariantIssue] = []
    seen: set[int] = set()
    for number in document.line_numbers():
        if number in seen:
            issues.append(
                InvariantIssue(
                    type="duplicate_line",
                    message=f"Duplicate line number {number}",
                    line_number=number,
                )
            )
        seen.add(number)

    for key in mapping_keys:
        parsed = decode_line_item_key(key)
        if parsed and parsed.line_number not in seen:
            issues.append(
                InvariantIssue(
                    type="orphan_field",
                    message=f"Field {key} references missing line {parsed.line_number}",
                    field_key=key,
                    line_number=parsed.line_number,
                )
            )
    return issues


def _shift_keys(old_line: int, new_line: int) -> list[KeyRemap]:
    return [
        KeyRemap(
            old_key=encode_line_item_key(old_line, column),
            new_key=encode_line_item_key(new_line, column),
        )
        for column in LINE_ITEM_COLUMNS
    ]


def _with_items(document: StructuredDocument, items: list[LineItem]) -> StructuredDocument:
    ordered = tuple(sorted(items, key=lambda item: item.line_number))
    return document.model_copy(update={"line_items": ordered})
