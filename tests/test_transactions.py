from __future__ import annotations

import pytest

from app.schemas.document import LineItem, StructuredDocument
from app.schemas.extraction import ExtractionSegment, FieldExtraction, RuleEngineResult
from app.schemas.fragments import rect_fragment
from app.services.mapping.field_values import sanitize_value
from app.services.mapping.remap import MappingOperation
from app.services.mapping.store import TransactionStore
from app.services.mapping.transactions import (
    add_line_transaction,
    commit_column_assignments,
    commit_line_mapping,
    extraction_transaction,
    resolve_field_key,
)


def _extraction(field_id: str, value: str, *ids: str) -> FieldExtraction:
    return FieldExtraction(
        field_id=field_id,
        value=value,
        segments=[ExtractionSegment(text=value, source_fragment_ids=list(ids))],
        rule_id=f"rule-{field_id}",
    )


def test_sanitize_value_by_kind() -> None:
    assert sanitize_value("  PO\n 123  ", "text") == "PO 123"
    assert sanitize_value("  Main St\n Springfield ", "textarea") == "Main St\n Springfield"
    assert sanitize_value("Qty: 12", "integer") == "12"
    assert sanitize_value("n/a", "integer") == ""
    assert sanitize_value("$ 1,234.50", "decimal") == "1234.5"
    assert sanitize_value("10.00", "decimal") == "10"
    assert sanitize_value(None) == ""


def test_resolve_field_key_handles_aliases() -> None:
    assert resolve_field_key("document-number") == "document_number"
    assert resolve_field_key("ship-to") == "ship_to_address"
    assert resolve_field_key("customer_number") == "customer_number"
    assert resolve_field_key("line_item-2-sku") == "line_item-2-sku"
    assert resolve_field_key("vendor-logo") is None


def test_extraction_transaction_fills_document_and_links_fragments() -> None:
    result = RuleEngineResult(
        extractions=[
            _extraction("document-number", "INV-123", "f-value"),
            _extraction("line_item-2-unit_price", "USD 9.90", "f-price"),
            _extraction("vendor-logo", "ACME", "f-logo"),
        ],
        matched_rule_ids=["rule-document-number", "rule-line_item-2-unit_price", "rule-vendor-logo"],
    )

    transaction = extraction_transaction(result, StructuredDocument())

    assert transaction.document.document_number == "INV-123"
    assert transaction.document.line_numbers() == [2]
    assert transaction.document.find_line(2).unit_price == 9.9
    assert transaction.operations == (
        MappingOperation.set("document_number", ["f-value"]),
        MappingOperation.set("line_item-2-unit_price", ["f-price"]),
    )


def test_extraction_is_one_undo_step() -> None:
    store = TransactionStore()
    result = RuleEngineResult(
        extractions=[
            _extraction("document-number", "INV-123", "f1"),
            _extraction("customer-number", "C-9", "f2"),
        ]
    )

    store.apply(extraction_transaction(result, store.structured_document))
    assert sorted(store.field_mapping_table) == ["customer_number", "document_number"]

    store.undo()
    assert dict(store.field_mapping_table) == {}
    assert store.structured_document.document_number == ""


def test_commit_line_mapping_aggregates_columns() -> None:
    fragments = [
        rect_fragment("s1", "AB-1", 0, 0, 10, 10),
        rect_fragment("s2", " AB-1 ", 0, 20, 10, 30),
        rect_fragment("d1", "Blue widget", 20, 0, 80, 10),
        rect_fragment("d2", "large", 20, 20, 80, 30),
        rect_fragment("q1", "2", 90, 0, 100, 10),
        rect_fragment("q2", "3 pcs", 90, 20, 100, 30),
        rect_fragment("p1", "10.00", 110, 0, 130, 10),
        rect_fragment("p2", "20.00", 110, 20, 130, 30),
        rect_fragment("skip", "noise", 140, 0, 160, 10),
    ]
    columns = ["sku", "sku", "description", "description", "quantity", "quantity", "unit_price", "unit_price", ""]
    document = StructuredDocument(line_items=(LineItem(line_number=1, sku="OLD"),))

    transaction = commit_line_mapping(document, 1, list(zip(fragments, columns)))

    line = transaction.document.find_line(1)
    assert line.sku == "AB-1"
    assert line.description == "Blue widget\nlarge"
    assert line.quantity == 5
    assert line.unit_price == 15.0
    assert transaction.operations == (
        MappingOperation.set("line_item-1-sku", ["s1", "s2"]),
        MappingOperation.set("line_item-1-description", ["d1", "d2"]),
        MappingOperation.set("line_item-1-quantity", ["q1", "q2"]),
        MappingOperation.set("line_item-1-unit_price", ["p1", "p2"]),
    )


def test_commit_line_mapping_creates_missing_line() -> None:
    fragment = rect_fragment("s1", "XY-9", 0, 0, 10, 10)

    transaction = commit_line_mapping(StructuredDocument(), 3, [(fragment, "sku")])

    assert transaction.document.line_numbers() == [3]
    assert transaction.document.find_line(3).sku == "XY-9"


def test_commit_line_mapping_rejects_unknown_column() -> None:
    fragment = rect_fragment("s1", "XY-9", 0, 0, 10, 10)

    with pytest.raises(ValueError):
        commit_line_mapping(StructuredDocument(), 1, [(fragment, "color")])


def test_add_line_transaction_uses_next_free_number() -> None:
    document = StructuredDocument(line_items=(LineItem(line_number=1), LineItem(line_number=3)))

    transaction = add_line_transaction(document)

    assert transaction.operations == ()
    assert transaction.document.line_numbers() == [1, 2, 3]


def test_extracted_quantity_keeps_whole_part() -> None:
    result = RuleEngineResult(
        extractions=[
            _extraction("line_item-1-quantity", "12.00", "f-qty"),
            _extraction("line_item-2-quantity", "3.7 pcs", "f-qty-2"),
        ]
    )

    transaction = extraction_transaction(result, StructuredDocument())

    assert transaction.document.find_line(1).quantity == 12
    assert transaction.document.find_line(1).quantity == LineItem(line_number=1, quantity="12.00").quantity
    assert transaction.document.find_line(2).quantity == 3
    assert sanitize_value("12.00", "integer") == "12"


def test_commit_column_assignments_fills_one_column_across_lines() -> None:
    document = StructuredDocument(
        line_items=(LineItem(line_number=1, quantity=9), LineItem(line_number=2, sku="KEEP")),
    )
    assignments = [
        (rect_fragment("q1", "4", 90, 0, 100, 10), 1),
        (rect_fragment("q2a", "2.00", 90, 20, 100, 30), 2),
        (rect_fragment("q2b", "1 pcs", 90, 30, 100, 40), 2),
        (rect_fragment("q2a", "2.00", 90, 20, 100, 30), 2),
        (rect_fragment("q3", "7", 90, 50, 100, 60), 3),
    ]

    transaction = commit_column_assignments(document, "quantity", assignments)

    assert transaction.document.line_numbers() == [1, 2, 3]
    assert [item.quantity for item in transaction.document.line_items] == [4, 5, 7]
    assert transaction.document.find_line(2).sku == "KEEP"
    assert transaction.operations == (
        MappingOperation.set("line_item-1-quantity", ["q1"]),
        MappingOperation.set("line_item-2-quantity", ["q2a", "q2b"]),
        MappingOperation.set("line_item-3-quantity", ["q3"]),
    )


def test_commit_column_assignments_aggregates_text_columns() -> None:
    assignments = [
        (rect_fragment("d1", "Blue  widget", 20, 0, 80, 10), 1),
        (rect_fragment("d2", " ", 20, 10, 80, 20), 1),
        (rect_fragment("d3", "large", 20, 20, 80, 30), 1),
    ]

    transaction = commit_column_assignments(StructuredDocument(), "description", assignments)

    assert transaction.document.find_line(1).description == "Blue widget\nlarge"
    assert transaction.operations == (
        MappingOperation.set("line_item-1-description", ["d1", "d2", "d3"]),
    )


def test_commit_column_assignments_is_one_undo_step() -> None:
    fragments = [
        rect_fragment("p1", "10.00", 110, 0, 130, 10),
        rect_fragment("p2", "20.00", 110, 20, 130, 30),
    ]
    store = TransactionStore(fragments=fragments)

    transaction = commit_column_assignments(
        store.structured_document,
        "unit_price",
        [(fragments[0], 1), (fragments[1], 2)],
    )
    store.apply(transaction)

    assert store.structured_document.find_line(2).unit_price == 20.0
    assert store.field_mapping_table["line_item-2-unit_price"].cached_geometry[0].id == "p2"
    store.undo()
    assert dict(store.field_mapping_table) == {}
    assert store.structured_document.line_items == ()


def test_commit_column_assignments_rejects_unknown_column() -> None:
    fragment = rect_fragment("s1", "XY-9", 0, 0, 10, 10)

    with pytest.raises(ValueError):
        commit_column_assignments(StructuredDocument(), "color", [(fragment, 1)])


def test_commit_column_assignments_without_assignments_changes_nothing() -> None:
    document = StructuredDocument(line_items=(LineItem(line_number=1),))

    transaction = commit_column_assignments(document, "sku", [])

    assert transaction.operations == ()
    assert transaction.document is document
