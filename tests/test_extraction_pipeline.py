from __future__ import annotations

from app.schemas.fragments import SourceFragment, rect_fragment
from app.schemas.rules import (
    AnchorConfig,
    AnchorRule,
    FieldRules,
    LayoutMap,
    OffsetRect,
    ParserConfig,
    PositionConfig,
)
from app.services.mapping.store import TransactionStore
from app.services.pipelines.extraction import ExtractionPipeline


def _anchor(rule_id: str, alias: str) -> AnchorRule:
    return AnchorRule(
        id=rule_id,
        anchor_config=AnchorConfig(aliases=[alias]),
        position_config=PositionConfig(offset_rect=OffsetRect(left=5, width=200, height=20)),
        parser_config=ParserConfig(fallback_to_full_text=True),
    )


def _layout_map() -> LayoutMap:
    return LayoutMap(
        id="acme-po",
        name="ACME purchase order",
        fields=[
            FieldRules(id="document-number", rules=[_anchor("r-number", "PO Number")]),
            FieldRules(id="customer-number", rules=[_anchor("r-customer", "Customer")]),
            FieldRules(id="line_item-1-sku", rules=[_anchor("r-sku", "Item")]),
        ],
    )


def _fragments() -> list[SourceFragment]:
    return [
        rect_fragment("l-number", "PO Number", 10, 10, 90, 30),
        rect_fragment("v-number", "PO-4711", 100, 10, 170, 30),
        rect_fragment("l-customer", "Customer", 10, 50, 90, 70),
        rect_fragment("v-customer", "C-0042", 100, 50, 160, 70),
        rect_fragment("l-sku", "Item", 10, 100, 50, 120),
        rect_fragment("v-sku", "AB-1", 60, 100, 100, 120),
    ]


def test_pipeline_returns_rule_results() -> None:
    result = ExtractionPipeline().run(_fragments(), _layout_map())

    assert {extraction.field_id: extraction.value for extraction in result.extractions} == {
        "document-number": "PO-4711",
        "customer-number": "C-0042",
        "line_item-1-sku": "AB-1",
    }
    assert result.unmatched_rule_ids == []


def test_pipeline_records_one_undo_step_in_store() -> None:
    fragments = _fragments()
    store = TransactionStore(fragments=fragments)

    ExtractionPipeline().run(fragments, _layout_map(), store=store)

    document = store.structured_document
    assert document.document_number == "PO-4711"
    assert document.customer_number == "C-0042"
    assert document.find_line(1).sku == "AB-1"
    assert store.field_mapping_table["document_number"].source_ids == ("v-number",)
    assert store.field_mapping_table["line_item-1-sku"].cached_geometry[0].id == "v-sku"

    assert store.undo() is True
    assert store.can_undo is False
    assert dict(store.field_mapping_table) == {}
    assert store.structured_document.line_items == ()


def test_pipeline_without_matches_leaves_store_untouched() -> None:
    store = TransactionStore()

    result = ExtractionPipeline().run([], _layout_map(), store=store)

    assert result.extractions == []
    assert store.can_undo is False
