from app.schemas.fragments import rect_fragment
from app.services.mapping.line_items import KeyRemap
from app.services.mapping.models import FieldMappingEntry, FragmentGeometry
from app.services.mapping.remap import MappingOperation, apply_operations, remap_for_shift


def _entry(*ids: str) -> FieldMappingEntry:
    return FieldMappingEntry(source_ids=ids)


def test_shift_chain_clears_before_sets() -> None:
    table = {
        "line_item-2-sku": _entry("a"),
        "line_item-2-description": _entry("b"),
        "line_item-3-sku": _entry("c"),
    }
    pairs = [
        KeyRemap(old_key="line_item-2-sku", new_key="line_item-3-sku"),
        KeyRemap(old_key="line_item-2-description", new_key="line_item-3-description"),
        KeyRemap(old_key="line_item-3-sku", new_key="line_item-4-sku"),
    ]

    operations = remap_for_shift(table, pairs)

    assert [operation.kind for operation in operations] == [
        "clear",
        "clear",
        "clear",
        "set",
        "set",
        "set",
    ]
    result = apply_operations(table, operations)
    assert result == {
        "line_item-3-sku": _entry("a"),
        "line_item-3-description": _entry("b"),
        "line_item-4-sku": _entry("c"),
    }


def test_shift_result_does_not_depend_on_pair_order() -> None:
    table = {"line_item-2-sku": _entry("a"), "line_item-3-sku": _entry("c")}
    pairs = [
        KeyRemap(old_key="line_item-3-sku", new_key="line_item-4-sku"),
        KeyRemap(old_key="line_item-2-sku", new_key="line_item-3-sku"),
    ]

    result = apply_operations(table, remap_for_shift(table, pairs))

    assert result == {"line_item-3-sku": _entry("a"), "line_item-4-sku": _entry("c")}


def test_unmapped_keys_produce_no_operations() -> None:
    pairs = [KeyRemap(old_key="line_item-2-quantity", new_key="line_item-3-quantity")]

    assert remap_for_shift({"document_number": _entry("d")}, pairs) == []


def test_set_with_no_ids_is_a_clear() -> None:
    assert MappingOperation.set("document_number", []) == MappingOperation.clear("document_number")


def test_apply_operations_without_changes_returns_same_table() -> None:
    table = {"document_number": _entry("d")}

    result = apply_operations(table, [MappingOperation.clear("customer_number")])

    assert result is table


def test_apply_operations_computes_geometry_from_fragments() -> None:
    stale = FragmentGeometry(id="a", top=0, left=0, right=1, bottom=1)
    table = {"line_item-1-sku": FieldMappingEntry(source_ids=("a",), cached_geometry=(stale,))}
    fragments = [rect_fragment("a", "SKU-A", 10, 20, 30, 40)]
    operation = MappingOperation.set("line_item-1-sku", ["a"])

    kept = apply_operations(table, [operation])
    fresh = apply_operations(table, [operation], fragments)

    assert kept["line_item-1-sku"].cached_geometry == (stale,)
    assert fresh["line_item-1-sku"].cached_geometry == (
        FragmentGeometry(id="a", top=20, left=10, right=30, bottom=40),
    )
    assert table["line_item-1-sku"].cached_geometry == (stale,)
