"""Usage: clean raw fragment text into the value kind a field expects."""

from __future__ import annotations

import re
from typing import Final, Literal

ValueKind = Literal["text", "textarea", "integer", "decimal"]

HEADER_FIELD_KINDS: Final[dict[str, ValueKind]] = {
    "document_number": "text",
    "customer_number": "text",
    "document_date": "text",
    "ship_to_address": "textarea",
}
LINE_ITEM_FIELD_KINDS: Final[dict[str, ValueKind]] = {
    "sku": "text",
    "description": "textarea",
    "quantity": "integer",
    "unit_price": "decimal",
}

# layout map field ids that differ from the document field they fill
EXTRACTION_FIELD_ALIASES: Final[dict[str, str]] = {
    "document-number": "document_number",
    "customer-number": "customer_number",
    "document-date": "document_date",
    "ship-to": "ship_to_address",
}


def sanitize_value(raw: str | None, kind: ValueKind | str = "text") -> str:
    value = raw or ""
    if kind == "textarea":
        return value.strip()
    if kind == "integer":
        number = parse_integer(value)
        return "" if number is None else str(number)
    if kind == "decimal":
        number = parse_decimal(value)
        return "" if number is None else _format_decimal(number)
    return " ".join(value.split())


def parse_integer(value: str | None) -> int | None:
    """Whole part of the parsed number; ``"12.00"`` is 12, not 1200."""

    number = parse_decimal(value)
    if number is None:
        return None
    return int(number)


def parse_decimal(value: str | None) -> float | None:
    if value is None:
        return None
    value_str = str(value).strip()
    if not value_str:
        return None
    cleaned = re.sub(r"[^\d\.-]", "", value_str)
    if cleaned in {"", ".", "-", "-.", ".-"}:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def _format_decimal(number: float) -> str:
    if number.is_integer():
        return str(int(number))
    return repr(number)
