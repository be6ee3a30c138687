"""Usage: encode and decode structured-document field keys.

Header fields are keyed by their bare name (``document_number``); line-item
cells use ``line_item-<line number>-<column>``. The prefix contains a dash, so
it can never be mistaken for a header field name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

HEADER_FIELDS: Final[tuple[str, ...]] = (
    "document_number",
    "customer_number",
    "document_date",
    "ship_to_address",
)
LINE_ITEM_COLUMNS: Final[tuple[str, ...]] = ("sku", "description", "quantity", "unit_price")

_LINE_ITEM_PREFIX = "line_item"
_LINE_ITEM_KEY_RE = re.compile(
    rf"^{_LINE_ITEM_PREFIX}-([1-9]\d*)-({'|'.join(LINE_ITEM_COLUMNS)})$"
)


@dataclass(frozen=True)
class LineItemKey:
    line_number: int
    column: str


def encode_line_item_key(line_number: int, column: str) -> str:
    if column not in LINE_ITEM_COLUMNS:
        raise ValueError(f"Unknown line item column: {column}")
    if line_number < 1:
        raise ValueError(f"Line numbers start at 1, got {line_number}")
    return f"{_LINE_ITEM_PREFIX}-{line_number}-{column}"


def decode_line_item_key(key: str) -> LineItemKey | None:
    match = _LINE_ITEM_KEY_RE.fullmatch(key or "")
    if not match:
        return None
    return LineItemKey(line_number=int(match.group(1)), column=match.group(2))


def is_line_item_key(key: str) -> bool:
    return decode_line_item_key(key) is not None


def line_item_keys(line_number: int) -> list[str]:
    """All column keys of one line, in column order."""

    return [encode_line_item_key(line_number, column) for column in LINE_ITEM_COLUMNS]
