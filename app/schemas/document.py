import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NUMERIC_CLEAN_RE = re.compile(r"[^\d\.-]")


def _parse_float_like(value: float | str | None) -> float:
    """Normalize number strings like 'USD 1,000.00' into floats, 0.0 when empty."""

    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    value_str = str(value).strip()
    if not value_str:
        return 0.0

    cleaned = _NUMERIC_CLEAN_RE.sub("", value_str)
    if cleaned in {"", ".", "-", "-."}:
        raise ValueError(f"Cannot parse numeric value from: {value}")

    try:
        return float(cleaned)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric format: {value}") from exc


class LineItem(BaseModel):
    """One row of the document's line-item table."""

    model_config = ConfigDict(frozen=True)

    line_number: int = Field(..., ge=1, description="1-based position of the row.")
    sku: str = Field(default="", description="Article / SKU code.")
    description: str = Field(default="", description="Free-text description.")
    quantity: int = Field(default=0, description="Ordered quantity.")
    unit_price: float = Field(default=0.0, description="Price per unit.")

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value: int | float | str | None) -> int:
        return int(_parse_float_like(value))

    @field_validator("unit_price", mode="before")
    @classmethod
    def _parse_unit_price(cls, value: float | str | None) -> float:
        return _parse_float_like(value)


class StructuredDocument(BaseModel):
    """The normalized record being produced: header fields plus line items."""

    model_config = ConfigDict(frozen=True)

    document_number: str = Field(default="", description="Purchase order / document number.")
    customer_number: str = Field(default="", description="Customer account number.")
    document_date: str = Field(default="", description="Document date as printed.")
    ship_to_address: str = Field(default="", description="Delivery address block.")
    line_items: tuple[LineItem, ...] = Field(
        default_factory=tuple,
        description="Line items ordered by line number.",
    )

    def line_numbers(self) -> list[int]:
        return [item.line_number for item in self.line_items]

    def find_line(self, line_number: int) -> LineItem | None:
        for item in self.line_items:
            if item.line_number == line_number:
                return item
        return None

    def has_line(self, line_number: int) -> bool:
        return self.find_line(line_number) is not None
