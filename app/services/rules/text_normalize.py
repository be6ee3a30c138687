"""Usage: shared fragment text normalization and reading-order line grouping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from app.schemas.fragments import BoundingRect, SourceFragment

# two fragments share a line when their vertical overlap exceeds this share
# of their average height
LINE_OVERLAP_RATIO = 0.5


@dataclass(frozen=True)
class NormalizeConfig:
    normalize_whitespace: bool = True
    ignore_case: bool = True


@dataclass
class ReadingLine:
    fragments: list[SourceFragment] = field(default_factory=list)

    def sorted_fragments(self) -> list[SourceFragment]:
        return sorted(self.fragments, key=lambda fragment: fragment.bounds.left)


def normalize_text(text: str, config: NormalizeConfig) -> str:
    value = text or ""
    if config.normalize_whitespace:
        value = " ".join(value.split())
    if config.ignore_case:
        value = value.lower()
    return value


def clean_text(text: str) -> str:
    """Trim and collapse inner whitespace."""

    return " ".join((text or "").split())


def matches_alias(text: str, alias: str, match_mode: str) -> bool:
    if not alias:
        return False
    if match_mode == "exact":
        return text == alias
    if match_mode == "starts_with":
        return text.startswith(alias)
    if match_mode == "contains":
        return alias in text
    if match_mode == "ends_with":
        return text.endswith(alias)
    raise ValueError(f"Unknown match mode: {match_mode}")


def same_line(a: BoundingRect, b: BoundingRect) -> bool:
    overlap = min(a.bottom, b.bottom) - max(a.top, b.top)
    average_height = (a.height + b.height) / 2
    if average_height <= 0:
        return False
    return overlap > LINE_OVERLAP_RATIO * average_height


def group_reading_lines(fragments: Iterable[SourceFragment]) -> list[ReadingLine]:
    """Group fragments into top-to-bottom lines, each ordered left-to-right."""

    ordered = sorted(fragments, key=lambda fragment: fragment.bounds.top)
    lines: list[ReadingLine] = []
    previous: SourceFragment | None = None
    for fragment in ordered:
        if previous is not None and same_line(previous.bounds, fragment.bounds):
            lines[-1].fragments.append(fragment)
        else:
            lines.append(ReadingLine(fragments=[fragment]))
        previous = fragment
    for line in lines:
        line.fragments = line.sorted_fragments()
    return lines


def page_bounds(
    fragments: Iterable[SourceFragment],
    *,
    default_width: float,
    default_height: float,
) -> tuple[float, float]:
    """Document pixel extent: max right/bottom over all fragments."""

    max_x: float | None = None
    max_y: float | None = None
    for fragment in fragments:
        bounds = fragment.bounds
        max_x = bounds.right if max_x is None else max(max_x, bounds.right)
        max_y = bounds.bottom if max_y is None else max(max_y, bounds.bottom)
    if max_x is None or max_y is None:
        return default_width, default_height
    return max_x, max_y
