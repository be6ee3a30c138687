from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class BoundingRect(BaseModel):
    """Axis-aligned rectangle in page pixel space (or fractions of the page)."""

    model_config = ConfigDict(frozen=True)

    top: float = Field(..., description="Top edge (min y)")
    left: float = Field(..., description="Left edge (min x)")
    right: float = Field(..., description="Right edge (max x)")
    bottom: float = Field(..., description="Bottom edge (max y)")

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, other: BoundingRect) -> bool:
        """True when ``other`` lies entirely inside this rectangle."""

        return (
            other.left >= self.left
            and other.right <= self.right
            and other.top >= self.top
            and other.bottom <= self.bottom
        )

    def intersects(self, other: BoundingRect) -> bool:
        return (
            self.left < other.right
            and self.right > other.left
            and self.top < other.bottom
            and self.bottom > other.top
        )


class SourceFragment(BaseModel):
    """A recognized piece of text with its polygon on a page."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    page: int = Field(default=1, ge=1)
    polygon: tuple[Point, ...] = Field(default_factory=tuple)

    @property
    def bounds(self) -> BoundingRect:
        if not self.polygon:
            return BoundingRect(top=0.0, left=0.0, right=0.0, bottom=0.0)
        xs = [point.x for point in self.polygon]
        ys = [point.y for point in self.polygon]
        return BoundingRect(top=min(ys), left=min(xs), right=max(xs), bottom=max(ys))


def rect_fragment(
    fragment_id: str,
    text: str,
    left: float,
    top: float,
    right: float,
    bottom: float,
    page: int = 1,
) -> SourceFragment:
    """Build a fragment from a rectangle, clockwise from the top-left corner."""

    return SourceFragment(
        id=fragment_id,
        text=text,
        page=page,
        polygon=(
            Point(x=left, y=top),
            Point(x=right, y=top),
            Point(x=right, y=bottom),
            Point(x=left, y=bottom),
        ),
    )
