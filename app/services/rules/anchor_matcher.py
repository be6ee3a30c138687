"""Usage: locate anchor fragments and the value region next to them."""

from __future__ import annotations

from typing import Sequence

from app.schemas.fragments import BoundingRect, SourceFragment
from app.schemas.rules import AnchorConfig, PositionConfig
from app.services.rules.text_normalize import (
    NormalizeConfig,
    matches_alias,
    normalize_text,
    page_bounds,
)


def filter_page_scope(fragments: Sequence[SourceFragment], page_scope: str) -> list[SourceFragment]:
    if not fragments or page_scope == "any":
        return list(fragments)
    pages = [fragment.page for fragment in fragments]
    if page_scope == "first":
        target = min(pages)
    elif page_scope == "last":
        target = max(pages)
    else:
        raise ValueError(f"Unknown page scope: {page_scope}")
    return [fragment for fragment in fragments if fragment.page == target]


def resolve_search_zone(
    zone: BoundingRect,
    fragments: Sequence[SourceFragment],
    *,
    default_width: float,
    default_height: float,
) -> BoundingRect:
    """Scale a fractional zone (all bounds <= 1) to document pixels."""

    if max(zone.top, zone.left, zone.right, zone.bottom) > 1:
        return zone
    width, height = page_bounds(
        fragments,
        default_width=default_width,
        default_height=default_height,
    )
    return BoundingRect(
        top=zone.top * height,
        left=zone.left * width,
        right=zone.right * width,
        bottom=zone.bottom * height,
    )


def find_anchor_matches(
    config: AnchorConfig,
    fragments: Sequence[SourceFragment],
    *,
    default_width: float,
    default_height: float,
) -> list[SourceFragment]:
    """Fragments matching any alias, in fragment list order."""

    normalize_cfg = NormalizeConfig(
        normalize_whitespace=config.normalize_whitespace,
        ignore_case=config.ignore_case,
    )
    aliases = [normalize_text(alias, normalize_cfg) for alias in config.aliases]
    zone = resolve_search_zone(
        config.search_zone,
        fragments,
        default_width=default_width,
        default_height=default_height,
    )

    matches: list[SourceFragment] = []
    for fragment in filter_page_scope(fragments, config.page_scope):
        if not zone.contains(fragment.bounds):
            continue
        text = normalize_text(fragment.text, normalize_cfg)
        if any(matches_alias(text, alias, config.match_mode) for alias in aliases):
            matches.append(fragment)
    return matches


def select_instance(
    matches: Sequence[SourceFragment],
    instance: int,
    instance_from: str,
) -> SourceFragment | None:
    # TODO: equal candidates are ordered by fragment list only; decide whether
    # proximity to the search zone origin should break ties.
    if instance < 1 or instance > len(matches):
        return None
    if instance_from == "end":
        return matches[len(matches) - instance]
    return matches[instance - 1]


def value_region(anchor: BoundingRect, position: PositionConfig) -> BoundingRect:
    """Offset rectangle measured from the anchor corner named by the position."""

    vertical, horizontal = position.starting_position.split("_")
    origin_y = anchor.top if vertical == "top" else anchor.bottom
    origin_x = anchor.left if horizontal == "left" else anchor.right
    offset = position.offset_rect
    top = origin_y + offset.top
    left = origin_x + offset.left
    return BoundingRect(top=top, left=left, right=left + offset.width, bottom=top + offset.height)


def fragments_in_region(
    fragments: Sequence[SourceFragment],
    region: BoundingRect,
    page: int,
) -> list[SourceFragment]:
    return [
        fragment
        for fragment in fragments
        if fragment.page == page and region.intersects(fragment.bounds)
    ]
