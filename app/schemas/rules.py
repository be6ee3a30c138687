from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.fragments import BoundingRect

MatchMode = Literal["exact", "starts_with", "contains", "ends_with"]
InstanceFrom = Literal["start", "end"]
PageScope = Literal["first", "last", "any"]
StartingPosition = Literal["top_left", "top_right", "bottom_left", "bottom_right"]


def _full_page() -> BoundingRect:
    return BoundingRect(top=0.0, left=0.0, right=1.0, bottom=1.0)


class AnchorConfig(BaseModel):
    """How to locate the label fragment that anchors a field."""

    model_config = ConfigDict(frozen=True)

    aliases: list[str] = Field(
        default_factory=list,
        description="Label texts that identify the anchor, e.g. 'Invoice Number'.",
    )
    match_mode: MatchMode = Field(
        default="exact",
        description="How a fragment's text is compared with each alias.",
    )
    ignore_case: bool = True
    normalize_whitespace: bool = True
    instance: int = Field(
        default=1,
        description="Which match to use (1-based), counted from instance_from.",
    )
    instance_from: InstanceFrom = "start"
    page_scope: PageScope = "any"
    search_zone: BoundingRect = Field(
        default_factory=_full_page,
        description="Region to look for the anchor in; bounds <= 1 are page fractions.",
    )


class OffsetRect(BaseModel):
    model_config = ConfigDict(frozen=True)

    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0


class PositionConfig(BaseModel):
    """Where the value lives relative to the anchor."""

    model_config = ConfigDict(frozen=True)

    starting_position: StartingPosition = "top_right"
    offset_rect: OffsetRect = Field(default_factory=OffsetRect)


class RegexPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    regex: str
    priority: int = 0
    label: Optional[str] = None


class ParserConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    patterns: list[RegexPattern] = Field(default_factory=list)
    fallback_to_full_text: bool = False


class AnchorRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    priority: int = 0
    rule_type: Literal["anchor"] = "anchor"
    anchor_config: AnchorConfig = Field(default_factory=AnchorConfig)
    position_config: PositionConfig = Field(default_factory=PositionConfig)
    parser_config: ParserConfig = Field(default_factory=ParserConfig)


class RegexMatchRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    priority: int = 0
    rule_type: Literal["regex_match"] = "regex_match"


class AbsoluteRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    priority: int = 0
    rule_type: Literal["absolute"] = "absolute"


ExtractionRule = Annotated[
    Union[AnchorRule, RegexMatchRule, AbsoluteRule],
    Field(discriminator="rule_type"),
]


class FieldRules(BaseModel):
    """The rule chain for one extractable field."""

    model_config = ConfigDict(frozen=True)

    id: str
    rules: list[ExtractionRule] = Field(default_factory=list)


class LayoutMap(BaseModel):
    """A vendor layout: rule chains for every field of one document type."""

    id: str
    name: Optional[str] = None
    vendor_id: Optional[str] = None
    version: Optional[str] = None
    fields: list[FieldRules] = Field(default_factory=list)
