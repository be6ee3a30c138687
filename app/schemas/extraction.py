from pydantic import BaseModel, Field

from app.schemas.fragments import SourceFragment
from app.schemas.rules import LayoutMap


class ExtractionSegment(BaseModel):
    """One reading-order line of the text a value was built from."""

    text: str
    source_fragment_ids: list[str] = Field(default_factory=list)


class FieldExtraction(BaseModel):
    field_id: str = Field(..., description="Id of the extracted field in the layout map.")
    value: str = Field(..., description="Parsed value.")
    segments: list[ExtractionSegment] = Field(default_factory=list)
    rule_id: str = Field(..., description="Rule that produced the value.")

    def source_fragment_ids(self) -> list[str]:
        """All contributing fragment ids in reading order, without duplicates."""

        seen: dict[str, None] = {}
        for segment in self.segments:
            for fragment_id in segment.source_fragment_ids:
                seen.setdefault(fragment_id, None)
        return list(seen)


class RuleEngineResult(BaseModel):
    extractions: list[FieldExtraction] = Field(default_factory=list)
    matched_rule_ids: list[str] = Field(default_factory=list)
    unmatched_rule_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ExtractionRequest(BaseModel):
    fragments: list[SourceFragment] = Field(
        ...,
        description="Recognized text fragments of the document.",
    )
    layout_map: LayoutMap = Field(
        ...,
        description="Rule chains to evaluate against the fragments.",
    )
