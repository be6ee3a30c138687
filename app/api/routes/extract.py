import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import RuleEngineDep
from app.schemas.extraction import ExtractionRequest, RuleEngineResult
from app.services.pipelines.extraction import ExtractionPipeline

router = APIRouter(tags=["extraction"])

logger = logging.getLogger(__name__)


@router.post(
    "/extract",
    summary="Run a layout map over document fragments",
    response_model=RuleEngineResult,
)
async def extract_fields(
    request: ExtractionRequest,
    rule_engine: RuleEngineDep,
) -> RuleEngineResult:
    """Evaluate every field's rule chain and return the extracted values."""

    if not request.layout_map.id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="layout_map.id is required",
        )

    pipeline = ExtractionPipeline(rule_engine=rule_engine)
    try:
        return pipeline.run(request.fragments, request.layout_map)
    except Exception as exc:  # pragma: no cover
        logger.exception("Field extraction failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Field extraction failed.",
        ) from exc
