from fastapi import APIRouter

from app.schemas.common import HealthResponse
from app.state import global_state

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service and rule engine status")
async def health() -> HealthResponse:
    return HealthResponse(status="ok", rule_engine_ready=global_state.rule_engine is not None)
