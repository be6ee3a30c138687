from typing import Annotated

from fastapi import Depends, HTTPException

from app.services.rules.rule_engine import RuleEngine
from app.state import global_state


async def get_rule_engine() -> RuleEngine:
    if not global_state.rule_engine:
        raise HTTPException(status_code=503, detail="Rule engine not initialized")
    return global_state.rule_engine


RuleEngineDep = Annotated[RuleEngine, Depends(get_rule_engine)]
