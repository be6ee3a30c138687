from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    rule_engine_ready: bool = False
