import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.services.rules.rule_engine import RuleEngine
from app.state import global_state


@pytest.mark.asyncio
async def test_health(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(global_state, "rule_engine", None)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "rule_engine_ready": False}


@pytest.mark.asyncio
async def test_health_reports_ready_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(global_state, "rule_engine", RuleEngine())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/health")

    assert response.json()["rule_engine_ready"] is True
