# =============================================================================
# Unit Tests — HTTP Surface
# =============================================================================
#
# Drives the FastAPI app through TestClient. The shared orchestrator is
# replaced via dependency_overrides with one whose quote fetcher and stage
# runner are in-process fakes.
#
# Test groups:
#   1. Health
#   2. Running and observing the panel
#   3. Seat configuration
# =============================================================================

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quantalpha.agents.orchestrator import WorkflowOrchestrator
from quantalpha.agents.roles import TIER_ROLES, AgentRole
from quantalpha.api.deps import get_orchestrator
from quantalpha.config import Settings
from quantalpha.main import create_app
from quantalpha.services.market_data import Quote

_QUOTE = Quote(
    name="平安银行", gid="sz000001", current_price=10.0, open_price=9.9,
    prev_close=9.95, day_high=10.1, day_low=9.9, change=0.05,
    change_pct=0.5, volume=800000.0, turnover=8_000_000.0,
    date="2026-10-16", time="15:00:00",
)


async def _fetch_quote(symbol, api_key):
    return _QUOTE


async def _stage_runner(tier, symbol, prior_outputs, configs, api_keys,
                        prompt_context):
    return {role: f"{role.value}: 观点" for role in TIER_ROLES[tier]}


@pytest.fixture
def orchestrator():
    return WorkflowOrchestrator(
        fetch_quote=_fetch_quote,
        stage_runner=_stage_runner,
        settings=Settings(),
    )


@pytest.fixture
def client(orchestrator):
    app = create_app(Settings(app_version="9.9.9"))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# 1. Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["version"] == "9.9.9"


# ---------------------------------------------------------------------------
# 2. Running and Observing the Panel
# ---------------------------------------------------------------------------


class TestAnalysis:
    def test_initial_state_is_idle(self, client):
        body = client.get("/analysis/state").json()
        assert body["status"] == "idle"
        assert body["current_step"] == 0
        assert body["outputs"] == {}
        assert len(body["agent_configs"]) == 10

    def test_run_completes(self, client):
        response = client.post("/analysis", json={"symbol": "000001"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["current_step"] == 5
        assert set(body["outputs"]) == {role.value for role in AgentRole}
        assert body["stock_context"]["current_price"] == 10.0

    def test_api_keys_never_returned(self, client):
        response = client.post(
            "/analysis",
            json={"symbol": "000001", "api_keys": {"deepseek": "sk-secret"}},
        )
        assert "sk-secret" not in response.text
        assert "api_keys" not in response.json()

    def test_invalid_symbol_is_workflow_error_not_422(self, client):
        response = client.post("/analysis", json={"symbol": "AAPL"})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]
        assert body["outputs"] == {}

    def test_missing_symbol_is_422(self, client):
        assert client.post("/analysis", json={}).status_code == 422

    def test_second_run_without_reset_conflicts(self, client):
        client.post("/analysis", json={"symbol": "000001"})
        response = client.post("/analysis", json={"symbol": "000001"})
        assert response.status_code == 409

    def test_reset_returns_to_idle(self, client):
        client.post("/analysis", json={"symbol": "000001"})
        body = client.post("/analysis/reset").json()
        assert body["status"] == "idle"
        assert body["outputs"] == {}
        assert client.post("/analysis", json={"symbol": "000001"}).status_code == 200


# ---------------------------------------------------------------------------
# 3. Seat Configuration
# ---------------------------------------------------------------------------


class TestAgents:
    def test_list_agents(self, client):
        body = client.get("/agents").json()
        assert [a["role"] for a in body] == [role.value for role in AgentRole]

    def test_update_temperature(self, client, orchestrator):
        response = client.put("/agents/gm", json={"temperature": 0.8})
        assert response.status_code == 200
        assert response.json()["temperature"] == 0.8
        assert orchestrator.state.agent_configs[AgentRole.GM].temperature == 0.8

    def test_switch_provider_selects_default_model(self, client):
        response = client.put("/agents/macro", json={"model_provider": "deepseek"})
        assert response.status_code == 200
        assert response.json()["model_provider"] == "deepseek"
        assert response.json()["model_name"] == "deepseek-chat"

    def test_switch_provider_with_explicit_model(self, client):
        response = client.put(
            "/agents/gm",
            json={"model_provider": "anthropic", "model_name": "claude-haiku-4-5"},
        )
        assert response.json()["model_name"] == "claude-haiku-4-5"

    def test_unknown_role_is_404(self, client):
        assert client.put("/agents/cfo", json={"temperature": 0.1}).status_code == 404

    def test_temperature_out_of_range_is_422(self, client):
        assert client.put("/agents/gm", json={"temperature": 1.5}).status_code == 422

    def test_unknown_provider_is_422(self, client):
        response = client.put("/agents/gm", json={"model_provider": "mistral"})
        assert response.status_code == 422

    def test_update_after_run_conflicts(self, client):
        client.post("/analysis", json={"symbol": "000001"})
        assert client.put("/agents/gm", json={"temperature": 0.1}).status_code == 409

    def test_update_used_by_next_run(self, client, orchestrator):
        client.put("/agents/technical", json={"temperature": 0.0})
        client.post("/analysis", json={"symbol": "000001"})
        config = orchestrator.state.agent_configs[AgentRole.TECHNICAL]
        assert config.temperature == 0.0
