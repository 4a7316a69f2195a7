"""Tests for the orchestration API endpoints."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from clinical_orchestrator.api.routes.orchestration import (
    OrchestrateRequest,
    reset_orchestration_system,
    set_orchestration_system,
)
from clinical_orchestrator.api.server import app, create_app
from clinical_orchestrator.config import OrchestrationSystemConfig
from clinical_orchestrator.core import ClinicalAgent
from clinical_orchestrator.orchestrator import OrchestrationMode, create_orchestration_system
from clinical_orchestrator.tools import ToolRegistry

from conftest import ScriptedCapability, documentation_entity


@pytest.fixture
def capability():
    return ScriptedCapability()


@pytest.fixture
def system(capability):
    system = create_orchestration_system(
        config=OrchestrationSystemConfig(), capability=capability
    )
    set_orchestration_system(system)
    yield system
    reset_orchestration_system()


@pytest.fixture
def client(system):
    """Create test client bound to a scripted orchestration system."""
    return TestClient(app)


class TestLivenessEndpoints:
    """Test suite for / and /health."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert set(data["agents"]) == {"socratico", "clinico", "academico"}

    def test_root(self, client):
        data = client.get("/").json()
        assert data["name"] == "Clinical Orchestrator API"
        assert data["docs"] == "/docs"

    def test_unexpected_error_returns_500(self, system):
        system.get_health_status = MagicMock(side_effect=RuntimeError("boom"))
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/v1/orchestration/health")

        assert response.status_code == 500
        assert response.json()["code"] == "internal_error"

    def test_create_app_registers_routes(self):
        paths = create_app().openapi()["paths"]
        assert "/api/v1/orchestrate" in paths
        assert "/api/v1/orchestration/health" in paths


class TestOrchestrateEndpoint:
    """Test suite for POST /api/v1/orchestrate."""

    def test_empty_input_returns_400(self, client):
        response = client.post("/api/v1/orchestrate", json={"user_input": "   "})
        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_missing_input_returns_422(self, client):
        response = client.post("/api/v1/orchestrate", json={})
        assert response.status_code == 422

    def test_invalid_mode_returns_422(self, client):
        response = client.post(
            "/api/v1/orchestrate", json={"user_input": "hola", "force_mode": "turbo"}
        )
        assert response.status_code == 422

    def test_invalid_previous_agent_returns_422(self, client):
        response = client.post(
            "/api/v1/orchestrate", json={"user_input": "hola", "previous_agent": "nadie"}
        )
        assert response.status_code == 422

    def test_routes_documentation_request(self, client, capability):
        capability.intent = "activar_modo_clinico"
        capability.intent_args = {"tipo_resumen": "sesion"}
        capability.extraction_calls = [documentation_entity(0.9)]

        response = client.post(
            "/api/v1/orchestrate",
            json={"user_input": "Necesito un resumen de esta sesión", "session_id": "s1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["session_id"] == "s1"
        assert data["selected_agent"] == "clinico"
        assert data["orchestration_type"] == "dynamic"
        assert data["session_length"] == 1
        assert len(data["tools"]) == len(data["contextual_tools"])

    def test_generates_session_id(self, client):
        response = client.post("/api/v1/orchestrate", json={"user_input": "hola"})
        assert response.status_code == 200
        assert len(response.json()["session_id"].split("-")) == 5

    def test_forced_legacy_mode(self, client):
        response = client.post(
            "/api/v1/orchestrate",
            json={"user_input": "Busca estudios sobre EMDR", "force_mode": "legacy"},
        )
        assert response.json()["orchestration_type"] == "legacy"

    def test_client_history_is_used(self, client, system):
        client.post(
            "/api/v1/orchestrate",
            json={
                "user_input": "¿y ahora?",
                "session_id": "s2",
                "session_history": [{"role": "user", "text": "antes"}],
            },
        )
        session = system.orchestrator.get_session("s2")
        assert [m.text for m in session.conversation_history] == ["antes", "¿y ahora?"]

    def test_request_model_parses_enums(self):
        request = OrchestrateRequest(
            user_input="hola", force_mode="hybrid", previous_agent="academico"
        )
        assert request.force_mode == OrchestrationMode.HYBRID
        assert request.previous_agent == ClinicalAgent.ACADEMIC


class TestOperationalEndpoints:
    """Test suite for health, metrics, alerts, reports and cleanup."""

    def test_orchestration_health(self, client):
        response = client.get("/api/v1/orchestration/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unhealthy_returns_503(self, client, system):
        system.registry = ToolRegistry()
        response = client.get("/api/v1/orchestration/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_metrics_after_turn(self, client):
        client.post("/api/v1/orchestrate", json={"user_input": "hola"})
        data = client.get("/api/v1/orchestration/metrics").json()
        assert data["monitoring"]["total_orchestrations"] == 1
        assert data["bridge"]["total_requests"] == 1

    def test_alerts_and_resolve(self, client, capability):
        capability.intent = "activar_modo_socratico"
        capability.intent_args = {}
        client.post("/api/v1/orchestrate", json={"user_input": "hola"})

        alerts = client.get("/api/v1/orchestration/alerts").json()
        assert alerts["count"] == 1
        alert_id = alerts["alerts"][0]["id"]
        assert alerts["alerts"][0]["category"] == "accuracy"

        response = client.post(f"/api/v1/orchestration/alerts/{alert_id}/resolve")
        assert response.json() == {"resolved": True, "alert_id": alert_id}
        assert client.get("/api/v1/orchestration/alerts").json()["count"] == 0

    def test_resolve_unknown_alert_returns_404(self, client):
        response = client.post("/api/v1/orchestration/alerts/missing/resolve")
        assert response.status_code == 404

    def test_report(self, client):
        client.post("/api/v1/orchestrate", json={"user_input": "hola"})
        response = client.get("/api/v1/orchestration/reports", params={"days": 1})
        assert response.status_code == 200
        assert response.json()["total_events"] == 1

    def test_report_rejects_out_of_range_days(self, client):
        response = client.get("/api/v1/orchestration/reports", params={"days": 0})
        assert response.status_code == 422

    def test_cleanup(self, client):
        response = client.post("/api/v1/orchestration/cleanup")
        assert response.json() == {
            "sessions_removed": 0,
            "events_removed": 0,
            "alerts_removed": 0,
        }

    def test_list_tools(self, client):
        data = client.get("/api/v1/tools").json()
        assert data["count"] == len(data["tools"]) == 7
        ids = {tool["id"] for tool in data["tools"]}
        assert "search_academic_web" in ids
