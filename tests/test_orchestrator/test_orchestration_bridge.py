"""Tests for OrchestrationBridge mode selection, fallback and metrics."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from clinical_orchestrator.config import BridgeConfig
from clinical_orchestrator.core import ClinicalAgent, OrchestrationResult
from clinical_orchestrator.orchestrator import (
    LegacyRouter,
    OrchestrationBridge,
    OrchestrationMode,
)


def _result(registry, tool_ids, confidence=0.9, success=True, agent=ClinicalAgent.ACADEMIC):
    tools = [registry.get(tool_id) for tool_id in tool_ids]
    return OrchestrationResult(
        success=success,
        selected_agent=agent,
        contextual_tools=tuple(tool.callable_schema for tool in tools),
        tool_metadata=tuple(tools),
        confidence=confidence,
        reasoning="dinámico",
        orchestration_type="dynamic",
        error=None if success else "falló",
    )


class FakeTimer:
    """Advances 10ms on every reading."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        self.now += 0.01
        return self.now


@pytest.fixture
def dynamic(registry):
    orchestrator = MagicMock()
    orchestrator.orchestrate = AsyncMock(return_value=_result(registry, ["search_academic_web"]))
    orchestrator.create_error_result = MagicMock(
        side_effect=lambda reason, session_id=None: _result(
            registry, [], confidence=0.3, success=False
        )
    )
    orchestrator.cleanup_expired_sessions = MagicMock(return_value=2)
    orchestrator.get_stats = MagicMock(return_value={"active_sessions": 0})
    return orchestrator


def _bridge(dynamic, registry, random_value=0.5, **config):
    return OrchestrationBridge(
        dynamic,
        LegacyRouter(registry),
        config=BridgeConfig(**config),
        random_source=lambda: random_value,
        timer=FakeTimer(),
    )


class TestModeSelection:
    """Test suite for select_mode."""

    def test_force_mode_wins(self, dynamic, registry):
        bridge = _bridge(dynamic, registry, enable_dynamic_orchestration=False)
        assert bridge.select_mode("hybrid") == OrchestrationMode.HYBRID

    def test_disabled_dynamic_means_legacy(self, dynamic, registry):
        bridge = _bridge(dynamic, registry, enable_dynamic_orchestration=False)
        assert bridge.select_mode() == OrchestrationMode.LEGACY

    @pytest.mark.parametrize("random_value,mode", [(0.29, "dynamic"), (0.3, "legacy")])
    def test_gradual_migration_split(self, dynamic, registry, random_value, mode):
        bridge = _bridge(
            dynamic,
            registry,
            random_value=random_value,
            enable_gradual_migration=True,
            migration_percentage=30.0,
        )
        assert bridge.select_mode() == OrchestrationMode(mode)

    def test_default_is_dynamic(self, dynamic, registry):
        assert _bridge(dynamic, registry).select_mode() == OrchestrationMode.DYNAMIC


class TestOrchestrate:
    """Test suite for OrchestrationBridge.orchestrate."""

    @pytest.mark.asyncio
    async def test_dynamic_success_passes_through(self, dynamic, registry):
        bridge = _bridge(dynamic, registry)
        result = await bridge.orchestrate("hola", "s1", "u1")

        assert result.orchestration_type == "dynamic"
        assert result.selected_agent == ClinicalAgent.ACADEMIC
        dynamic.orchestrate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_legacy_mode(self, dynamic, registry):
        bridge = _bridge(dynamic, registry)
        result = await bridge.orchestrate("un resumen", "s1", "u1", force_mode="legacy")

        assert result.orchestration_type == "legacy"
        assert result.selected_agent == ClinicalAgent.CLINICAL
        dynamic.orchestrate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_force_mode_uses_default_selection(self, dynamic, registry):
        bridge = _bridge(dynamic, registry)
        result = await bridge.orchestrate("hola", "s1", "u1", force_mode="turbo")
        assert result.orchestration_type == "dynamic"

    @pytest.mark.asyncio
    async def test_dynamic_exception_falls_back_to_legacy(self, dynamic, registry):
        dynamic.orchestrate.side_effect = RuntimeError("boom")
        bridge = _bridge(dynamic, registry)

        result = await bridge.orchestrate("hola", "s1", "u1")

        assert result.success
        assert result.orchestration_type == "legacy"
        assert result.metadata["fallback_from"] == "dynamic"
        assert "boom" in result.reasoning
        assert bridge.metrics.fallback_count == 1

    @pytest.mark.asyncio
    async def test_dynamic_error_result_falls_back_to_legacy(self, dynamic, registry):
        dynamic.orchestrate.return_value = _result(registry, [], success=False)
        bridge = _bridge(dynamic, registry)

        result = await bridge.orchestrate("hola", "s1", "u1")

        assert result.orchestration_type == "legacy"
        assert bridge.metrics.fallback_count == 1

    @pytest.mark.asyncio
    async def test_no_fallback_returns_dynamic_error(self, dynamic, registry):
        dynamic.orchestrate.side_effect = RuntimeError("boom")
        bridge = _bridge(dynamic, registry, fallback_to_legacy=False)

        result = await bridge.orchestrate("hola", "s1", "u1")

        assert not result.success
        assert result.confidence == 0.3
        assert bridge.metrics.error_count == 1

    @pytest.mark.asyncio
    async def test_hybrid_keeps_confident_dynamic_result(self, dynamic, registry):
        bridge = _bridge(dynamic, registry)
        result = await bridge.orchestrate("hola", "s1", "u1", force_mode="hybrid")

        assert result.orchestration_type == "hybrid"
        assert result.tool_names == ["google_search"]

    @pytest.mark.asyncio
    async def test_hybrid_merges_tools_when_dynamic_is_unsure(self, dynamic, registry):
        dynamic.orchestrate.return_value = _result(
            registry, ["search_academic_web", "identify_core_emotion"], confidence=0.5
        )
        bridge = _bridge(dynamic, registry)

        result = await bridge.orchestrate("hola", "s1", "u1", force_mode="hybrid")

        assert result.orchestration_type == "hybrid"
        assert result.tool_names == [
            "google_search",
            "identify_core_emotion",
            "formulate_clarifying_question",
        ]
        assert result.confidence == LegacyRouter.CONFIDENCE
        assert result.selected_agent == ClinicalAgent.ACADEMIC


class TestMetrics:
    """Test suite for bridge performance metrics."""

    @pytest.mark.asyncio
    async def test_online_averages(self, dynamic, registry):
        bridge = _bridge(dynamic, registry, fallback_to_legacy=False)
        await bridge.orchestrate("a", "s1", "u1")
        await bridge.orchestrate("b", "s1", "u1", force_mode="legacy")
        dynamic.orchestrate.side_effect = RuntimeError("boom")
        await bridge.orchestrate("c", "s1", "u1")

        metrics = bridge.get_performance_metrics()
        assert metrics["total_requests"] == 3
        assert metrics["dynamic_requests"] == 2
        assert metrics["legacy_requests"] == 1
        assert abs(metrics["success_rate"] - 2 / 3) < 1e-9
        assert abs(metrics["error_rate"] - 1 / 3) < 1e-9
        assert abs(metrics["average_response_time_ms"] - 10.0) < 1e-6

    @pytest.mark.asyncio
    async def test_reset_and_cleanup(self, dynamic, registry):
        bridge = _bridge(dynamic, registry)
        await bridge.orchestrate("a", "s1", "u1")
        bridge.reset_metrics()

        assert bridge.get_performance_metrics()["total_requests"] == 0
        assert bridge.cleanup() == 2
        assert bridge.get_system_stats()["orchestrator"] == {"active_sessions": 0}

    @pytest.mark.asyncio
    async def test_monitoring_disabled(self, dynamic, registry):
        bridge = _bridge(dynamic, registry, enable_performance_monitoring=False)
        await bridge.orchestrate("a", "s1", "u1")
        assert bridge.metrics.total_requests == 0
