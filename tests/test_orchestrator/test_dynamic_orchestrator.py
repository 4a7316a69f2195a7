"""Tests for DynamicOrchestrator session handling."""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from clinical_orchestrator.config import DynamicOrchestratorConfig
from clinical_orchestrator.core import (
    ClinicalAgent,
    ConversationMessage,
    OrchestrationResult,
)
from clinical_orchestrator.orchestrator import DynamicOrchestrator, parse_recommendations

from conftest import FakeClock, ScriptedCapability, technique_entity


def _routed(tools, agent=ClinicalAgent.SOCRATIC, confidence=0.9):
    return OrchestrationResult(
        success=True,
        selected_agent=agent,
        contextual_tools=tuple(tool.callable_schema for tool in tools),
        tool_metadata=tuple(tools),
        confidence=confidence,
        reasoning="routed",
        detected_intent="activar_modo_socratico",
    )


def _mock_router(*results):
    router = MagicMock()
    router.fallback_agent = ClinicalAgent.SOCRATIC
    router.orchestrate_with_tools = AsyncMock(side_effect=list(results))
    return router


def _orchestrator(router, registry, engine, capability=None, clock=None, **config):
    config.setdefault("enable_recommendations", False)
    return DynamicOrchestrator(
        router,
        registry,
        engine,
        capability=capability,
        config=DynamicOrchestratorConfig(**config),
        clock=clock or FakeClock(),
    )


class TestToolContinuity:
    """Test suite for tool continuity across turns."""

    @pytest.mark.asyncio
    async def test_continuity_tools_first_then_capped(self, registry, engine):
        a, b, c, d = (
            registry.get("formulate_clarifying_question"),
            registry.get("identify_core_emotion"),
            registry.get("detect_pattern"),
            registry.get("reframe_perspective"),
        )
        router = _mock_router(_routed([a, b, c]), _routed([b, c, d]))
        orchestrator = _orchestrator(router, registry, engine, max_tools_per_session=2)

        await orchestrator.orchestrate("primer turno", "s1", "u1")
        result = await orchestrator.orchestrate("segundo turno", "s1", "u1")

        assert result.tool_names == [b.name, c.name]
        assert orchestrator.get_session("s1").active_tools == [b, c]

    def test_optimize_keeps_previous_order_for_reselected_tools(self, orchestrator, registry):
        tools = registry.get_all()
        optimized = orchestrator.optimize_tool_selection(
            new_tools=[tools[0], tools[1], tools[2]], active_tools=[tools[2], tools[1], tools[5]]
        )
        assert optimized == [tools[2], tools[1], tools[0]]


class TestSessionState:
    """Test suite for per-session bookkeeping."""

    @pytest.mark.asyncio
    async def test_router_receives_history_before_current_message(self, registry, engine):
        tool = registry.get("detect_pattern")
        router = _mock_router(_routed([tool]), _routed([tool]))
        orchestrator = _orchestrator(router, registry, engine)

        await orchestrator.orchestrate("uno", "s1", "u1")
        result = await orchestrator.orchestrate("dos", "s1", "u1")

        _, history, _ = router.orchestrate_with_tools.call_args.args
        assert [m.text for m in history] == ["uno"]
        assert result.session_length == 2
        assert result.session_id == "s1"
        assert result.orchestration_type == "dynamic"
        assert result.metadata["total_interactions"] == 2

    @pytest.mark.asyncio
    async def test_new_session_is_seeded_from_history(self, registry, engine):
        router = _mock_router(_routed([]))
        orchestrator = _orchestrator(router, registry, engine)
        seed = [ConversationMessage(role="user", text="antes")]

        result = await orchestrator.orchestrate(
            "ahora", "s1", "u1", session_history=seed, previous_agent=ClinicalAgent.ACADEMIC
        )

        text, history, previous = router.orchestrate_with_tools.call_args.args
        assert [m.text for m in history] == ["antes"]
        assert previous == ClinicalAgent.ACADEMIC
        assert result.session_length == 2

    @pytest.mark.asyncio
    async def test_agent_switches_are_counted(self, registry, engine):
        router = _mock_router(
            _routed([], agent=ClinicalAgent.SOCRATIC),
            _routed([], agent=ClinicalAgent.CLINICAL),
            _routed([], agent=ClinicalAgent.CLINICAL),
        )
        orchestrator = _orchestrator(router, registry, engine)

        for text in ("a", "b", "c"):
            result = await orchestrator.orchestrate(text, "s1", "u1")

        assert result.metadata["agent_switches"] == 1
        assert orchestrator.get_session("s1").current_agent == ClinicalAgent.CLINICAL

    @pytest.mark.asyncio
    async def test_attachments_are_announced_to_the_router(self, registry, engine):
        router = _mock_router(_routed([]))
        orchestrator = _orchestrator(router, registry, engine)

        await orchestrator.orchestrate("revisa esto", "s1", "u1", session_files=["nota.pdf"])

        text = router.orchestrate_with_tools.call_args.args[0]
        assert text.startswith("revisa esto")
        assert "1 archivo(s): nota.pdf" in text

    @pytest.mark.asyncio
    async def test_turns_for_one_session_are_serialized(self, registry, engine):
        in_flight = 0
        max_in_flight = 0

        async def slow_route(text, history, previous_agent):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return _routed([])

        router = MagicMock()
        router.fallback_agent = ClinicalAgent.SOCRATIC
        router.orchestrate_with_tools = slow_route
        orchestrator = _orchestrator(router, registry, engine)

        await asyncio.gather(*(orchestrator.orchestrate(f"m{i}", "s1", "u1") for i in range(3)))

        assert max_in_flight == 1
        assert orchestrator.get_session("s1").metadata.total_interactions == 3

    @pytest.mark.asyncio
    async def test_unexpected_failure_returns_error_result(self, registry, engine):
        router = MagicMock()
        router.fallback_agent = ClinicalAgent.SOCRATIC
        router.orchestrate_with_tools = AsyncMock(side_effect=RuntimeError("router down"))
        orchestrator = _orchestrator(router, registry, engine)

        result = await orchestrator.orchestrate("hola", "s1", "u1")

        assert not result.success
        assert result.confidence == 0.3
        assert result.error == "router down"
        assert list(result.tool_metadata) == registry.get_basic_tools()
        assert result.recommendations.suggested_follow_up == "Intenta reformular tu consulta"


class TestSessionExpiry:
    """Test suite for cleanup_expired_sessions."""

    @pytest.mark.asyncio
    async def test_sessions_expire_by_age_since_start(self, registry, engine):
        clock = FakeClock()
        router = _mock_router(_routed([]), _routed([]), _routed([]))
        orchestrator = _orchestrator(
            router, registry, engine, clock=clock, session_timeout_minutes=60
        )

        await orchestrator.orchestrate("a", "old", "u1")
        clock.advance(timedelta(minutes=30))
        await orchestrator.orchestrate("b", "new", "u1")
        clock.advance(timedelta(minutes=29))
        await orchestrator.orchestrate("c", "old", "u1")

        assert orchestrator.cleanup_expired_sessions() == 0

        clock.advance(timedelta(minutes=2))
        assert orchestrator.cleanup_expired_sessions() == 1
        assert orchestrator.get_session("old") is None
        assert orchestrator.get_session("new") is not None


class TestDominantTopics:
    """Test suite for dominant topic tracking."""

    @pytest.mark.asyncio
    async def test_topics_update_every_interval(self, orchestrator, capability):
        orchestrator.config.dominant_topics_update_interval = 2
        orchestrator.config.enable_recommendations = False
        capability.extraction_calls = [technique_entity("EMDR", 0.9)]

        first = await orchestrator.orchestrate("uno", "s1", "u1")
        second = await orchestrator.orchestrate("dos", "s1", "u1")

        assert first.dominant_topics == ()
        assert second.dominant_topics == ("EMDR",)


class TestRecommendations:
    """Test suite for recommendation generation."""

    @pytest.mark.asyncio
    async def test_sync_recommendations_are_parsed_and_cached(self, orchestrator, capability):
        capability.text = json.dumps(
            {
                "suggested_follow_up": "Explora la relación con el padre",
                "alternative_approaches": ["Genograma"],
                "clinical_considerations": ["Riesgo bajo"],
            }
        )

        result = await orchestrator.orchestrate("hola", "s1", "u1")

        assert result.recommendations.suggested_follow_up == "Explora la relación con el padre"
        assert result.recommendations.alternative_approaches == ("Genograma",)
        assert orchestrator.get_cached_recommendations("s1") == result.recommendations

    @pytest.mark.asyncio
    async def test_async_recommendations_arrive_after_drain(self, orchestrator, capability):
        orchestrator.config.async_recommendations = True
        capability.text = '{"suggested_follow_up": "Pregunta por el sueño"}'

        result = await orchestrator.orchestrate("hola", "s1", "u1")
        assert result.recommendations is None

        await orchestrator.drain_background_tasks()
        cached = orchestrator.get_cached_recommendations("s1")
        assert cached.suggested_follow_up == "Pregunta por el sueño"

    @pytest.mark.asyncio
    async def test_recommendation_cache_is_bounded(self, router, registry, engine, capability):
        capability.text = '{"suggested_follow_up": "x"}'
        orchestrator = DynamicOrchestrator(
            router,
            registry,
            engine,
            capability=capability,
            config=DynamicOrchestratorConfig(recommendation_cache_size=1),
            clock=FakeClock(),
        )

        await orchestrator.orchestrate("a", "s1", "u1")
        await orchestrator.orchestrate("b", "s2", "u1")

        assert orchestrator.get_cached_recommendations("s1") is None
        assert orchestrator.get_cached_recommendations("s2") is not None


class TestParseRecommendations:
    """Test suite for parse_recommendations."""

    def test_extracts_json_from_surrounding_text(self):
        text = 'Aquí tienes: {"suggested_follow_up": "Indaga", "alternative_approaches": []} fin'
        assert parse_recommendations(text).suggested_follow_up == "Indaga"

    @pytest.mark.parametrize("text", [None, "", "sin json", "{roto", '{"otro": 1}'])
    def test_falls_back_to_defaults(self, text):
        recommendations = parse_recommendations(text)
        assert recommendations.suggested_follow_up.startswith("Continúa explorando")
