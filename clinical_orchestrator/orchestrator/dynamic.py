"""Session-owning orchestrator with tool continuity and recommendations."""

import asyncio
import dataclasses
import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..config import DynamicOrchestratorConfig
from ..core import (
    BoundedCache,
    ClassificationCapability,
    ClinicalAgent,
    ConversationMessage,
    OrchestrationResult,
    Recommendations,
    SamplingParams,
    SessionContext,
)
from ..extraction import EntityExtractionEngine
from ..tools import ToolDescriptor, ToolRegistry
from .prompts import (
    ATTACHMENT_MARKER,
    DEFAULT_RECOMMENDATIONS,
    ERROR_RECOMMENDATIONS,
    RECOMMENDATIONS_PROMPT,
)
from .router import IntentRouter

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _recommendations_from(data: dict) -> Recommendations:
    return Recommendations(
        suggested_follow_up=str(data.get("suggested_follow_up", "")),
        alternative_approaches=tuple(str(item) for item in data.get("alternative_approaches", [])),
        clinical_considerations=tuple(
            str(item) for item in data.get("clinical_considerations", [])
        ),
    )


def parse_recommendations(text: Optional[str]) -> Recommendations:
    """Parse the first JSON object in a generated reply.

    Falls back to the default recommendations when the reply holds no
    parsable object.
    """
    match = _JSON_OBJECT.search(text or "")
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict) and data.get("suggested_follow_up"):
            return _recommendations_from(data)
    return _recommendations_from(DEFAULT_RECOMMENDATIONS)


class DynamicOrchestrator:
    """Owns per-session state and delegates each turn to the IntentRouter.

    The orchestrator:
    1. Manages SessionContext objects keyed by session id
    2. Routes turns with IntentRouter.orchestrate_with_tools
    3. Keeps tool continuity across turns
    4. Tracks dominant topics and generates recommendations

    Turns for the same session are serialized with a per-session lock.
    """

    ERROR_CONFIDENCE = 0.3

    def __init__(
        self,
        router: IntentRouter,
        registry: ToolRegistry,
        extraction_engine: EntityExtractionEngine,
        capability: Optional[ClassificationCapability] = None,
        config: Optional[DynamicOrchestratorConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            router: Shared intent router.
            registry: Shared tool registry.
            extraction_engine: Engine used for dominant-topic updates.
            capability: Capability used to generate recommendations. When
                None, default recommendations are returned.
            config: Orchestrator configuration.
            clock: Source of the current time.
        """
        self.router = router
        self.registry = registry
        self.extraction_engine = extraction_engine
        self.capability = capability
        self.config = config or DynamicOrchestratorConfig()
        self._clock = clock
        self._sessions: dict[str, SessionContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._recommendations: BoundedCache[str, Recommendations] = BoundedCache(
            self.config.recommendation_cache_size
        )
        self._background: set[asyncio.Task] = set()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def get_session(self, session_id: str) -> Optional[SessionContext]:
        return self._sessions.get(session_id)

    def _get_or_create_session(
        self,
        session_id: str,
        user_id: str,
        session_history: Optional[list[ConversationMessage]],
        previous_agent: Optional[ClinicalAgent] = None,
    ) -> SessionContext:
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        now = self._clock()
        session = SessionContext(session_id=session_id, user_id=user_id)
        session.metadata.start_time = now
        session.metadata.last_activity = now
        if session_history:
            session.conversation_history = list(session_history)[-self.config.history_limit :]
        session.current_agent = previous_agent
        self._sessions[session_id] = session
        logger.debug(f"Created session: {session_id}")
        return session

    async def orchestrate(
        self,
        user_input: str,
        session_id: str,
        user_id: str,
        session_files: Optional[list[str]] = None,
        session_history: Optional[list[ConversationMessage]] = None,
        previous_agent: Optional[ClinicalAgent] = None,
    ) -> OrchestrationResult:
        """Process one turn.

        Args:
            user_input: The user's message.
            session_id: Conversation id.
            user_id: Owner of the conversation.
            session_files: Names of files attached to this turn.
            session_history: Transcript used to seed a new session.
            previous_agent: Agent to assume for a new session.

        Returns:
            OrchestrationResult. Unexpected failures produce the
            deterministic error result instead of raising.
        """
        async with self._lock_for(session_id):
            try:
                return await self._orchestrate_turn(
                    user_input,
                    session_id,
                    user_id,
                    session_files,
                    session_history,
                    previous_agent,
                )
            except Exception as e:
                logger.error(f"Error orchestrating session {session_id}: {e}", exc_info=True)
                return self.create_error_result(str(e), session_id)

    async def _orchestrate_turn(
        self,
        user_input: str,
        session_id: str,
        user_id: str,
        session_files: Optional[list[str]],
        session_history: Optional[list[ConversationMessage]],
        previous_agent: Optional[ClinicalAgent],
    ) -> OrchestrationResult:
        session = self._get_or_create_session(
            session_id, user_id, session_history, previous_agent
        )
        session.metadata.last_activity = self._clock()

        turn_text = self._with_attachments(user_input, session_files)
        prior_history = list(session.conversation_history)
        session.add_message("user", turn_text, self.config.history_limit)
        session.metadata.total_interactions += 1

        routed = await self.router.orchestrate_with_tools(
            turn_text, prior_history, session.current_agent
        )

        optimized = self.optimize_tool_selection(list(routed.tool_metadata), session.active_tools)
        self._update_agent(session, routed.selected_agent)
        session.active_tools = optimized
        await self._update_dominant_topics(session)

        recommendations = await self._recommendations_for(session, routed, user_input)

        return dataclasses.replace(
            routed,
            contextual_tools=tuple(tool.callable_schema for tool in optimized),
            tool_metadata=tuple(optimized),
            recommendations=recommendations,
            orchestration_type="dynamic",
            session_id=session_id,
            dominant_topics=tuple(session.metadata.dominant_topics),
            session_length=len(session.conversation_history),
            metadata={
                "total_interactions": session.metadata.total_interactions,
                "agent_switches": session.metadata.agent_switches,
            },
        )

    def _with_attachments(self, user_input: str, session_files: Optional[list[str]]) -> str:
        if not session_files:
            return user_input
        marker = ATTACHMENT_MARKER.format(
            count=len(session_files), names=", ".join(session_files)
        )
        return f"{user_input}\n\n{marker}"

    def _update_agent(self, session: SessionContext, agent: ClinicalAgent) -> None:
        if session.current_agent is not None and session.current_agent != agent:
            session.metadata.agent_switches += 1
            logger.info(
                f"Agent switch in session {session.session_id}: "
                f"{session.current_agent.value} -> {agent.value}"
            )
        session.current_agent = agent

    def optimize_tool_selection(
        self, new_tools: list[ToolDescriptor], active_tools: list[ToolDescriptor]
    ) -> list[ToolDescriptor]:
        """Merge newly selected tools with the session's active tools.

        Active tools that are selected again come first, in their previous
        order; new tools fill the remaining capacity. The result never
        exceeds max_tools_per_session.
        """
        new_names = {tool.name for tool in new_tools}
        optimized: list[ToolDescriptor] = []
        seen: set[str] = set()

        for tool in active_tools:
            if tool.name in new_names and tool.name not in seen:
                optimized.append(tool)
                seen.add(tool.name)

        for tool in new_tools:
            if tool.name not in seen:
                optimized.append(tool)
                seen.add(tool.name)

        return optimized[: self.config.max_tools_per_session]

    async def _update_dominant_topics(self, session: SessionContext) -> None:
        interval = max(1, self.config.dominant_topics_update_interval)
        if len(session.conversation_history) < 2:
            return
        if session.metadata.total_interactions % interval != 0:
            return

        window = session.conversation_history[-self.config.topic_window :]
        text = "\n".join(message.text for message in window)
        result = await self.extraction_engine.extract_entities(text)

        candidates = sorted(
            (
                entity
                for entity in result.entities
                if entity.confidence > self.config.topic_confidence_floor
            ),
            key=lambda entity: entity.confidence,
            reverse=True,
        )
        new_topics = [entity.value for entity in candidates[: self.config.new_topics_per_update]]

        merged: list[str] = []
        for topic in new_topics + session.metadata.dominant_topics:
            if topic not in merged:
                merged.append(topic)
        session.metadata.dominant_topics = merged[: self.config.max_dominant_topics]
        logger.debug(
            f"Dominant topics for {session.session_id}: {session.metadata.dominant_topics}"
        )

    async def _recommendations_for(
        self, session: SessionContext, routed: OrchestrationResult, user_input: str
    ) -> Optional[Recommendations]:
        if not self.config.enable_recommendations:
            return None

        if self.config.async_recommendations:
            self._schedule_recommendations(session, routed, user_input)
            return self._recommendations.get(session.session_id)

        recommendations = await self._generate_recommendations(session, routed, user_input)
        self._recommendations.put(session.session_id, recommendations)
        return recommendations

    def _schedule_recommendations(
        self, session: SessionContext, routed: OrchestrationResult, user_input: str
    ) -> None:
        async def generate_and_cache() -> None:
            recommendations = await self._generate_recommendations(session, routed, user_input)
            self._recommendations.put(session.session_id, recommendations)

        task = asyncio.create_task(generate_and_cache())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain_background_tasks(self) -> None:
        """Wait for every pending recommendation task to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _generate_recommendations(
        self, session: SessionContext, routed: OrchestrationResult, user_input: str
    ) -> Recommendations:
        if self.capability is None:
            return _recommendations_from(DEFAULT_RECOMMENDATIONS)

        prompt = RECOMMENDATIONS_PROMPT.format(
            agent=routed.selected_agent.value,
            tools=", ".join(routed.tool_names) or "ninguna",
            topics=", ".join(session.metadata.dominant_topics) or "ninguno",
            user_input=user_input[:300],
        )
        try:
            response = await self.capability.call(
                prompt, [], SamplingParams(temperature=0.3, max_tokens=400)
            )
        except Exception as e:
            logger.warning(f"Recommendation generation failed for {session.session_id}: {e}")
            return _recommendations_from(DEFAULT_RECOMMENDATIONS)
        return parse_recommendations(response.text)

    def get_cached_recommendations(self, session_id: str) -> Optional[Recommendations]:
        return self._recommendations.get(session_id)

    def create_error_result(
        self, reason: str, session_id: Optional[str] = None
    ) -> OrchestrationResult:
        """Deterministic result used when a turn fails unexpectedly."""
        tools = self.registry.get_basic_tools()
        return OrchestrationResult(
            success=False,
            selected_agent=self.router.fallback_agent,
            contextual_tools=tuple(tool.callable_schema for tool in tools),
            tool_metadata=tuple(tools),
            confidence=self.ERROR_CONFIDENCE,
            reasoning=f"Error en orquestación: {reason}",
            recommendations=_recommendations_from(ERROR_RECOMMENDATIONS),
            orchestration_type="dynamic",
            session_id=session_id,
            error=reason,
        )

    def cleanup_expired_sessions(self) -> int:
        """Remove sessions whose age since start exceeds the timeout.

        Returns:
            Number of sessions removed.
        """
        timeout = timedelta(minutes=self.config.session_timeout_minutes)
        now = self._clock()

        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.metadata.start_time > timeout
        ]

        for session_id in expired:
            del self._sessions[session_id]
            lock = self._locks.get(session_id)
            if lock is not None and not lock.locked():
                del self._locks[session_id]
            self._recommendations.pop(session_id)
            logger.debug(f"Cleaned up expired session: {session_id}")

        if expired:
            logger.info(f"Removed {len(expired)} expired session(s)")
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        sessions = list(self._sessions.values())
        total_tools = sum(len(session.active_tools) for session in sessions)
        return {
            "active_sessions": len(sessions),
            "total_interactions": sum(
                session.metadata.total_interactions for session in sessions
            ),
            "average_tools_per_session": (total_tools / len(sessions)) if sessions else 0.0,
            "cached_recommendations": len(self._recommendations),
            "pending_background_tasks": len(self._background),
            "tool_registry": self.registry.get_registry_stats(),
        }
