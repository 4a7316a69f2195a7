"""Bridge between the dynamic orchestrator and the legacy router."""

import dataclasses
import logging
import random
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from ..config import BridgeConfig
from ..core import ClinicalAgent, ConversationMessage, OrchestrationResult
from .dynamic import DynamicOrchestrator
from .legacy import LegacyRouter

logger = logging.getLogger(__name__)


class OrchestrationMode(str, Enum):
    """Which implementation handles a turn."""

    DYNAMIC = "dynamic"
    LEGACY = "legacy"
    HYBRID = "hybrid"


@dataclass
class BridgePerformanceMetrics:
    """Running counters maintained as online averages."""

    total_requests: int = 0
    dynamic_requests: int = 0
    legacy_requests: int = 0
    hybrid_requests: int = 0
    fallback_count: int = 0
    error_count: int = 0
    average_response_time_ms: float = 0.0
    success_rate: float = 0.0

    @property
    def error_rate(self) -> float:
        return self.error_count / self.total_requests if self.total_requests else 0.0


def online_average(old_average: float, value: float, count: int) -> float:
    """Incremental mean after adding the count-th value."""
    if count <= 0:
        return value
    return (old_average * (count - 1) + value) / count


class OrchestrationBridge:
    """Chooses dynamic, legacy or hybrid orchestration per turn.

    Mode selection:
    1. force_mode, when given
    2. legacy, when dynamic orchestration is disabled
    3. random split by migration percentage, when gradual migration is on
    4. dynamic otherwise
    """

    def __init__(
        self,
        orchestrator: DynamicOrchestrator,
        legacy_router: LegacyRouter,
        config: Optional[BridgeConfig] = None,
        random_source: Callable[[], float] = random.random,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the bridge.

        Args:
            orchestrator: Dynamic orchestrator.
            legacy_router: Rule-based router used for legacy mode and fallback.
            config: Bridge configuration.
            random_source: Returns uniform floats in [0, 1) for the traffic split.
            timer: Monotonic clock in seconds for response times.
        """
        self.orchestrator = orchestrator
        self.legacy_router = legacy_router
        self.config = config or BridgeConfig()
        self._random = random_source
        self._timer = timer
        self.metrics = BridgePerformanceMetrics()

    def select_mode(
        self, force_mode: Optional[Union[OrchestrationMode, str]] = None
    ) -> OrchestrationMode:
        if force_mode is not None:
            return OrchestrationMode(force_mode)
        if not self.config.enable_dynamic_orchestration:
            return OrchestrationMode.LEGACY
        if self.config.enable_gradual_migration:
            if self._random() * 100 < self.config.migration_percentage:
                return OrchestrationMode.DYNAMIC
            return OrchestrationMode.LEGACY
        return OrchestrationMode.DYNAMIC

    async def orchestrate(
        self,
        user_input: str,
        session_id: str,
        user_id: str,
        force_mode: Optional[Union[OrchestrationMode, str]] = None,
        session_history: Optional[list[ConversationMessage]] = None,
        previous_agent: Optional[ClinicalAgent] = None,
        session_files: Optional[list[str]] = None,
    ) -> OrchestrationResult:
        """Orchestrate one turn; never raises.

        Args:
            user_input: The user's message.
            session_id: Conversation id.
            user_id: Owner of the conversation.
            force_mode: Mode to use regardless of configuration.
            session_history: Transcript for a session the orchestrator has
                not seen yet.
            previous_agent: Agent that handled the previous turn.
            session_files: Names of files attached to this turn.

        Returns:
            OrchestrationResult tagged with the orchestration type used.
        """
        start = self._timer()
        try:
            mode = self.select_mode(force_mode)
        except ValueError:
            logger.warning(f"Unknown orchestration mode {force_mode!r}, using default selection")
            mode = self.select_mode()

        try:
            if mode == OrchestrationMode.LEGACY:
                result = self.legacy_router.orchestrate(user_input, session_id)
            elif mode == OrchestrationMode.HYBRID:
                result = await self._run_hybrid(
                    user_input, session_id, user_id, session_history, previous_agent, session_files
                )
            else:
                result = await self._run_dynamic(
                    user_input, session_id, user_id, session_history, previous_agent, session_files
                )
        except Exception as e:
            logger.error(f"Bridge failed in {mode.value} mode: {e}", exc_info=True)
            result = self.orchestrator.create_error_result(str(e), session_id)

        elapsed_ms = (self._timer() - start) * 1000
        self._update_metrics(mode, result.success, elapsed_ms)
        return result

    async def _run_dynamic(
        self,
        user_input: str,
        session_id: str,
        user_id: str,
        session_history: Optional[list[ConversationMessage]],
        previous_agent: Optional[ClinicalAgent],
        session_files: Optional[list[str]],
    ) -> OrchestrationResult:
        result: Optional[OrchestrationResult] = None
        try:
            result = await self.orchestrator.orchestrate(
                user_input,
                session_id,
                user_id,
                session_files=session_files,
                session_history=session_history,
                previous_agent=previous_agent,
            )
            if result.success:
                return result
            failure = result.error or result.reasoning
        except Exception as e:
            failure = str(e)

        if not self.config.fallback_to_legacy:
            logger.error(f"Dynamic orchestration failed with no fallback: {failure}")
            return result or self.orchestrator.create_error_result(failure, session_id)

        self.metrics.fallback_count += 1
        logger.warning(f"Dynamic orchestration failed, falling back to legacy: {failure}")
        legacy = self.legacy_router.orchestrate(user_input, session_id)
        return dataclasses.replace(
            legacy,
            reasoning=f"{legacy.reasoning} (respaldo tras fallo dinámico: {failure})",
            metadata={**legacy.metadata, "fallback_from": OrchestrationMode.DYNAMIC.value},
        )

    async def _run_hybrid(
        self,
        user_input: str,
        session_id: str,
        user_id: str,
        session_history: Optional[list[ConversationMessage]],
        previous_agent: Optional[ClinicalAgent],
        session_files: Optional[list[str]],
    ) -> OrchestrationResult:
        dynamic = await self._run_dynamic(
            user_input, session_id, user_id, session_history, previous_agent, session_files
        )
        if dynamic.orchestration_type != OrchestrationMode.DYNAMIC.value:
            return dynamic
        if dynamic.confidence >= self.config.hybrid_confidence_threshold:
            return dataclasses.replace(dynamic, orchestration_type=OrchestrationMode.HYBRID.value)

        legacy = self.legacy_router.orchestrate(user_input, session_id)
        tools = list(dynamic.tool_metadata)
        names = {tool.name for tool in tools}
        for tool in legacy.tool_metadata:
            if tool.name not in names:
                tools.append(tool)
                names.add(tool.name)
        tools = tools[: self.config.max_hybrid_tools]

        return dataclasses.replace(
            dynamic,
            contextual_tools=tuple(tool.callable_schema for tool in tools),
            tool_metadata=tuple(tools),
            confidence=max(dynamic.confidence, legacy.confidence),
            reasoning=f"Híbrido: {dynamic.reasoning} + {legacy.reasoning}",
            orchestration_type=OrchestrationMode.HYBRID.value,
        )

    def _update_metrics(self, mode: OrchestrationMode, success: bool, elapsed_ms: float) -> None:
        if not self.config.enable_performance_monitoring:
            return

        metrics = self.metrics
        metrics.total_requests += 1
        if mode == OrchestrationMode.DYNAMIC:
            metrics.dynamic_requests += 1
        elif mode == OrchestrationMode.LEGACY:
            metrics.legacy_requests += 1
        else:
            metrics.hybrid_requests += 1
        if not success:
            metrics.error_count += 1

        n = metrics.total_requests
        metrics.average_response_time_ms = online_average(
            metrics.average_response_time_ms, elapsed_ms, n
        )
        metrics.success_rate = online_average(metrics.success_rate, 1.0 if success else 0.0, n)

    def get_performance_metrics(self) -> dict[str, Any]:
        data = asdict(self.metrics)
        data["error_rate"] = self.metrics.error_rate
        return data

    def reset_metrics(self) -> None:
        self.metrics = BridgePerformanceMetrics()
        logger.info("Bridge performance metrics reset")

    def get_system_stats(self) -> dict[str, Any]:
        return {
            "config": asdict(self.config),
            "performance": self.get_performance_metrics(),
            "orchestrator": self.orchestrator.get_stats(),
        }

    def cleanup(self) -> int:
        """Sweep expired orchestrator sessions."""
        return self.orchestrator.cleanup_expired_sessions()
