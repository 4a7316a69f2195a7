"""Public facade wiring the orchestration components together."""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, Union

from ..config import OrchestrationSystemConfig, load_config
from ..core import (
    AnthropicCapability,
    ClassificationCapability,
    ClinicalAgent,
    ConversationMessage,
    OrchestrationResult,
    SessionNotFoundError,
    SessionStore,
)
from ..extraction import EntityExtractionEngine
from ..monitoring import (
    AlertLevel,
    ClinicalAnalysisReport,
    OrchestratorMetrics,
    OrchestratorMonitoring,
    SystemAlert,
)
from ..tools import ToolRegistry, create_default_registry
from .bridge import OrchestrationBridge, OrchestrationMode
from .dynamic import DynamicOrchestrator
from .legacy import LegacyRouter
from .router import IntentRouter

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


def worst_status(statuses: list[HealthStatus]) -> HealthStatus:
    """Overall status is the most severe component status."""
    return max(statuses, key=_SEVERITY.__getitem__, default=HealthStatus.HEALTHY)


class OrchestrationSystem:
    """Single entry point for orchestration, health, metrics and reports.

    Every turn goes through the bridge and is then recorded by monitoring.
    When a session store is configured, transcripts are loaded from it for
    sessions the caller did not supply history for, and each user turn is
    appended to it.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        extraction_engine: EntityExtractionEngine,
        router: IntentRouter,
        orchestrator: DynamicOrchestrator,
        legacy_router: LegacyRouter,
        bridge: OrchestrationBridge,
        monitoring: OrchestratorMonitoring,
        config: Optional[OrchestrationSystemConfig] = None,
        session_store: Optional[SessionStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.registry = registry
        self.extraction_engine = extraction_engine
        self.router = router
        self.orchestrator = orchestrator
        self.legacy_router = legacy_router
        self.bridge = bridge
        self.monitoring = monitoring
        self.config = config or OrchestrationSystemConfig()
        self.session_store = session_store
        self._clock = clock
        self._timer = timer
        self._started_at = clock()
        self._tasks: list[asyncio.Task] = []
        self._session_locks: dict[str, asyncio.Lock] = {}

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
        """Orchestrate one turn and record it.

        Args:
            user_input: The user's message.
            session_id: Conversation id.
            user_id: Owner of the conversation.
            force_mode: Bypass the configured mode selection.
            session_history: Transcript for a session the orchestrator has
                not seen yet. Loaded from the session store when omitted.
            previous_agent: Agent that handled the previous turn.
            session_files: Names of files attached to this turn.

        Returns:
            OrchestrationResult for the turn. Session store failures are
            logged and never raised.
        """
        async with self._lock_for(session_id):
            stored = self._load_history(session_id)
            if session_history is None:
                session_history = stored

            start = self._timer()
            result = await self.bridge.orchestrate(
                user_input,
                session_id,
                user_id,
                force_mode=force_mode,
                session_history=session_history,
                previous_agent=previous_agent,
                session_files=session_files,
            )
            elapsed_ms = (self._timer() - start) * 1000

            self.monitoring.record_orchestration_event(
                result, user_input, session_id, user_id, elapsed_ms
            )
            self._append_user_turn(session_id, stored, user_input)

        return result

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    def _load_history(self, session_id: str) -> Optional[list[ConversationMessage]]:
        if self.session_store is None:
            return None
        try:
            return self.session_store.get(session_id)
        except Exception as e:
            logger.warning(f"Could not load session {session_id} from store: {e}", exc_info=True)
            return None

    def _append_user_turn(
        self, session_id: str, stored: Optional[list[ConversationMessage]], user_input: str
    ) -> None:
        # Caller holds the session lock, so stored is still current.
        if self.session_store is None:
            return
        history = list(stored or [])
        history.append(ConversationMessage(role="user", text=user_input, timestamp=self._clock()))
        try:
            self.session_store.put(session_id, history[-self.config.orchestrator.history_limit :])
        except Exception as e:
            logger.warning(f"Could not save session {session_id} to store: {e}", exc_info=True)

    def get_session_history(self, session_id: str) -> list[ConversationMessage]:
        """Return a session transcript.

        Raises:
            SessionNotFoundError: If neither the store nor the orchestrator
                knows the session.
        """
        if self.session_store is not None:
            history = self.session_store.get(session_id)
            if history is not None:
                return history
        session = self.orchestrator.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return list(session.conversation_history)

    def _registry_health(self) -> dict[str, Any]:
        count = len(self.registry)
        if count == 0:
            status = HealthStatus.UNHEALTHY
        elif count < self.config.system.min_tools_healthy:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY
        return {"status": status, "details": {"total_tools": count}}

    def _orchestration_health(self, metrics: OrchestratorMetrics) -> dict[str, Any]:
        # error_rate is the degraded tier, session_failure the unhealthy one
        thresholds = self.config.monitoring.alert_thresholds
        error_rate = metrics.error_rate
        if error_rate > thresholds.session_failure:
            status = HealthStatus.UNHEALTHY
        elif (
            error_rate > thresholds.error_rate
            or metrics.average_response_time_ms > thresholds.response_time_ms
        ):
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY
        return {
            "status": status,
            "details": {
                "error_rate": error_rate,
                "average_response_time_ms": metrics.average_response_time_ms,
                "bridge": self.bridge.get_performance_metrics(),
            },
        }

    def _monitoring_health(self, active_alerts: list[SystemAlert]) -> dict[str, Any]:
        critical = [alert for alert in active_alerts if alert.level == AlertLevel.CRITICAL]
        if critical:
            status = HealthStatus.UNHEALTHY
        elif len(active_alerts) > self.config.system.max_active_alerts_healthy:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY
        return {
            "status": status,
            "details": {"active_alerts": len(active_alerts), "critical_alerts": len(critical)},
        }

    def get_health_status(self) -> dict[str, Any]:
        """Compute component and overall health.

        Returns:
            Dictionary with overall status, per-component status and
            details, summary metrics and alert counts.
        """
        metrics = self.monitoring.get_metrics()
        active_alerts = self.monitoring.get_active_alerts()
        components = {
            "tool_registry": self._registry_health(),
            "orchestration": self._orchestration_health(metrics),
            "monitoring": self._monitoring_health(active_alerts),
        }
        overall = worst_status([component["status"] for component in components.values()])

        now = self._clock()
        return {
            "status": overall.value,
            "timestamp": now.isoformat(),
            "components": {
                name: {"status": component["status"].value, "details": component["details"]}
                for name, component in components.items()
            },
            "metrics": {
                "uptime_seconds": (now - self._started_at).total_seconds(),
                "total_orchestrations": metrics.total_orchestrations,
                "error_rate": metrics.error_rate,
                "average_response_time_ms": metrics.average_response_time_ms,
                "active_sessions": self.orchestrator.get_stats()["active_sessions"],
            },
            "alerts": {
                "active": len(active_alerts),
                "critical": sum(1 for a in active_alerts if a.level == AlertLevel.CRITICAL),
            },
        }

    def get_metrics(self) -> OrchestratorMetrics:
        return self.monitoring.get_metrics()

    def get_active_alerts(self) -> list[SystemAlert]:
        return self.monitoring.get_active_alerts()

    def resolve_alert(self, alert_id: str) -> bool:
        return self.monitoring.resolve_alert(alert_id)

    def generate_report(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> ClinicalAnalysisReport:
        return self.monitoring.generate_clinical_analysis_report(start, end)

    def cleanup_expired_sessions(self) -> dict[str, int]:
        """Sweep expired sessions and stale monitoring data."""
        sessions = self.bridge.cleanup()
        events, alerts = self.monitoring.cleanup()
        for session_id, lock in list(self._session_locks.items()):
            if not lock.locked() and self.orchestrator.get_session(session_id) is None:
                del self._session_locks[session_id]
        return {"sessions_removed": sessions, "events_removed": events, "alerts_removed": alerts}

    def reset_metrics(self) -> None:
        self.monitoring.reset_metrics()
        self.bridge.reset_metrics()

    def get_system_info(self) -> dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "bridge": self.bridge.get_system_stats(),
            "extraction": self.extraction_engine.get_engine_stats(),
        }

    async def _run_periodically(self, interval_minutes: float, job: Callable[[], Any]) -> None:
        interval = timedelta(minutes=interval_minutes).total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                job()
            except Exception as e:
                logger.error(f"Periodic job {job.__name__} failed: {e}", exc_info=True)

    def _log_health(self) -> None:
        health = self.get_health_status()
        if health["status"] != HealthStatus.HEALTHY.value:
            logger.warning(f"Orchestration system is {health['status']}")

    def start(self) -> None:
        """Start periodic cleanup and health checks on the running loop."""
        if self._tasks:
            return
        system_config = self.config.system
        self._tasks = [
            asyncio.create_task(
                self._run_periodically(
                    system_config.cleanup_interval_minutes, self.cleanup_expired_sessions
                )
            ),
            asyncio.create_task(
                self._run_periodically(
                    system_config.health_check_interval_minutes, self._log_health
                )
            ),
        ]
        logger.info("Orchestration system background tasks started")

    async def shutdown(self) -> None:
        """Stop periodic tasks and wait for pending recommendation work."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.orchestrator.drain_background_tasks()
        logger.info("Orchestration system shut down")


def create_orchestration_system(
    config: Optional[OrchestrationSystemConfig] = None,
    capability: Optional[ClassificationCapability] = None,
    session_store: Optional[SessionStore] = None,
) -> OrchestrationSystem:
    """Factory function to create and wire an orchestration system.

    All components share one registry and extraction engine. Recommendations
    use a separate model unless a capability is supplied.

    Args:
        config: Optional config. Uses the default file if not provided.
        capability: Classification capability. Defaults to the Anthropic
            capability for the configured router model.
        session_store: Optional transcript store.

    Returns:
        Configured OrchestrationSystem instance.
    """
    config = config or load_config()
    if capability is None:
        capability = AnthropicCapability(model=config.router.model)
        recommendation_capability: ClassificationCapability = AnthropicCapability(
            model=config.orchestrator.recommendation_model
        )
    else:
        recommendation_capability = capability

    registry = create_default_registry()
    extraction_engine = EntityExtractionEngine(capability, config.extraction)
    router = IntentRouter(
        capability,
        registry,
        extraction_engine,
        config=config.router,
        log_routing_decisions=config.logging.log_routing_decisions,
    )
    orchestrator = DynamicOrchestrator(
        router,
        registry,
        extraction_engine,
        capability=recommendation_capability,
        config=config.orchestrator,
    )
    legacy_router = LegacyRouter(registry)
    bridge = OrchestrationBridge(orchestrator, legacy_router, config=config.bridge)
    monitoring = OrchestratorMonitoring(config.monitoring)

    logger.info(f"Orchestration system created with {len(registry)} tools")
    return OrchestrationSystem(
        registry=registry,
        extraction_engine=extraction_engine,
        router=router,
        orchestrator=orchestrator,
        legacy_router=legacy_router,
        bridge=bridge,
        monitoring=monitoring,
        config=config,
        session_store=session_store,
    )
