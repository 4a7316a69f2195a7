"""Event log, aggregate metrics, anomaly alerts and clinical reports."""

import copy
import logging
import uuid
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..config import MonitoringConfig
from ..core import OrchestrationResult
from .models import (
    AgentUsage,
    AlertCategory,
    AlertLevel,
    ClinicalAnalysisReport,
    OrchestrationEvent,
    OrchestratorMetrics,
    SystemAlert,
    ToolUsage,
)

logger = logging.getLogger(__name__)


def _running_mean(old: float, value: float, count: int) -> float:
    return (old * (count - 1) + value) / count


class OrchestratorMonitoring:
    """Observes orchestration results.

    Events are kept in a bounded log (oldest dropped first). Alerts are
    append-only and only change when resolved by id.
    """

    REPORT_WINDOW_DAYS = 7
    LOW_SUCCESS_RATE = 0.8
    SLOW_RESPONSE_MS = 3000
    DOMINANT_AGENT_SHARE = 0.7

    def __init__(
        self,
        config: Optional[MonitoringConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize monitoring.

        Args:
            config: Monitoring configuration.
            clock: Source of the current time.
        """
        self.config = config or MonitoringConfig()
        self._clock = clock
        self._events: deque[OrchestrationEvent] = deque(maxlen=self.config.max_events_in_memory)
        self._alerts: list[SystemAlert] = []
        self._metrics = OrchestratorMetrics()

    @property
    def events(self) -> list[OrchestrationEvent]:
        return list(self._events)

    def record_orchestration_event(
        self,
        result: OrchestrationResult,
        user_input: str,
        session_id: str,
        user_id: str,
        response_time_ms: float,
    ) -> OrchestrationEvent:
        """Record one turn, update metrics and evaluate anomaly rules.

        Args:
            result: The orchestration result returned to the caller.
            user_input: The user's message.
            session_id: Conversation id.
            user_id: Owner of the conversation.
            response_time_ms: End-to-end time for the turn.

        Returns:
            The recorded event.
        """
        event = OrchestrationEvent(
            id=str(uuid.uuid4()),
            timestamp=self._clock(),
            session_id=session_id,
            user_id=user_id,
            user_input=user_input,
            selected_agent=result.selected_agent.value,
            tools=tuple(result.tool_names),
            confidence=result.confidence,
            response_time_ms=response_time_ms,
            success=result.success,
            orchestration_type=result.orchestration_type,
            error_message=result.error,
            dominant_topics=tuple(result.dominant_topics),
            session_length=result.session_length,
        )
        self._events.append(event)
        self._update_metrics(event)
        if self.config.enable_real_time_alerts:
            self._detect_anomalies(event)
        return event

    def _update_metrics(self, event: OrchestrationEvent) -> None:
        metrics = self._metrics
        metrics.total_orchestrations += 1
        if event.success:
            metrics.successful_orchestrations += 1
        else:
            metrics.failed_orchestrations += 1

        n = metrics.total_orchestrations
        metrics.average_response_time_ms = _running_mean(
            metrics.average_response_time_ms, event.response_time_ms, n
        )
        metrics.average_confidence = _running_mean(metrics.average_confidence, event.confidence, n)

        agent = metrics.agent_usage.setdefault(event.selected_agent, AgentUsage())
        agent.count += 1
        agent.average_confidence = _running_mean(
            agent.average_confidence, event.confidence, agent.count
        )
        agent.average_response_time_ms = _running_mean(
            agent.average_response_time_ms, event.response_time_ms, agent.count
        )
        agent.success_rate = _running_mean(
            agent.success_rate, 1.0 if event.success else 0.0, agent.count
        )

        effectiveness = event.confidence if event.success else 0.0
        for tool_name in event.tools:
            tool = metrics.tool_usage.setdefault(tool_name, ToolUsage())
            tool.count += 1
            tool.average_effectiveness = _running_mean(
                tool.average_effectiveness, effectiveness, tool.count
            )

        hour = event.timestamp.hour
        metrics.hourly_distribution[hour] = metrics.hourly_distribution.get(hour, 0) + 1
        day = event.timestamp.date().isoformat()
        metrics.daily_trends[day] = metrics.daily_trends.get(day, 0) + 1

    def _detect_anomalies(self, event: OrchestrationEvent) -> None:
        thresholds = self.config.alert_thresholds

        if event.response_time_ms > thresholds.response_time_ms:
            self._create_alert(
                AlertLevel.WARNING,
                AlertCategory.PERFORMANCE,
                f"Tiempo de respuesta elevado: {event.response_time_ms:.0f}ms",
                {
                    "event_id": event.id,
                    "response_time_ms": event.response_time_ms,
                    "threshold_ms": thresholds.response_time_ms,
                },
            )

        if event.confidence < thresholds.confidence:
            self._create_alert(
                AlertLevel.WARNING,
                AlertCategory.ACCURACY,
                f"Confianza baja en orquestación: {event.confidence:.2f}",
                {
                    "event_id": event.id,
                    "confidence": event.confidence,
                    "threshold": thresholds.confidence,
                    "selected_agent": event.selected_agent,
                },
            )

        if not event.success:
            self._create_alert(
                AlertLevel.ERROR,
                AlertCategory.SYSTEM,
                f"Fallo en orquestación: {event.error_message or 'error desconocido'}",
                {
                    "event_id": event.id,
                    "session_id": event.session_id,
                    "error_message": event.error_message,
                },
            )

    def _create_alert(
        self,
        level: AlertLevel,
        category: AlertCategory,
        message: str,
        details: dict,
    ) -> SystemAlert:
        alert = SystemAlert(
            id=str(uuid.uuid4()),
            timestamp=self._clock(),
            level=level,
            category=category,
            message=message,
            details=details,
        )
        self._alerts.append(alert)
        if level in (AlertLevel.ERROR, AlertLevel.CRITICAL):
            logger.error(f"[{category.value}] {message}")
        else:
            logger.warning(f"[{category.value}] {message}")
        return alert

    def get_metrics(self) -> OrchestratorMetrics:
        """Snapshot of the aggregate metrics."""
        return copy.deepcopy(self._metrics)

    def get_active_alerts(self) -> list[SystemAlert]:
        return [alert for alert in self._alerts if not alert.resolved]

    def get_all_alerts(self) -> list[SystemAlert]:
        return list(self._alerts)

    def resolve_alert(self, alert_id: str) -> bool:
        """Mark an alert resolved.

        Returns:
            True if the alert exists, False otherwise.
        """
        for alert in self._alerts:
            if alert.id == alert_id:
                alert.resolved = True
                logger.info(f"Alert resolved: {alert_id}")
                return True
        return False

    def generate_clinical_analysis_report(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> ClinicalAnalysisReport:
        """Summarize events in a window (default: last 7 days)."""
        end = end or self._clock()
        start = start or end - timedelta(days=self.REPORT_WINDOW_DAYS)
        events = [event for event in self._events if start <= event.timestamp <= end]

        report = ClinicalAnalysisReport(period_start=start, period_end=end)
        if not events:
            return report

        total = len(events)
        agent_counts = Counter(event.selected_agent for event in events)
        successes = sum(1 for event in events if event.success)

        report.total_events = total
        report.unique_users = len({event.user_id for event in events})
        report.unique_sessions = len({event.session_id for event in events})
        report.most_used_agent = agent_counts.most_common(1)[0][0]
        report.average_session_success = successes / total
        report.average_response_time_ms = sum(event.response_time_ms for event in events) / total
        report.top_tools = self._tool_effectiveness(events)[:5]
        report.clinical_topics = self._topic_frequency(events)
        report.agent_effectiveness = self._agent_effectiveness(events)
        report.user_patterns = self._user_patterns(events)
        report.recommendations = self._report_recommendations(report, agent_counts)

        logger.info(f"Clinical report generated for {total} events ({start} - {end})")
        return report

    def _tool_effectiveness(self, events: list[OrchestrationEvent]) -> list[dict]:
        stats: dict[str, dict[str, float]] = {}
        for event in events:
            for tool in event.tools:
                tool_stats = stats.setdefault(tool, {"total": 0, "successful": 0, "confidence": 0.0})
                tool_stats["total"] += 1
                tool_stats["successful"] += 1 if event.success else 0
                tool_stats["confidence"] += event.confidence

        ranked = [
            {
                "tool": tool,
                "usage": int(s["total"]),
                "effectiveness": (s["successful"] / s["total"]) * (s["confidence"] / s["total"]),
            }
            for tool, s in stats.items()
        ]
        return sorted(ranked, key=lambda item: item["effectiveness"], reverse=True)

    def _topic_frequency(self, events: list[OrchestrationEvent]) -> list[dict]:
        counts = Counter(topic for event in events for topic in event.dominant_topics)
        return [{"topic": topic, "frequency": count} for topic, count in counts.most_common(10)]

    def _agent_effectiveness(self, events: list[OrchestrationEvent]) -> dict[str, dict[str, float]]:
        stats: dict[str, list[OrchestrationEvent]] = {}
        for event in events:
            stats.setdefault(event.selected_agent, []).append(event)
        return {
            agent: {
                "success_rate": sum(1 for e in agent_events if e.success) / len(agent_events),
                "average_confidence": sum(e.confidence for e in agent_events) / len(agent_events),
            }
            for agent, agent_events in stats.items()
        }

    def _user_patterns(self, events: list[OrchestrationEvent]) -> list[dict]:
        preferences: dict[str, Counter] = {}
        for event in events:
            preferences.setdefault(event.user_id, Counter())[event.selected_agent] += 1

        patterns: Counter = Counter()
        for agent_counts in preferences.values():
            preferred_agent = agent_counts.most_common(1)[0][0]
            patterns[f"Preferencia por agente {preferred_agent}"] += 1
        return [{"pattern": pattern, "frequency": count} for pattern, count in patterns.most_common(5)]

    def _report_recommendations(
        self, report: ClinicalAnalysisReport, agent_counts: Counter
    ) -> list[str]:
        recommendations = []
        if report.average_session_success < self.LOW_SUCCESS_RATE:
            recommendations.append(
                "Considerar ajustar umbrales de confianza para mejorar tasa de éxito"
            )
        if report.average_response_time_ms > self.SLOW_RESPONSE_MS:
            recommendations.append(
                "Optimizar rendimiento del sistema para reducir tiempo de respuesta"
            )
        agent, count = agent_counts.most_common(1)[0]
        share = count / report.total_events
        if share > self.DOMINANT_AGENT_SHARE:
            recommendations.append(
                f"El agente {agent} está siendo usado en exceso ({share * 100:.1f}%). "
                "Considerar balancear la carga."
            )
        return recommendations

    def cleanup(self) -> tuple[int, int]:
        """Drop events older than the retention period and resolved alerts past it.

        Unresolved alerts are kept regardless of age.

        Returns:
            (events removed, alerts removed)
        """
        cutoff = self._clock() - timedelta(days=self.config.metrics_retention_days)
        kept_events = [event for event in self._events if event.timestamp >= cutoff]
        removed_events = len(self._events) - len(kept_events)
        self._events = deque(kept_events, maxlen=self.config.max_events_in_memory)

        kept_alerts = [
            alert for alert in self._alerts if alert.timestamp >= cutoff or not alert.resolved
        ]
        removed_alerts = len(self._alerts) - len(kept_alerts)
        self._alerts = kept_alerts

        if removed_events or removed_alerts:
            logger.info(
                f"Monitoring cleanup removed {removed_events} event(s), {removed_alerts} alert(s)"
            )
        return removed_events, removed_alerts

    def reset_metrics(self) -> None:
        self._metrics = OrchestratorMetrics()
        self._events.clear()
        self._alerts.clear()
        logger.info("Monitoring metrics reset")
