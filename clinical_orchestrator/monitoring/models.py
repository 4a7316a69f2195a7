"""Telemetry records, alerts, aggregate metrics and reports."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class AlertLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertCategory(str, Enum):
    PERFORMANCE = "performance"
    ACCURACY = "accuracy"
    SYSTEM = "system"
    CLINICAL = "clinical"


@dataclass(frozen=True)
class OrchestrationEvent:
    """One recorded turn. Append-only."""

    id: str
    timestamp: datetime
    session_id: str
    user_id: str
    user_input: str
    selected_agent: str
    tools: tuple[str, ...]
    confidence: float
    response_time_ms: float
    success: bool
    orchestration_type: str
    error_message: Optional[str] = None
    dominant_topics: tuple[str, ...] = ()
    session_length: int = 0


@dataclass
class SystemAlert:
    """An anomaly raised while recording events; resolved in place."""

    id: str
    timestamp: datetime
    level: AlertLevel
    category: AlertCategory
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    resolved: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
            "resolved": self.resolved,
        }


@dataclass
class AgentUsage:
    count: int = 0
    average_confidence: float = 0.0
    average_response_time_ms: float = 0.0
    success_rate: float = 0.0


@dataclass
class ToolUsage:
    count: int = 0
    average_effectiveness: float = 0.0


@dataclass
class OrchestratorMetrics:
    """Aggregates updated incrementally on every recorded event."""

    total_orchestrations: int = 0
    successful_orchestrations: int = 0
    failed_orchestrations: int = 0
    average_response_time_ms: float = 0.0
    average_confidence: float = 0.0
    agent_usage: dict[str, AgentUsage] = field(default_factory=dict)
    tool_usage: dict[str, ToolUsage] = field(default_factory=dict)
    hourly_distribution: dict[int, int] = field(default_factory=dict)
    daily_trends: dict[str, int] = field(default_factory=dict)

    @property
    def error_rate(self) -> float:
        return self.failed_orchestrations / max(self.total_orchestrations, 1)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["error_rate"] = self.error_rate
        return data


@dataclass
class ClinicalAnalysisReport:
    """Summary of the events recorded in a time window."""

    period_start: datetime
    period_end: datetime
    total_events: int = 0
    unique_users: int = 0
    unique_sessions: int = 0
    most_used_agent: Optional[str] = None
    average_session_success: float = 0.0
    average_response_time_ms: float = 0.0
    top_tools: list[dict[str, Any]] = field(default_factory=list)
    clinical_topics: list[dict[str, Any]] = field(default_factory=list)
    agent_effectiveness: dict[str, dict[str, float]] = field(default_factory=dict)
    user_patterns: list[dict[str, Any]] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["period_start"] = self.period_start.isoformat()
        data["period_end"] = self.period_end.isoformat()
        return data
