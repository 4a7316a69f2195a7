"""Monitoring of orchestration events and anomalies."""

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
from .monitor import OrchestratorMonitoring

__all__ = [
    "AgentUsage",
    "AlertCategory",
    "AlertLevel",
    "ClinicalAnalysisReport",
    "OrchestrationEvent",
    "OrchestratorMetrics",
    "OrchestratorMonitoring",
    "SystemAlert",
    "ToolUsage",
]
