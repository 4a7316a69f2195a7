"""Orchestration: intent routing, session management and the public facade."""

from .bridge import BridgePerformanceMetrics, OrchestrationBridge, OrchestrationMode
from .dynamic import DynamicOrchestrator, parse_recommendations
from .legacy import LegacyDecision, LegacyRouter
from .router import IntentClassification, IntentRouter, categorize_confidence, fuse_confidence
from .system import HealthStatus, OrchestrationSystem, create_orchestration_system

__all__ = [
    "BridgePerformanceMetrics",
    "DynamicOrchestrator",
    "HealthStatus",
    "IntentClassification",
    "IntentRouter",
    "LegacyDecision",
    "LegacyRouter",
    "OrchestrationBridge",
    "OrchestrationMode",
    "OrchestrationSystem",
    "categorize_confidence",
    "create_orchestration_system",
    "fuse_confidence",
    "parse_recommendations",
]
