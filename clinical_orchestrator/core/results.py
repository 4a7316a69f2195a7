"""Per-turn results returned by the router and orchestrators."""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..tools.registry import ToolDescriptor
from .agents import ClinicalAgent
from .context import EnrichedContext
from .entities import ExtractedEntity


@dataclass(frozen=True)
class RouteResult:
    """Outcome of IntentRouter.route_user_input."""

    success: bool
    target_agent: ClinicalAgent
    enriched_context: EnrichedContext
    requires_user_clarification: bool = False


@dataclass(frozen=True)
class Recommendations:
    """Natural-language suggestions surfaced with a result."""

    suggested_follow_up: str
    alternative_approaches: tuple[str, ...] = ()
    clinical_considerations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "suggested_follow_up": self.suggested_follow_up,
            "alternative_approaches": list(self.alternative_approaches),
            "clinical_considerations": list(self.clinical_considerations),
        }


@dataclass(frozen=True)
class OrchestrationResult:
    """One per turn; immutable once returned.

    Attributes:
        success: False only for the deterministic error result.
        selected_agent: Agent the turn is routed to.
        contextual_tools: Callable schemas handed to the agent.
        tool_metadata: Descriptors for the same tools, same order.
        confidence: Fused confidence in [0, 1].
        reasoning: Human-readable explanation of the decision.
        recommendations: Optional follow-up suggestions.
        orchestration_type: "dynamic", "legacy" or "hybrid".
    """

    success: bool
    selected_agent: ClinicalAgent
    contextual_tools: tuple[dict, ...]
    tool_metadata: tuple[ToolDescriptor, ...]
    confidence: float
    reasoning: str
    recommendations: Optional[Recommendations] = None
    orchestration_type: str = "dynamic"
    session_id: Optional[str] = None
    detected_intent: Optional[str] = None
    extracted_entities: tuple[ExtractedEntity, ...] = ()
    dominant_topics: tuple[str, ...] = ()
    session_length: int = 0
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tool_metadata]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "selected_agent": self.selected_agent.value,
            "contextual_tools": list(self.contextual_tools),
            "tool_names": self.tool_names,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "recommendations": self.recommendations.to_dict() if self.recommendations else None,
            "orchestration_type": self.orchestration_type,
            "session_id": self.session_id,
            "detected_intent": self.detected_intent,
            "extracted_entities": [
                {"type": entity.type.value, "value": entity.value, "confidence": entity.confidence}
                for entity in self.extracted_entities
            ],
            "dominant_topics": list(self.dominant_topics),
            "session_length": self.session_length,
            "error": self.error,
            "metadata": dict(self.metadata),
        }
