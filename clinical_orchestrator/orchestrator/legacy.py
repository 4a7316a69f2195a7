"""Legacy rule-based router using keyword containment."""

from dataclasses import dataclass, field
from typing import Optional

from ..core import ClinicalAgent, OrchestrationResult
from ..tools import ToolRegistry


@dataclass
class LegacyDecision:
    """Agent chosen by keyword rules."""

    agent: ClinicalAgent
    matched_keywords: list[str] = field(default_factory=list)


class LegacyRouter:
    """Deterministic router kept for traffic-split comparison.

    Rules are checked in order; the first agent with a keyword contained in
    the lowercased message wins. Messages matching nothing go to the default
    agent.
    """

    AGENT_KEYWORDS: list[tuple[ClinicalAgent, list[str]]] = [
        (ClinicalAgent.CLINICAL, ["resumen", "documentar", "nota"]),
        (ClinicalAgent.ACADEMIC, ["investigar", "estudio", "evidencia"]),
    ]
    DEFAULT_AGENT = ClinicalAgent.SOCRATIC
    CONFIDENCE = 0.8
    REASONING = "Orquestación legacy basada en patrones predefinidos"

    def __init__(self, registry: ToolRegistry) -> None:
        """Initialize the router.

        Args:
            registry: Shared tool registry providing the basic tools.
        """
        self.registry = registry

    def classify(self, text: str) -> LegacyDecision:
        text_lower = text.lower()
        for agent, keywords in self.AGENT_KEYWORDS:
            matched = [keyword for keyword in keywords if keyword in text_lower]
            if matched:
                return LegacyDecision(agent=agent, matched_keywords=matched)
        return LegacyDecision(agent=self.DEFAULT_AGENT)

    def orchestrate(self, text: str, session_id: Optional[str] = None) -> OrchestrationResult:
        """Route a message with the keyword rules and the basic tools."""
        decision = self.classify(text)
        tools = self.registry.get_basic_tools()
        return OrchestrationResult(
            success=True,
            selected_agent=decision.agent,
            contextual_tools=tuple(tool.callable_schema for tool in tools),
            tool_metadata=tuple(tools),
            confidence=self.CONFIDENCE,
            reasoning=self.REASONING,
            orchestration_type="legacy",
            session_id=session_id,
            metadata={"matched_keywords": decision.matched_keywords},
        )
