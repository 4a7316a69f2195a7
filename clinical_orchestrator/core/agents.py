"""Closed enumerations of agents and intent functions."""

from enum import Enum


class ClinicalAgent(str, Enum):
    """Conversational personas a turn can be routed to."""

    SOCRATIC = "socratico"
    CLINICAL = "clinico"
    ACADEMIC = "academico"


class IntentFunction(str, Enum):
    """Mode-activation functions offered to the classification capability."""

    ACTIVATE_SOCRATIC = "activar_modo_socratico"
    ACTIVATE_CLINICAL = "activar_modo_clinico"
    ACTIVATE_ACADEMIC = "activar_modo_academico"


DEFAULT_AGENT = ClinicalAgent.SOCRATIC

INTENT_TO_AGENT: dict[IntentFunction, ClinicalAgent] = {
    IntentFunction.ACTIVATE_SOCRATIC: ClinicalAgent.SOCRATIC,
    IntentFunction.ACTIVATE_CLINICAL: ClinicalAgent.CLINICAL,
    IntentFunction.ACTIVATE_ACADEMIC: ClinicalAgent.ACADEMIC,
}

AGENT_TO_INTENT: dict[ClinicalAgent, IntentFunction] = {
    agent: intent for intent, agent in INTENT_TO_AGENT.items()
}

AGENT_DESCRIPTIONS: dict[ClinicalAgent, str] = {
    ClinicalAgent.SOCRATIC: "Exploración reflexiva y cuestionamiento socrático",
    ClinicalAgent.CLINICAL: "Documentación clínica, resúmenes y notas de sesión",
    ClinicalAgent.ACADEMIC: "Búsqueda de evidencia científica e investigación",
}


def _check_exhaustive() -> None:
    """Fail at import time if an agent or intent lacks a mapping."""
    missing_intents = set(IntentFunction) - set(INTENT_TO_AGENT)
    if missing_intents:
        raise RuntimeError(f"Intent functions without agent: {sorted(missing_intents)}")
    missing_agents = set(ClinicalAgent) - set(AGENT_TO_INTENT)
    if missing_agents:
        raise RuntimeError(f"Agents without intent function: {sorted(missing_agents)}")
    missing_descriptions = set(ClinicalAgent) - set(AGENT_DESCRIPTIONS)
    if missing_descriptions:
        raise RuntimeError(f"Agents without description: {sorted(missing_descriptions)}")


_check_exhaustive()


def parse_agent(value: object) -> ClinicalAgent:
    """Convert a wire value into a ClinicalAgent.

    Args:
        value: A ClinicalAgent or its string value.

    Returns:
        The matching ClinicalAgent.

    Raises:
        ValueError: If the value names no known agent.
    """
    if isinstance(value, ClinicalAgent):
        return value
    return ClinicalAgent(str(value).strip().lower())
