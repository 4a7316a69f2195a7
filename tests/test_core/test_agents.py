"""Tests for agent and intent enumerations."""

import pytest

from clinical_orchestrator.core import (
    AGENT_DESCRIPTIONS,
    AGENT_TO_INTENT,
    DEFAULT_AGENT,
    INTENT_TO_AGENT,
    ClinicalAgent,
    IntentFunction,
    parse_agent,
)


class TestAgentMappings:
    """Test suite for the intent/agent mappings."""

    def test_every_intent_maps_to_an_agent(self):
        assert set(INTENT_TO_AGENT) == set(IntentFunction)

    def test_every_agent_maps_back_to_its_intent(self):
        for intent, agent in INTENT_TO_AGENT.items():
            assert AGENT_TO_INTENT[agent] == intent

    def test_every_agent_has_a_description(self):
        assert set(AGENT_DESCRIPTIONS) == set(ClinicalAgent)

    def test_default_agent_is_socratic(self):
        assert DEFAULT_AGENT == ClinicalAgent.SOCRATIC
        assert DEFAULT_AGENT.value == "socratico"

    def test_documentation_intent_maps_to_clinical_agent(self):
        assert INTENT_TO_AGENT[IntentFunction.ACTIVATE_CLINICAL] == ClinicalAgent.CLINICAL


class TestParseAgent:
    """Test suite for parse_agent."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("socratico", ClinicalAgent.SOCRATIC),
            ("  Clinico ", ClinicalAgent.CLINICAL),
            ("ACADEMICO", ClinicalAgent.ACADEMIC),
            (ClinicalAgent.ACADEMIC, ClinicalAgent.ACADEMIC),
        ],
    )
    def test_parses_wire_values(self, value, expected):
        assert parse_agent(value) == expected

    def test_unknown_agent_raises(self):
        with pytest.raises(ValueError):
            parse_agent("gmail")
