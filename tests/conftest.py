"""Shared fixtures: a scripted classification capability and wired components."""

from datetime import datetime
from typing import Any, Optional

import pytest

from clinical_orchestrator.config import DynamicOrchestratorConfig, RouterConfig
from clinical_orchestrator.core import (
    CapabilityResponse,
    ClassificationCapability,
    FunctionCall,
    IntentFunction,
    SamplingParams,
)
from clinical_orchestrator.extraction import EntityExtractionEngine
from clinical_orchestrator.orchestrator import DynamicOrchestrator, IntentRouter
from clinical_orchestrator.tools import create_default_registry

INTENT_NAMES = {intent.value for intent in IntentFunction}


class ScriptedCapability(ClassificationCapability):
    """Answers by call kind: intent classification, extraction or free text.

    Attributes are mutable so a test can change the script between turns.
    """

    def __init__(
        self,
        intent: Optional[str] = "activar_modo_socratico",
        intent_args: Any = None,
        extraction_calls: Optional[list[FunctionCall]] = None,
        text: Optional[str] = None,
        intent_error: Optional[Exception] = None,
        extraction_error: Optional[Exception] = None,
    ) -> None:
        self.intent = intent
        self.intent_args = {"tema_exploracion": "caso"} if intent_args is None else intent_args
        self.extraction_calls = extraction_calls or []
        self.text = text
        self.intent_error = intent_error
        self.extraction_error = extraction_error
        self.calls: list[tuple[str, list[dict], SamplingParams]] = []

    def calls_of_kind(self, kind: str) -> list[tuple[str, list[dict], SamplingParams]]:
        return [call for call in self.calls if _kind(call[1]) == kind]

    async def call(
        self, prompt: str, function_schemas: list[dict], sampling: SamplingParams
    ) -> CapabilityResponse:
        self.calls.append((prompt, function_schemas, sampling))
        kind = _kind(function_schemas)
        if kind == "intent":
            if self.intent_error is not None:
                raise self.intent_error
            if self.intent is None:
                return CapabilityResponse()
            return CapabilityResponse(
                selected_functions=[FunctionCall(name=self.intent, args=self.intent_args)]
            )
        if kind == "extraction":
            if self.extraction_error is not None:
                raise self.extraction_error
            return CapabilityResponse(selected_functions=list(self.extraction_calls))
        return CapabilityResponse(text=self.text)


def _kind(function_schemas: list[dict]) -> str:
    names = {schema["name"] for schema in function_schemas}
    if names & INTENT_NAMES:
        return "intent"
    if names:
        return "extraction"
    return "text"


def documentation_entity(confidence: float = 0.9) -> FunctionCall:
    return FunctionCall(
        name="extract_documentation_processes",
        args={
            "processes": [
                {"process": "resúmenes de sesión", "format_type": "narrativo", "confidence": confidence}
            ]
        },
    )


def technique_entity(name: str = "EMDR", confidence: float = 0.9) -> FunctionCall:
    return FunctionCall(
        name="extract_therapeutic_techniques",
        args={"techniques": [{"name": name, "category": "integrativo", "confidence": confidence}]},
    )


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 3, 4, 10, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


@pytest.fixture
def capability():
    return ScriptedCapability()


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def engine(capability):
    return EntityExtractionEngine(capability)


@pytest.fixture
def router(capability, registry, engine):
    return IntentRouter(capability, registry, engine, config=RouterConfig())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def orchestrator(router, registry, engine, capability, clock):
    return DynamicOrchestrator(
        router,
        registry,
        engine,
        capability=capability,
        config=DynamicOrchestratorConfig(),
        clock=clock,
    )
