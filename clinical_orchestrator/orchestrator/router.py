"""Intent router: classification, confidence fusion and enriched hand-off context."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..config import RouterConfig
from ..core import (
    AGENT_TO_INTENT,
    INTENT_TO_AGENT,
    CapabilityResponse,
    ClassificationCapability,
    ClassificationError,
    ClinicalAgent,
    ConversationMessage,
    EnrichedContext,
    EntityExtractionResult,
    IntentFunction,
    OrchestrationResult,
    RouteResult,
    SamplingParams,
    clamp_confidence,
    coerce_arguments,
    parse_agent,
    summarize_recent_context,
)
from ..extraction import EntityExtractionEngine
from ..tools import ClinicalDomain, ToolDescriptor, ToolRegistry
from .prompts import (
    COMPILED_EXPLICIT_PATTERNS,
    INTENT_CLASSIFICATION_PROMPT,
    INTENT_FUNCTION_SCHEMAS,
)

logger = logging.getLogger(__name__)

INTENT_WEIGHT = 0.6
ENTITY_WEIGHT = 0.4

CONFIDENCE_TIERS = [
    (0.95, "EXCELENTE"),
    (0.85, "ALTA"),
    (0.7, "MEDIA"),
    (0.5, "BAJA"),
]


def fuse_confidence(intent_confidence: float, entity_confidence: float) -> float:
    """Weighted combination of intent and entity confidence, clamped to [0, 1]."""
    return clamp_confidence(
        INTENT_WEIGHT * intent_confidence + ENTITY_WEIGHT * entity_confidence
    )


def categorize_confidence(confidence: float) -> str:
    """Map a confidence score to a named tier for logs."""
    for floor, label in CONFIDENCE_TIERS:
        if confidence >= floor:
            return label
    return "CRÍTICA"


@dataclass(frozen=True)
class IntentClassification:
    """A validated function selection from the classification call.

    Attributes:
        function: Selected mode-activation function.
        parameters: Arguments the capability filled in.
        confidence: Heuristic intent confidence.
    """

    function: IntentFunction
    parameters: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.5

    @property
    def function_name(self) -> str:
        return self.function.value


class IntentRouter:
    """Routes a turn to an agent and selects contextual tools.

    Routing algorithm:
    1. Explicit mode-switch requests route directly (confidence 1.0)
    2. Intent classification through the capability (one function honored)
    3. Entity extraction
    4. Confidence fusion and threshold check
    5. Static intent -> agent mapping
    """

    PARAMETERS_CONFIDENCE = 0.9
    EMPTY_PARAMETERS_CONFIDENCE = 0.7
    FALLBACK_CONFIDENCE = 0.5

    INTENT_DOMAINS: dict[IntentFunction, tuple[ClinicalDomain, ...]] = {
        IntentFunction.ACTIVATE_SOCRATIC: (ClinicalDomain.GENERAL, ClinicalDomain.ANXIETY),
        IntentFunction.ACTIVATE_CLINICAL: (ClinicalDomain.GENERAL, ClinicalDomain.DEPRESSION),
        IntentFunction.ACTIVATE_ACADEMIC: (ClinicalDomain.GENERAL, ClinicalDomain.TRAUMA),
    }
    DEFAULT_DOMAINS = (ClinicalDomain.GENERAL,)

    def __init__(
        self,
        capability: ClassificationCapability,
        registry: ToolRegistry,
        extraction_engine: EntityExtractionEngine,
        config: Optional[RouterConfig] = None,
        log_routing_decisions: bool = True,
    ) -> None:
        """Initialize the router.

        Args:
            capability: Capability used for intent classification.
            registry: Shared tool registry.
            extraction_engine: Shared entity extraction engine.
            config: Router configuration. Defaults to RouterConfig().
            log_routing_decisions: Log every decision at INFO level.
        """
        self.capability = capability
        self.registry = registry
        self.extraction_engine = extraction_engine
        self.config = config or RouterConfig()
        self.log_routing_decisions = log_routing_decisions
        self.fallback_agent = parse_agent(self.config.fallback_agent)

    def detect_explicit_request(self, text: str) -> Optional[ClinicalAgent]:
        """Return the agent the user explicitly asked for, if any."""
        if not self.config.enable_explicit_requests:
            return None
        for agent, patterns in COMPILED_EXPLICIT_PATTERNS.items():
            if any(pattern.search(text) for pattern in patterns):
                return agent
        return None

    def build_classification_prompt(
        self, text: str, session_history: list[ConversationMessage]
    ) -> str:
        recent_context = summarize_recent_context(
            session_history, n=self.config.context_messages
        )
        return INTENT_CLASSIFICATION_PROMPT.format(
            recent_context=recent_context, user_input=text
        )

    async def classify_intent(
        self, text: str, session_history: list[ConversationMessage]
    ) -> IntentClassification:
        """Classify the intent of a turn.

        Args:
            text: The user's message.
            session_history: Prior messages, oldest first.

        Returns:
            IntentClassification for the first selected function.

        Raises:
            ClassificationError: If the call fails, selects nothing, or
                returns a malformed selection.
        """
        try:
            response: CapabilityResponse = await self.capability.call(
                self.build_classification_prompt(text, session_history),
                list(INTENT_FUNCTION_SCHEMAS.values()),
                SamplingParams(
                    temperature=0.0,
                    top_k=1,
                    max_tokens=self.config.max_output_tokens,
                    require_function=True,
                ),
            )
        except Exception as e:
            raise ClassificationError(f"classification call failed: {e}") from e

        if not response.selected_functions:
            raise ClassificationError("no function selected")
        if len(response.selected_functions) > 1:
            logger.debug(
                f"{len(response.selected_functions)} functions selected, honoring the first"
            )

        call = response.selected_functions[0]
        try:
            function = IntentFunction(call.name)
        except ValueError:
            raise ClassificationError(f"unknown function selected: {call.name}") from None

        parameters = coerce_arguments(call.args)
        if parameters is None:
            raise ClassificationError(f"malformed arguments for {call.name}")

        confidence = (
            self.PARAMETERS_CONFIDENCE if parameters else self.EMPTY_PARAMETERS_CONFIDENCE
        )
        return IntentClassification(
            function=function, parameters=parameters, confidence=confidence
        )

    async def _extract(
        self, text: str, current_agent: Optional[ClinicalAgent]
    ) -> EntityExtractionResult:
        return await self.extraction_engine.extract_entities(
            text, current_agent=current_agent.value if current_agent else None
        )

    async def route_user_input(
        self,
        text: str,
        session_history: Optional[list[ConversationMessage]] = None,
        current_agent: Optional[ClinicalAgent] = None,
    ) -> RouteResult:
        """Decide which agent handles a turn.

        Classification failures and low combined confidence are not errors:
        both return success=True with the fallback agent, the latter with
        requires_user_clarification=True.

        Args:
            text: The user's message.
            session_history: Prior messages, oldest first.
            current_agent: Agent that handled the previous turn.

        Returns:
            RouteResult with the enriched hand-off context.
        """
        history = list(session_history or [])
        try:
            explicit_agent = self.detect_explicit_request(text)
            if explicit_agent is not None:
                entities = await self._extract(text, current_agent)
                context = EnrichedContext(
                    original_query=text,
                    detected_intent=AGENT_TO_INTENT[explicit_agent].value,
                    extracted_entities=entities.entities,
                    session_history=tuple(history),
                    transition_reason=f"Solicitud explícita de cambio a modo {explicit_agent.value}",
                    confidence=1.0,
                    previous_agent=current_agent,
                    is_explicit_request=True,
                )
                self._log_decision(context)
                return RouteResult(
                    success=True, target_agent=explicit_agent, enriched_context=context
                )

            try:
                classification = await self.classify_intent(text, history)
            except ClassificationError as e:
                logger.warning(f"Intent classification failed: {e}")
                return self._fallback_route(
                    text, history, current_agent, f"Intent classification failed: {e}"
                )

            entities = await self._extract(text, current_agent)
            combined = fuse_confidence(classification.confidence, entities.confidence)

            if combined < self.config.confidence_threshold:
                context = EnrichedContext(
                    original_query=text,
                    detected_intent="clarification_needed",
                    extracted_entities=entities.entities,
                    session_history=tuple(history),
                    transition_reason=(
                        f"Confianza combinada {combined:.2f} por debajo del umbral "
                        f"{self.config.confidence_threshold:.2f}: se requiere clarificación"
                    ),
                    confidence=combined,
                    previous_agent=current_agent,
                    parameters=dict(classification.parameters),
                )
                self._log_decision(context)
                return RouteResult(
                    success=True,
                    target_agent=self.fallback_agent,
                    enriched_context=context,
                    requires_user_clarification=True,
                )

            target_agent = INTENT_TO_AGENT[classification.function]
            context = EnrichedContext(
                original_query=text,
                detected_intent=classification.function_name,
                extracted_entities=entities.entities,
                session_history=tuple(history),
                transition_reason=self._transition_reason(
                    classification, entities, current_agent, target_agent
                ),
                confidence=combined,
                previous_agent=current_agent,
                parameters=dict(classification.parameters),
            )
            self._log_decision(context)
            return RouteResult(success=True, target_agent=target_agent, enriched_context=context)

        except Exception as e:
            logger.error(f"Unexpected routing error: {e}", exc_info=True)
            return self._fallback_route(text, history, current_agent, f"Routing error: {e}")

    def _transition_reason(
        self,
        classification: IntentClassification,
        entities: EntityExtractionResult,
        current_agent: Optional[ClinicalAgent],
        target_agent: ClinicalAgent,
    ) -> str:
        primary = ", ".join(entity.value for entity in entities.primary_entities[:3])
        reason = f"Intención {classification.function_name} detectada"
        if primary:
            reason += f" con entidades clave: {primary}"
        if current_agent is None:
            return reason + f"; inicio con agente {target_agent.value}"
        if current_agent != target_agent:
            return reason + f"; cambio de {current_agent.value} a {target_agent.value}"
        return reason + f"; continuidad con {target_agent.value}"

    def _fallback_route(
        self,
        text: str,
        history: list[ConversationMessage],
        current_agent: Optional[ClinicalAgent],
        reason: str,
    ) -> RouteResult:
        context = EnrichedContext(
            original_query=text,
            detected_intent="fallback",
            extracted_entities=(),
            session_history=tuple(history),
            transition_reason=reason,
            confidence=self.FALLBACK_CONFIDENCE,
            previous_agent=current_agent,
        )
        self._log_decision(context)
        return RouteResult(
            success=True,
            target_agent=self.fallback_agent,
            enriched_context=context,
            requires_user_clarification=False,
        )

    def _log_decision(self, context: EnrichedContext) -> None:
        if not self.log_routing_decisions:
            return
        logger.info(
            f"Routing decision: intent={context.detected_intent} "
            f"confidence={context.confidence:.2f} ({categorize_confidence(context.confidence)}) "
            f"entities={len(context.extracted_entities)} reason={context.transition_reason}"
        )

    def select_contextual_tools(
        self,
        function: Optional[IntentFunction],
        entities: EntityExtractionResult,
        session_length: int = 0,
        previous_agent: Optional[ClinicalAgent] = None,
    ) -> list[ToolDescriptor]:
        """Pick tools for the classified intent and extracted entity types.

        When no tool matches the entity types, selection is retried with the
        intent domains alone.
        """
        domains = self.INTENT_DOMAINS.get(function, self.DEFAULT_DOMAINS)
        entity_types = sorted({entity.type.value for entity in entities.entities})
        previous = previous_agent.value if previous_agent else None

        tools = self.registry.get_for_context(
            domains=domains,
            entity_types=entity_types,
            session_length=session_length,
            previous_agent=previous,
        )
        if not tools and entity_types:
            tools = self.registry.get_for_context(
                domains=domains, session_length=session_length, previous_agent=previous
            )
        return tools

    async def orchestrate_with_tools(
        self,
        text: str,
        session_history: Optional[list[ConversationMessage]] = None,
        previous_agent: Optional[ClinicalAgent] = None,
    ) -> OrchestrationResult:
        """Route a turn and select its contextual tools.

        Reports the fused confidence without applying the clarification
        threshold. Any failure yields the fallback agent with the basic tools
        and confidence 0.5.

        Args:
            text: The user's message.
            session_history: Prior messages, oldest first.
            previous_agent: Agent that handled the previous turn.

        Returns:
            OrchestrationResult with success=True.
        """
        history = list(session_history or [])
        try:
            explicit_agent = self.detect_explicit_request(text)
            if explicit_agent is not None:
                classification = IntentClassification(
                    function=AGENT_TO_INTENT[explicit_agent], confidence=1.0
                )
            else:
                classification = await self.classify_intent(text, history)

            entities = await self._extract(text, previous_agent)
            tools = self.select_contextual_tools(
                classification.function, entities, len(history), previous_agent
            )
            if explicit_agent is not None:
                confidence = 1.0
            else:
                confidence = fuse_confidence(classification.confidence, entities.confidence)

            result = OrchestrationResult(
                success=True,
                selected_agent=INTENT_TO_AGENT[classification.function],
                contextual_tools=tuple(tool.callable_schema for tool in tools),
                tool_metadata=tuple(tools),
                confidence=confidence,
                reasoning=self._orchestration_reasoning(classification, entities, tools),
                detected_intent=classification.function_name,
                extracted_entities=entities.entities,
            )
            if self.log_routing_decisions:
                logger.info(
                    f"Tool orchestration: agent={result.selected_agent.value} "
                    f"confidence={confidence:.2f} ({categorize_confidence(confidence)}) "
                    f"tools={result.tool_names}"
                )
            return result

        except ClassificationError as e:
            logger.warning(f"Intent classification failed: {e}")
            return self._fallback_orchestration(f"Intent classification failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected orchestration error: {e}", exc_info=True)
            return self._fallback_orchestration(f"Orchestration error: {e}")

    def _orchestration_reasoning(
        self,
        classification: IntentClassification,
        entities: EntityExtractionResult,
        tools: list[ToolDescriptor],
    ) -> str:
        parts = [
            f"Intención: {classification.function_name} "
            f"(confianza {classification.confidence:.2f})"
        ]
        if entities.entities:
            values = ", ".join(entity.value for entity in entities.primary_entities[:3])
            parts.append(
                f"Entidades: {len(entities.entities)}" + (f" ({values})" if values else "")
            )
        else:
            parts.append("Entidades: ninguna")
        parts.append(
            "Herramientas: " + (", ".join(tool.name for tool in tools) if tools else "ninguna")
        )
        return ". ".join(parts)

    def _fallback_orchestration(self, reason: str) -> OrchestrationResult:
        tools = self.registry.get_basic_tools()
        return OrchestrationResult(
            success=True,
            selected_agent=self.fallback_agent,
            contextual_tools=tuple(tool.callable_schema for tool in tools),
            tool_metadata=tuple(tools),
            confidence=self.FALLBACK_CONFIDENCE,
            reasoning=f"Orquestación de respaldo: {reason}",
            detected_intent="fallback",
        )
