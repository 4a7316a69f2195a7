"""Semantic entity extraction over the classification capability."""

import logging
import time
from typing import Any, Optional

from ..config import ExtractionConfig
from ..core.capability import (
    ClassificationCapability,
    FunctionCall,
    SamplingParams,
    coerce_arguments,
)
from ..core.entities import (
    EntityExtractionResult,
    EntityType,
    EntityValidationResult,
    ExtractedEntity,
    deduplicate_entities,
)
from .functions import EXTRACTION_FUNCTIONS, FUNCTIONS_BY_NAME, ExtractionFunction
from .vocabulary import KNOWN_ENTITIES, SYNONYMS

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """Analiza el siguiente texto y extrae todas las entidades clínicas relevantes:

"{text}"

{session_context}Extrae y clasifica las entidades con alta precisión. Prioriza entidades \
específicas y técnicas sobre conceptos generales. Puedes llamar a varias funciones."""


class EntityExtractionEngine:
    """Turns free text into typed, confidence-scored clinical entities.

    Each call issues a single capability round offering every extraction
    function. Failures never propagate: they yield an empty result with
    confidence 0.
    """

    MAX_PREVIOUS_ENTITIES = 10
    HIGH_CONFIDENCE_ACCEPT = 0.9

    def __init__(
        self,
        capability: ClassificationCapability,
        config: Optional[ExtractionConfig] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            capability: Capability used for the extraction call.
            config: Engine configuration. Defaults to ExtractionConfig().
        """
        self.capability = capability
        self.config = config or ExtractionConfig()
        self._known: dict[EntityType, set[str]] = {
            entity_type: set(values) for entity_type, values in KNOWN_ENTITIES.items()
        }
        self._synonyms: dict[str, list[str]] = {
            key: list(values) for key, values in SYNONYMS.items()
        }

    def build_prompt(
        self,
        text: str,
        current_agent: Optional[str] = None,
        previous_entities: Optional[list[str]] = None,
    ) -> str:
        """Build the extraction prompt, with session context when enabled."""
        session_lines = []
        if self.config.enable_contextual_analysis:
            if current_agent:
                session_lines.append(f"- Agente actual: {current_agent}")
            if previous_entities:
                recent = previous_entities[: self.MAX_PREVIOUS_ENTITIES]
                session_lines.append(f"- Entidades previas: {', '.join(recent)}")

        session_context = ""
        if session_lines:
            session_context = "Contexto de la sesión:\n" + "\n".join(session_lines) + "\n\n"
        return EXTRACTION_PROMPT.format(text=text, session_context=session_context)

    async def extract_entities(
        self,
        text: str,
        current_agent: Optional[str] = None,
        previous_entities: Optional[list[str]] = None,
    ) -> EntityExtractionResult:
        """Extract entities from text.

        Args:
            text: Free text to analyse.
            current_agent: Agent currently handling the session, if any.
            previous_entities: Values seen earlier in the session.

        Returns:
            EntityExtractionResult; empty with confidence 0 on any failure.
        """
        start = time.perf_counter()
        try:
            response = await self.capability.call(
                self.build_prompt(text, current_agent, previous_entities),
                [function.schema for function in EXTRACTION_FUNCTIONS],
                SamplingParams(temperature=0.0, max_tokens=self.config.max_output_tokens),
            )
            entities = self._process_function_calls(response.selected_functions)
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.warning(f"Entity extraction failed after {elapsed:.0f}ms: {e}")
            return EntityExtractionResult.empty(processing_time_ms=elapsed)

        elapsed = (time.perf_counter() - start) * 1000
        result = EntityExtractionResult.from_entities(entities, processing_time_ms=elapsed)
        logger.debug(
            f"Extracted {len(result.entities)} entities "
            f"({len(result.primary_entities)} primary) in {elapsed:.0f}ms"
        )
        return result

    def _process_function_calls(self, calls: list[FunctionCall]) -> list[ExtractedEntity]:
        entities: list[ExtractedEntity] = []
        for call in calls:
            function = FUNCTIONS_BY_NAME.get(call.name)
            if function is None:
                logger.debug(f"Ignoring unknown extraction function: {call.name}")
                continue

            args = coerce_arguments(call.args)
            if args is None:
                logger.warning(f"Malformed arguments for {call.name}, skipping")
                continue

            items = args.get(function.list_field) or []
            if not isinstance(items, list):
                continue
            for item in items:
                entity = self._item_to_entity(item, function)
                if entity is not None:
                    entities.append(entity)

        return self._cap_per_type(deduplicate_entities(entities))

    def _item_to_entity(
        self, item: Any, function: ExtractionFunction
    ) -> Optional[ExtractedEntity]:
        if not isinstance(item, dict):
            return None
        value = item.get(function.value_field)
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            confidence = float(item.get("confidence", 0))
        except (TypeError, ValueError):
            return None
        if confidence < self.config.confidence_threshold:
            return None

        value = value.strip()
        synonyms: tuple[str, ...] = ()
        if self.config.enable_synonym_expansion:
            synonyms = tuple(self._synonyms.get(value, ()))
        return ExtractedEntity(
            type=function.entity_type,
            value=value,
            confidence=confidence,
            context=function.describe(item),
            synonyms=synonyms,
        )

    def _cap_per_type(self, entities: list[ExtractedEntity]) -> list[ExtractedEntity]:
        counts: dict[EntityType, int] = {}
        capped = []
        for entity in entities:
            counts[entity.type] = counts.get(entity.type, 0) + 1
            if counts[entity.type] <= self.config.max_entities_per_type:
                capped.append(entity)
        return capped

    def validate_entities(self, entities: list[ExtractedEntity]) -> EntityValidationResult:
        """Cross-check entities against the curated vocabulary.

        Known values (exact, case-insensitive or via synonym) and values with
        confidence >= 0.9 are accepted; everything else is returned as
        invalid with a suggestion.
        """
        if not self.config.enable_validation:
            return EntityValidationResult(valid_entities=list(entities))

        result = EntityValidationResult()
        for entity in entities:
            if self._is_known(entity.type, entity.value) or (
                entity.confidence >= self.HIGH_CONFIDENCE_ACCEPT
            ):
                result.valid_entities.append(entity)
            else:
                result.invalid_entities.append(entity)
                result.suggestions.append(f"Verificar: {entity.value} ({entity.type.value})")
        return result

    def _is_known(self, entity_type: EntityType, value: str) -> bool:
        known = self._known.get(entity_type, set())
        if value in known:
            return True

        lower = value.lower()
        if any(candidate.lower() == lower for candidate in known):
            return True

        if self.config.enable_synonym_expansion:
            for synonyms in self._synonyms.values():
                if any(synonym.lower() == lower for synonym in synonyms):
                    return True
        return False

    def add_known_entity(
        self, entity_type: EntityType, value: str, synonyms: Optional[list[str]] = None
    ) -> None:
        """Extend the curated vocabulary at runtime."""
        self._known.setdefault(entity_type, set()).add(value)
        if synonyms:
            self._synonyms[value] = list(synonyms)

    def get_engine_stats(self) -> dict[str, Any]:
        entities_by_type = {
            entity_type.value: len(values) for entity_type, values in self._known.items()
        }
        return {
            "total_known_entities": sum(entities_by_type.values()),
            "entities_by_type": entities_by_type,
            "total_synonyms": len(self._synonyms),
            "extraction_functions": [function.name for function in EXTRACTION_FUNCTIONS],
            "config": {
                "enable_validation": self.config.enable_validation,
                "confidence_threshold": self.config.confidence_threshold,
                "max_entities_per_type": self.config.max_entities_per_type,
                "enable_synonym_expansion": self.config.enable_synonym_expansion,
            },
        }
