"""Typed semantic entities produced by the extraction engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EntityType(str, Enum):
    """Kinds of clinical entity the extraction engine recognises."""

    THERAPEUTIC_TECHNIQUE = "therapeutic_technique"
    TARGET_POPULATION = "target_population"
    DISORDER_CONDITION = "disorder_condition"
    CLINICAL_CONCEPT = "clinical_concept"
    INTERVENTION_METHOD = "intervention_method"
    ASSESSMENT_TOOL = "assessment_tool"
    DOCUMENTATION_PROCESS = "documentation_process"
    ACADEMIC_VALIDATION = "academic_validation"
    SOCRATIC_EXPLORATION = "socratic_exploration"


# Always primary regardless of confidence
HIGH_SALIENCE_TYPES = frozenset(
    {EntityType.THERAPEUTIC_TECHNIQUE, EntityType.DISORDER_CONDITION}
)
PRIMARY_CONFIDENCE = 0.8


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score to [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class ExtractedEntity:
    """A typed, confidence-scored semantic unit."""

    type: EntityType
    value: str
    confidence: float
    context: Optional[str] = None
    synonyms: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    @property
    def key(self) -> tuple[EntityType, str]:
        """Deduplication key."""
        return (self.type, self.value.lower())

    @property
    def is_primary(self) -> bool:
        """Whether the entity belongs in the primary partition."""
        return self.confidence >= PRIMARY_CONFIDENCE or self.type in HIGH_SALIENCE_TYPES


@dataclass(frozen=True)
class EntityExtractionResult:
    """Outcome of one extraction call."""

    entities: tuple[ExtractedEntity, ...] = ()
    primary_entities: tuple[ExtractedEntity, ...] = ()
    secondary_entities: tuple[ExtractedEntity, ...] = ()
    confidence: float = 0.0
    processing_time_ms: float = 0.0

    @classmethod
    def from_entities(
        cls, entities: list[ExtractedEntity], processing_time_ms: float
    ) -> "EntityExtractionResult":
        """Partition entities and compute the mean confidence."""
        primary = tuple(entity for entity in entities if entity.is_primary)
        secondary = tuple(entity for entity in entities if not entity.is_primary)
        confidence = (
            sum(entity.confidence for entity in entities) / len(entities)
            if entities
            else 0.0
        )
        return cls(
            entities=tuple(entities),
            primary_entities=primary,
            secondary_entities=secondary,
            confidence=confidence,
            processing_time_ms=processing_time_ms,
        )

    @classmethod
    def empty(cls, processing_time_ms: float = 0.0) -> "EntityExtractionResult":
        """Result used when extraction fails or finds nothing."""
        return cls(processing_time_ms=processing_time_ms)


@dataclass
class EntityValidationResult:
    """Outcome of cross-checking entities against the curated vocabulary."""

    valid_entities: list[ExtractedEntity] = field(default_factory=list)
    invalid_entities: list[ExtractedEntity] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.invalid_entities


def deduplicate_entities(entities: list[ExtractedEntity]) -> list[ExtractedEntity]:
    """Drop repeated (type, lowercase value) pairs; first occurrence wins."""
    seen: set[tuple[EntityType, str]] = set()
    unique = []
    for entity in entities:
        if entity.key in seen:
            continue
        seen.add(entity.key)
        unique.append(entity)
    return unique
