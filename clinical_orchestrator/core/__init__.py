"""Core abstractions shared by the orchestration pipeline."""

from .agents import (
    AGENT_DESCRIPTIONS,
    AGENT_TO_INTENT,
    DEFAULT_AGENT,
    INTENT_TO_AGENT,
    ClinicalAgent,
    IntentFunction,
    parse_agent,
)
from .cache import BoundedCache
from .capability import (
    AnthropicCapability,
    CapabilityResponse,
    ClassificationCapability,
    ClassificationError,
    FunctionCall,
    SamplingParams,
    coerce_arguments,
)
from .context import (
    ConversationMessage,
    EnrichedContext,
    SessionContext,
    SessionMetadata,
    summarize_recent_context,
)
from .entities import (
    EntityExtractionResult,
    EntityType,
    EntityValidationResult,
    ExtractedEntity,
    clamp_confidence,
    deduplicate_entities,
)
from .results import OrchestrationResult, Recommendations, RouteResult
from .session_store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionNotFoundError,
    SessionStore,
)

__all__ = [
    "AGENT_DESCRIPTIONS",
    "AGENT_TO_INTENT",
    "AnthropicCapability",
    "BoundedCache",
    "CapabilityResponse",
    "ClassificationCapability",
    "ClassificationError",
    "ClinicalAgent",
    "ConversationMessage",
    "DEFAULT_AGENT",
    "EnrichedContext",
    "EntityExtractionResult",
    "EntityType",
    "EntityValidationResult",
    "ExtractedEntity",
    "FunctionCall",
    "INTENT_TO_AGENT",
    "InMemorySessionStore",
    "OrchestrationResult",
    "Recommendations",
    "RouteResult",
    "IntentFunction",
    "JsonFileSessionStore",
    "SamplingParams",
    "SessionContext",
    "SessionMetadata",
    "SessionNotFoundError",
    "SessionStore",
    "clamp_confidence",
    "coerce_arguments",
    "deduplicate_entities",
    "parse_agent",
    "summarize_recent_context",
]
