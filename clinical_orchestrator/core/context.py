"""Session state and hand-off context for the orchestration pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .agents import ClinicalAgent
from .entities import ExtractedEntity


@dataclass
class ConversationMessage:
    """A single message in a session transcript."""

    role: str
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConversationMessage":
        """Create a ConversationMessage from dictionary."""
        timestamp = data.get("timestamp")
        return cls(
            role=data.get("role", "user"),
            text=data.get("text", ""),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
        )


def summarize_recent_context(
    history: list[ConversationMessage], n: int = 2, max_chars: int = 100
) -> str:
    """Build a compact excerpt of the last messages for classification prompts.

    Args:
        history: Conversation transcript, oldest first.
        n: Number of trailing messages to include.
        max_chars: Per-message truncation length.

    Returns:
        Messages joined by " | ", or "Inicio de conversación" when empty.
    """
    recent = history[-n:] if n > 0 else []
    parts = []
    for message in recent:
        text = message.text.strip()
        if not text:
            continue
        if len(text) > max_chars:
            text = text[:max_chars] + "..."
        parts.append(text)
    if not parts:
        return "Inicio de conversación"
    return " | ".join(parts)


@dataclass
class SessionMetadata:
    """Bookkeeping for one session."""

    start_time: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)
    total_interactions: int = 0
    dominant_topics: list[str] = field(default_factory=list)
    agent_switches: int = 0


@dataclass
class SessionContext:
    """Mutable per-conversation state owned by the dynamic orchestrator."""

    session_id: str
    user_id: str
    conversation_history: list[ConversationMessage] = field(default_factory=list)
    current_agent: Optional[ClinicalAgent] = None
    active_tools: list = field(default_factory=list)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def add_message(self, role: str, text: str, limit: int) -> None:
        """Append a message and keep only the most recent `limit` entries.

        Args:
            role: "user" or "model".
            text: Message text.
            limit: Maximum number of messages retained.
        """
        self.conversation_history.append(
            ConversationMessage(role=role, text=text, timestamp=self.metadata.last_activity)
        )
        if limit > 0 and len(self.conversation_history) > limit:
            self.conversation_history = self.conversation_history[-limit:]

    def get_recent_context(self, n: int = 3) -> str:
        """Get formatted string of recent messages.

        Args:
            n: Maximum number of recent messages to include.

        Returns:
            Formatted string with recent conversation history.
        """
        recent = self.conversation_history[-n:]
        return "\n".join(f"{message.role}: {message.text}" for message in recent)


@dataclass(frozen=True)
class EnrichedContext:
    """Hand-off packet passed to the agent layer; created once per turn."""

    original_query: str
    detected_intent: str
    extracted_entities: tuple[ExtractedEntity, ...]
    session_history: tuple[ConversationMessage, ...]
    transition_reason: str
    confidence: float
    previous_agent: Optional[ClinicalAgent] = None
    parameters: dict[str, Any] = field(default_factory=dict)
    is_explicit_request: bool = False
