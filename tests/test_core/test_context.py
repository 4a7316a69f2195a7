"""Tests for session context types."""

from datetime import datetime

import pytest

from clinical_orchestrator.core import (
    ConversationMessage,
    EnrichedContext,
    SessionContext,
    summarize_recent_context,
)


class TestConversationMessage:
    """Test suite for ConversationMessage."""

    def test_round_trips_through_dict(self):
        message = ConversationMessage(
            role="user", text="Hola", timestamp=datetime(2024, 1, 1, 12, 0, 0)
        )
        restored = ConversationMessage.from_dict(message.to_dict())
        assert restored == message

    def test_from_dict_defaults(self):
        message = ConversationMessage.from_dict({"text": "sin rol"})
        assert message.role == "user"
        assert isinstance(message.timestamp, datetime)


class TestSummarizeRecentContext:
    """Test suite for summarize_recent_context."""

    def test_empty_history(self):
        assert summarize_recent_context([]) == "Inicio de conversación"

    def test_joins_last_messages(self):
        history = [
            ConversationMessage(role="user", text="uno"),
            ConversationMessage(role="model", text="dos"),
            ConversationMessage(role="user", text="tres"),
        ]
        assert summarize_recent_context(history, n=2) == "dos | tres"

    def test_truncates_long_messages(self):
        history = [ConversationMessage(role="user", text="x" * 150)]
        assert summarize_recent_context(history, max_chars=100) == "x" * 100 + "..."

    def test_blank_messages_are_skipped(self):
        history = [ConversationMessage(role="user", text="   ")]
        assert summarize_recent_context(history) == "Inicio de conversación"


class TestSessionContext:
    """Test suite for SessionContext."""

    def test_add_message_enforces_limit(self):
        session = SessionContext(session_id="s1", user_id="u1")
        for i in range(5):
            session.add_message("user", f"m{i}", limit=3)

        assert [m.text for m in session.conversation_history] == ["m2", "m3", "m4"]

    def test_get_recent_context(self):
        session = SessionContext(session_id="s1", user_id="u1")
        session.add_message("user", "hola", limit=10)
        session.add_message("model", "¿en qué te ayudo?", limit=10)

        assert session.get_recent_context(n=1) == "model: ¿en qué te ayudo?"


class TestEnrichedContext:
    """Test suite for EnrichedContext."""

    def test_is_immutable(self):
        context = EnrichedContext(
            original_query="q",
            detected_intent="fallback",
            extracted_entities=(),
            session_history=(),
            transition_reason="r",
            confidence=0.5,
        )
        with pytest.raises(AttributeError):
            context.confidence = 0.9
