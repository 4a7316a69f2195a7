"""Tests for session transcript stores."""

import json
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from clinical_orchestrator.core import (
    ConversationMessage,
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionNotFoundError,
)


def _history():
    return [
        ConversationMessage(role="user", text="Hola", timestamp=datetime(2024, 1, 1, 9, 0)),
        ConversationMessage(role="model", text="¿Cómo estás?", timestamp=datetime(2024, 1, 1, 9, 1)),
    ]


class TestInMemorySessionStore:
    """Test suite for InMemorySessionStore."""

    def test_get_unknown_returns_none(self):
        assert InMemorySessionStore().get("nope") is None

    def test_put_then_get(self):
        store = InMemorySessionStore()
        store.put("s1", _history())
        assert store.get("s1") == _history()

    def test_get_returns_a_copy(self):
        store = InMemorySessionStore()
        store.put("s1", _history())
        store.get("s1").clear()
        assert len(store.get("s1")) == 2

    def test_delete_unknown_raises(self):
        with pytest.raises(SessionNotFoundError) as exc_info:
            InMemorySessionStore().delete("nope")
        assert exc_info.value.session_id == "nope"


class TestJsonFileSessionStore:
    """Test suite for JsonFileSessionStore."""

    @pytest.fixture
    def temp_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_put_writes_one_file_per_session(self, temp_dir):
        store = JsonFileSessionStore(sessions_dir=temp_dir)
        store.put("s1", _history())

        path = temp_dir / "s1.json"
        assert path.exists()
        data = json.loads(path.read_text())
        assert data["session_id"] == "s1"
        assert data["history"][1]["text"] == "¿Cómo estás?"

    def test_round_trip(self, temp_dir):
        store = JsonFileSessionStore(sessions_dir=temp_dir)
        store.put("s1", _history())
        assert JsonFileSessionStore(sessions_dir=temp_dir).get("s1") == _history()

    def test_unsafe_session_id_stays_inside_directory(self, temp_dir):
        store = JsonFileSessionStore(sessions_dir=temp_dir)
        store.put("../escape", _history())
        assert list(temp_dir.glob("*.json"))
        assert store.get("../escape") == _history()

    def test_corrupted_file_returns_none(self, temp_dir):
        (temp_dir / "bad.json").write_text("not json")
        assert JsonFileSessionStore(sessions_dir=temp_dir).get("bad") is None

    def test_delete(self, temp_dir):
        store = JsonFileSessionStore(sessions_dir=temp_dir)
        store.put("s1", _history())
        store.delete("s1")
        assert store.get("s1") is None
        with pytest.raises(SessionNotFoundError):
            store.delete("s1")
