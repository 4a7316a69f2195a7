"""Session transcript storage: in-memory and JSON file-based persistence."""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .context import ConversationMessage

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when an operation requires a session that does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionStore(ABC):
    """Key-value store of session transcripts keyed by session id."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[list[ConversationMessage]]:
        """Return the stored history, or None if the session is unknown."""
        pass

    @abstractmethod
    def put(self, session_id: str, history: list[ConversationMessage]) -> None:
        """Replace the stored history for a session."""
        pass

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store, used by default and in tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, list[ConversationMessage]] = {}

    def get(self, session_id: str) -> Optional[list[ConversationMessage]]:
        history = self._sessions.get(session_id)
        return list(history) if history is not None else None

    def put(self, session_id: str, history: list[ConversationMessage]) -> None:
        self._sessions[session_id] = list(history)

    def delete(self, session_id: str) -> None:
        if session_id not in self._sessions:
            raise SessionNotFoundError(session_id)
        del self._sessions[session_id]


def _safe_filename(session_id: str) -> str:
    """Map a session id to a filesystem-safe file stem."""
    stem = re.sub(r"[^A-Za-z0-9_-]", "_", session_id.strip())
    return stem or "_"


class JsonFileSessionStore(SessionStore):
    """File-based store; each session is a separate JSON file."""

    def __init__(self, sessions_dir: Optional[Path] = None) -> None:
        """Initialize storage.

        Args:
            sessions_dir: Directory for session files. Defaults to
                ~/.clinical_orchestrator/sessions/
        """
        self.sessions_dir = sessions_dir or (
            Path.home() / ".clinical_orchestrator" / "sessions"
        )
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Sessions directory: {self.sessions_dir}")

    def _get_session_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{_safe_filename(session_id)}.json"

    def get(self, session_id: str) -> Optional[list[ConversationMessage]]:
        path = self._get_session_path(session_id)
        if not path.exists():
            return None

        try:
            with open(path) as f:
                data = json.load(f)
            return [ConversationMessage.from_dict(item) for item in data.get("history", [])]
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error(f"Error reading session {session_id}: {e}")
            return None

    def put(self, session_id: str, history: list[ConversationMessage]) -> None:
        path = self._get_session_path(session_id)
        with open(path, "w") as f:
            json.dump(
                {
                    "session_id": session_id,
                    "history": [message.to_dict() for message in history],
                },
                f,
                indent=2,
                ensure_ascii=False,
            )
        logger.debug(f"Saved session to {path}")

    def delete(self, session_id: str) -> None:
        path = self._get_session_path(session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        path.unlink()
        logger.info(f"Deleted session: {session_id}")
