"""
Conversation sessions and their persistence.

A session is the caller-owned record of one conversation: the message
history the agent loop works on, the model, and timestamps. Sessions are
stored as JSON files, one per session, and can be resumed.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import datetime as _datetime
import json as _json
import logging as _logging
import pathlib as _pathlib
import re as _re
import secrets as _secrets
import string as _string
import typing as _typing

import skald.api.types as api_types

_logger = _logging.getLogger(__name__)

_SESSION_ID_RE = _re.compile(r"^[a-zA-Z0-9_-]{1,100}$")


def _now() -> str:
    return _datetime.datetime.now(_datetime.timezone.utc).isoformat()


def generate_session_id() -> str:
    """Generate a unique session ID (8 character alphanumeric)."""
    alphabet = _string.ascii_lowercase + _string.digits
    return "".join(_secrets.choice(alphabet) for _ in range(8))


class InvalidSessionIdError(ValueError):
    """Raised when a session ID has an invalid format."""


def validate_session_id(session_id: str) -> str:
    """Validate session ID format to prevent path traversal.

    Session IDs are 1-100 characters of [a-zA-Z0-9_-].

    Raises:
        InvalidSessionIdError: If the session ID format is invalid.
    """
    if _SESSION_ID_RE.match(session_id):
        return session_id
    raise InvalidSessionIdError(
        f"Invalid session ID: '{session_id}'. "
        "Session IDs must be alphanumeric with hyphens/underscores (max 100 chars)."
    )


@_dataclasses.dataclass
class ConversationSession:
    """
    A conversation that can be persisted and resumed.

    Attributes:
        id: Unique session identifier
        created_at: ISO timestamp of session creation
        updated_at: ISO timestamp of last update
        model: Model used for this session
        messages: Conversation history, in canonical message form
        title: Optional display title (first user message by default)
    """

    id: str
    created_at: str
    updated_at: str
    model: str
    messages: list[api_types.Message] = _dataclasses.field(default_factory=list)
    title: str | None = None

    @classmethod
    def create(cls, model: str) -> ConversationSession:
        now = _now()
        return cls(id=generate_session_id(), created_at=now, updated_at=now, model=model)

    def add_message(self, message: api_types.Message) -> None:
        self.messages.append(message)
        self.touch()

    def replace_messages(self, messages: _typing.Iterable[api_types.Message]) -> None:
        """Mirror the loop's live history (after a turn or a compression)."""
        self.messages = list(messages)
        if self.title is None:
            self.title = _default_title(self.messages)
        self.touch()

    def touch(self) -> None:
        self.updated_at = _now()

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "model": self.model,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any]) -> ConversationSession:
        return cls(
            id=data["id"],
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            model=data["model"],
            title=data.get("title"),
            messages=[api_types.Message.from_dict(m) for m in data.get("messages", [])],
        )

    def summary(self) -> dict[str, _typing.Any]:
        """Get a summary of the session (for listing)."""
        return {
            "id": self.id,
            "updated_at": self.updated_at,
            "model": self.model,
            "title": self.title,
            "message_count": len(self.messages),
        }


def _default_title(messages: list[api_types.Message]) -> str | None:
    for message in messages:
        if message.role == "user" and isinstance(message.content, str) and message.content:
            first_line = message.content.strip().splitlines()[0]
            return first_line[:60]
    return None


class SessionManager:
    """
    Manages session persistence and retrieval.

    Sessions are stored as JSON files in the sessions directory.
    """

    def __init__(self, sessions_dir: _pathlib.Path) -> None:
        self.sessions_dir = sessions_dir

    def _session_path(self, session_id: str) -> _pathlib.Path:
        """Path to a session file.

        Raises:
            InvalidSessionIdError: If session_id format is invalid.
        """
        validate_session_id(session_id)
        return self.sessions_dir / f"{session_id}.json"

    def exists(self, session_id: str) -> bool:
        try:
            return self._session_path(session_id).exists()
        except InvalidSessionIdError:
            return False

    def save(self, session: ConversationSession) -> _pathlib.Path:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        path = self._session_path(session.id)
        path.write_text(_json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        return path

    def load(self, session_id: str) -> ConversationSession | None:
        """Load a session by ID; None if missing or unreadable."""
        path = self._session_path(session_id)
        if not path.exists():
            return None
        try:
            return ConversationSession.from_dict(_json.loads(path.read_text(encoding="utf-8")))
        except (_json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            _logger.warning("Could not load session %s: %s", session_id, e)
            return None

    def delete(self, session_id: str) -> bool:
        path = self._session_path(session_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def list_recent(self, limit: int | None = None) -> list[ConversationSession]:
        """Sessions sorted by updated_at, newest first."""
        if not self.sessions_dir.exists():
            return []
        sessions: list[ConversationSession] = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                sessions.append(
                    ConversationSession.from_dict(_json.loads(path.read_text(encoding="utf-8")))
                )
            except (_json.JSONDecodeError, KeyError, TypeError, ValueError):
                _logger.debug("Skipping unreadable session file %s", path)
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions[:limit] if limit is not None else sessions
