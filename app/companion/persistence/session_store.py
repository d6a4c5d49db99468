"""
Purpose: Session transcript & profile storage on top of a KeyValueStorage.
Why: every turn must survive across requests; the prompt needs recent history
and the user's profile.

What is inside:
MessageStore with append/list: per-session log capped at the last 50 turns.
ContextStore with get/update: per-session profile, shallow-merge updates.

Sessions are provisioned implicitly: reads of an unseen session return the
empty log / default record. Writes for one session are serialized by a
per-session lock; different sessions never share state.

Testing:
In-memory: simple state tests.
SQLite: tmp_path DB fixture.
"""

from __future__ import annotations
import threading
from typing import Any, Mapping, Optional

from ..errors import InvalidInput
from ..interfaces import KeyValueStorage
from ..models import (
    CHAT_ROLES,
    MAX_LOG_MESSAGES,
    Message,
    default_context,
    now_ms,
)


class _SessionLocks:
    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def for_session(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.Lock()
            return lock


def _messages_key(session_id: str) -> str:
    return f"{session_id}:messages"


def _context_key(session_id: str) -> str:
    return f"{session_id}:context"


class MessageStore:
    def __init__(
        self, storage: KeyValueStorage, *, max_messages: int = MAX_LOG_MESSAGES
    ) -> None:
        self.storage = storage
        self.max_messages = max_messages
        self._locks = _SessionLocks()

    def append(self, session_id: str, message: Message | Mapping[str, Any]) -> dict:
        """Validate, timestamp and append one turn. Returns the stored dict."""
        if not isinstance(message, Message):
            message = Message.from_dict(message)

        if message.role not in CHAT_ROLES:
            raise InvalidInput(f"Unsupported message role: {message.role!r}")
        if not isinstance(message.content, str) or not message.content.strip():
            raise InvalidInput("Message content must be a non-empty string.")

        with self._locks.for_session(session_id):
            # Resolved under the lock so timestamps follow log order.
            stored = {
                "role": message.role,
                "content": message.content,
                "timestamp": (
                    message.timestamp if message.timestamp is not None else now_ms()
                ),
            }
            messages = self.storage.get(_messages_key(session_id)) or []
            messages.append(stored)
            if len(messages) > self.max_messages:
                del messages[: len(messages) - self.max_messages]
            self.storage.put(_messages_key(session_id), messages)
        return dict(stored)

    def list(self, session_id: str) -> list[dict]:
        return list(self.storage.get(_messages_key(session_id)) or [])


_CONTEXT_ALIASES = {"user_name": "userName", "last_updated": "lastUpdated"}


class ContextStore:
    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self._locks = _SessionLocks()

    def get(self, session_id: str) -> dict:
        stored: Optional[dict] = self.storage.get(_context_key(session_id))
        if stored is None:
            return default_context()
        return stored

    def update(self, session_id: str, partial: Mapping[str, Any]) -> dict:
        """Shallow-merge `partial` onto the current record and persist it."""
        if not isinstance(partial, Mapping):
            raise InvalidInput("Context update must be a JSON object.")

        updates = {_CONTEXT_ALIASES.get(k, k): v for k, v in partial.items()}

        with self._locks.for_session(session_id):
            merged = dict(self.get(session_id))
            merged.update(updates)
            merged["lastUpdated"] = now_ms()
            self.storage.put(_context_key(session_id), merged)
        return merged
