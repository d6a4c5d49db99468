"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Message (role, content, timestamp in epoch-ms).
- default_context(): the profile record (userName, preferences, personality,
  topics, lastUpdated) every session starts from.
- LLMSettings (model, temperature, top_p, max_tokens).
- ChatResult (reply, session_id, fallback flag, meta).
- Usage: running per-model counters (chat tokens, audio seconds, spoken chars).

Stored and wire forms are plain dicts with camelCase keys.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Mapping
from enum import Enum
import time


MAX_LOG_MESSAGES = 50
HISTORY_WINDOW = 10
DEFAULT_USER_NAME = "friend"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


CHAT_ROLES = frozenset({Role.USER.value, Role.ASSISTANT.value})


class Personality(str, Enum):
    CASUAL_FRIEND = "casual_friend"
    SUPPORTIVE_LISTENER = "supportive_listener"
    PLAYFUL_BANTER = "playful_banter"
    CURIOUS_THINKER = "curious_thinker"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Message:
    role: str
    content: str
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        return cls(
            role=data.get("role", ""),
            content=data.get("content", ""),
            timestamp=data.get("timestamp"),
        )


def default_context() -> dict:
    """The record every unseen session starts from."""
    return {
        "userName": None,
        "preferences": {},
        "personality": Personality.CASUAL_FRIEND.value,
        "topics": [],
    }


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 512


@dataclass
class ChatResult:
    reply: str
    session_id: str
    fallback: bool = False
    meta: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Price:
    input_per_1M: float
    output_per_1M: float


@dataclass
class Usage:
    """Per-model running totals; priced by services.pricing."""

    chat_tokens: dict[str, list[int]] = field(default_factory=dict)
    stt_seconds: dict[str, float] = field(default_factory=dict)
    tts_chars: dict[str, int] = field(default_factory=dict)

    def add_chat(self, model: str, tokens_in: int, tokens_out: int) -> None:
        counts = self.chat_tokens.setdefault(model, [0, 0])
        counts[0] += tokens_in
        counts[1] += tokens_out

    def add_transcription(self, model: str, seconds: float) -> None:
        self.stt_seconds[model] = self.stt_seconds.get(model, 0.0) + seconds

    def add_speech(self, model: str, chars: int) -> None:
        self.tts_chars[model] = self.tts_chars.get(model, 0) + chars

    @property
    def tokens_in(self) -> int:
        return sum(c[0] for c in self.chat_tokens.values())

    @property
    def tokens_out(self) -> int:
        return sum(c[1] for c in self.chat_tokens.values())
