"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations
from typing import Any, Mapping, Sequence

from ..models import CHAT_ROLES, HISTORY_WINDOW


def build_history(
    messages: Sequence[Mapping[str, Any]], *, window: int = HISTORY_WINDOW
) -> list[dict[str, str]]:
    """Last `window` log entries, chat roles only, reduced to role/content."""
    if not messages:
        return []
    return [
        {"role": m.get("role"), "content": m.get("content")}
        for m in list(messages)[-window:]
        if m.get("role") in CHAT_ROLES
    ]


def assemble(
    *, system: str, history: list[dict[str, str]], user_text: str
) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        *history,
        {"role": "user", "content": user_text},
    ]
