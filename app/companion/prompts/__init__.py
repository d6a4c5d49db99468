"""Facade that keeps prompt construction behind one DefaultPromptFactory API."""

from __future__ import annotations
from typing import Any, Mapping, Sequence

from . import persona as _persona
from .common import assemble as _assemble
from .common import build_history as _build_history


class DefaultPromptFactory:
    # SYSTEM
    def build_system(self, context: Mapping[str, Any]) -> str:
        return _persona.build_persona_system(context or {})

    # HISTORY
    def build_history(
        self, messages: Sequence[Mapping[str, Any]]
    ) -> list[dict[str, str]]:
        return _build_history(messages)

    def assemble(
        self,
        *,
        context: Mapping[str, Any],
        messages: Sequence[Mapping[str, Any]],
        user_text: str,
    ) -> list[dict[str, str]]:
        return _assemble(
            system=self.build_system(context),
            history=self.build_history(messages),
            user_text=user_text,
        )
