"""
Abstractions for pluggable services. Inversion of control: the controller depends
on interfaces, not concrete services. Enables fakes/mocks and future swaps.
Protocols define what services or components can do,
without saying how they do it.

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta)
- PromptFactory.build_system(context) -> str & assemble(...) -> list[dict]
- SecurityGuard.validate_user_input(text) / sanitize_for_prompt(text)
- KeyValueStorage.get(key) / put(key, value)

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Any, Optional, Protocol, Mapping, Sequence
from .models import LLMSettings


class LLMClient(Protocol):
    def chat(
        self, messages: list[dict[str, str]], settings: LLMSettings
    ) -> tuple[str, dict]: ...


class PromptFactory(Protocol):
    def build_system(self, context: Mapping[str, Any]) -> str: ...

    def build_history(
        self, messages: Sequence[Mapping[str, Any]]
    ) -> list[dict[str, str]]: ...

    def assemble(
        self,
        *,
        context: Mapping[str, Any],
        messages: Sequence[Mapping[str, Any]],
        user_text: str,
    ) -> list[dict[str, str]]: ...


class SecurityGuard(Protocol):
    def validate_user_input(self, text: Optional[str]) -> None: ...

    def validate_audio(self, audio: Optional[bytes]) -> None: ...

    def sanitize_for_prompt(self, text: str) -> str: ...


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, value: Any) -> None: ...
