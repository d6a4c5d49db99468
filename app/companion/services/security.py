"""
Purpose: Guardrails for inputs.
Content: early, predictable failures; prevent empty or oversized requests
before anything is stored or sent to a model.
"""

from typing import Optional

from ..errors import InvalidInput

MAX_INPUT_CHARS = 8000
MAX_AUDIO_BYTES = 25 * 1024 * 1024


class DefaultSecurity:
    def validate_user_input(self, text: Optional[str]) -> None:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Please enter a non-empty message.")
        if len(text) > MAX_INPUT_CHARS:
            raise InvalidInput("Your message is too long.")

    def validate_audio(self, audio: Optional[bytes]) -> None:
        if not audio:
            raise InvalidInput("No audio provided.")
        if len(audio) > MAX_AUDIO_BYTES:
            raise InvalidInput("Audio file is too large.")

    def sanitize_for_prompt(self, text: str) -> str:
        return (text or "").replace("\x00", "").strip()
