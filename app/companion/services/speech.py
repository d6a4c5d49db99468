"""
Purpose: text-to-speech integration. Lets replies be read out loud.
"""

from __future__ import annotations
import logging

from openai import OpenAIError

from ..errors import CollaboratorUnavailable
from ..interfaces import LLMClient

logger = logging.getLogger(__name__)

MAX_TTS_CHARS = 1200


def clip_for_speech(text: str, max_chars: int = MAX_TTS_CHARS) -> str:
    safe = (text or "").strip()
    if len(safe) > max_chars:
        safe = safe[: max_chars - 1].rstrip() + "…"
    return safe


def tts_bytes(
    text: str,
    llm: LLMClient,
    *,
    voice: str = "alloy",
    model: str = "gpt-4o-mini-tts",
    max_chars: int = MAX_TTS_CHARS,
) -> bytes:
    """
    Return raw MP3 bytes for `text`. Empty input gives b"".
    Raises CollaboratorUnavailable if the service call fails.
    """
    safe = clip_for_speech(text, max_chars)
    if not safe:
        return b""

    client = getattr(llm, "client", llm)
    try:
        resp = client.audio.speech.create(
            model=model, voice=voice, input=safe, response_format="mp3"
        )
        if hasattr(resp, "read"):
            return resp.read()
        return resp.content
    except OpenAIError as e:
        logger.warning("Speech synthesis failed (%s): %s", type(e).__name__, e)
        raise CollaboratorUnavailable(f"Speech synthesis failed: {e}") from e
