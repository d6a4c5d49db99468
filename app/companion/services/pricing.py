"""
Purpose: Cost estimation for everything the companion sends to OpenAI.
Chat is billed per token, transcription per audio minute, speech per input
character. Prices are USD list prices and only drive the UI's estimate.
"""

from __future__ import annotations

from ..models import Price, Usage


CHAT_PRICE_TABLE = {
    "gpt-4o-mini": Price(0.15, 0.60),
    "gpt-4.1-mini": Price(0.40, 1.60),
    "gpt-4o": Price(2.50, 10.00),
    "gpt-5-mini": Price(0.25, 2.00),
}

STT_PRICE_PER_MINUTE = {
    "whisper-1": 0.006,
    "gpt-4o-transcribe": 0.006,
    "gpt-4o-mini-transcribe": 0.003,
}

# gpt-4o-mini-tts is billed on audio tokens; 15 USD / 1M chars is its rough equivalent.
TTS_PRICE_PER_1M_CHARS = {
    "tts-1": 15.0,
    "tts-1-hd": 30.0,
    "gpt-4o-mini-tts": 15.0,
}


def estimate_chat_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    p = CHAT_PRICE_TABLE.get(model, Price(0.0, 0.0))
    return (tokens_in / 1000000) * p.input_per_1M + (
        tokens_out / 1000000
    ) * p.output_per_1M


def estimate_transcription_cost(model: str, seconds: float) -> float:
    return (seconds / 60.0) * STT_PRICE_PER_MINUTE.get(model, 0.0)


def estimate_speech_cost(model: str, chars: int) -> float:
    return (chars / 1000000) * TTS_PRICE_PER_1M_CHARS.get(model, 0.0)


def usage_cost(usage: Usage) -> dict[str, float]:
    """Break a session's usage into chat / stt / tts cost plus the total."""
    chat = sum(
        estimate_chat_cost(model, tin, tout)
        for model, (tin, tout) in usage.chat_tokens.items()
    )
    stt = sum(
        estimate_transcription_cost(model, secs)
        for model, secs in usage.stt_seconds.items()
    )
    tts = sum(
        estimate_speech_cost(model, chars) for model, chars in usage.tts_chars.items()
    )
    return {"chat": chat, "stt": stt, "tts": tts, "total": chat + stt + tts}
