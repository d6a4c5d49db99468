"""
Purpose: speech-to-text integration. Allow voice-based inputs.
"""

from __future__ import annotations
import io
import base64
import logging
import uuid
from typing import Optional

from openai import OpenAIError

from ..errors import CollaboratorUnavailable
from ..interfaces import LLMClient

logger = logging.getLogger(__name__)

_SIGNATURES = (
    (b"RIFF", "input.wav"),
    (b"\x1a\x45\xdf\xa3", "input.webm"),
    (b"OggS", "input.ogg"),
    (b"ID3", "input.mp3"),
    (b"fLaC", "input.flac"),
)


def guess_audio_filename(audio: bytes) -> str:
    """Whisper picks the decoder from the file extension, so name the buffer."""
    for magic, name in _SIGNATURES:
        if audio.startswith(magic):
            return name
    if audio[4:8] == b"ftyp":
        return "input.m4a"
    return "input.wav"


def _audio_seconds(resp) -> float:
    """Billed duration: verbose_json carries `duration`, newer models report usage.seconds."""
    duration = getattr(resp, "duration", None)
    if isinstance(duration, (int, float)):
        return float(duration)
    seconds = getattr(getattr(resp, "usage", None), "seconds", None)
    if isinstance(seconds, (int, float)):
        return float(seconds)
    return 0.0


def transcribe_audio_bytes(
    audio: bytes,
    llm: LLMClient,
    *,
    model: str = "whisper-1",
    filename: Optional[str] = None,
) -> tuple[str, dict]:
    """
    Transcribe raw audio bytes to text using the given LLM client (e.g., OpenAI).
    Returns (text, {"model", "duration_s"}).
    Raises CollaboratorUnavailable if the service call fails."""
    client = getattr(llm, "client", llm)
    extra = {"response_format": "verbose_json"} if model.startswith("whisper") else {}
    try:
        with io.BytesIO(audio) as buf:
            buf.name = filename or guess_audio_filename(audio)
            resp = client.audio.transcriptions.create(model=model, file=buf, **extra)
    except OpenAIError as e:
        logger.warning("Transcription failed (%s): %s", type(e).__name__, e)
        raise CollaboratorUnavailable(f"Transcription failed: {e}") from e
    text = (getattr(resp, "text", None) or "").strip()
    return text, {"model": model, "duration_s": _audio_seconds(resp)}


def autoplay_html(mp3_bytes: bytes) -> str:
    """Return an HTML snippet that auto-plays MP3 bytes."""
    if not mp3_bytes:
        return ""
    b64 = base64.b64encode(mp3_bytes).decode("ascii")
    el_id = f"tts_{uuid.uuid4().hex}"
    return f"""
    <audio id="{el_id}" autoplay playsinline preload="auto" style="display:none">
      <source src="data:audio/mpeg;base64,{b64}" type="audio/mpeg">
    </audio>
    <script>
      (function() {{
        const a = document.getElementById("{el_id}");
        if (a) {{
          a.play().catch(() => {{}});
        }}
      }})();
    </script>
    """
