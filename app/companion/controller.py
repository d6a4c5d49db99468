"""
Purpose: The single orchestration point for a conversation turn.
It centralizes "one-turn" logic so neither the HTTP layer nor the UI knows how
prompts/LLM/stores work.

Key responsibilities:
- Validate and sanitize the user's text (services.security).
- Store the user turn, then read the session's profile and log.
- Build system prompt + trimmed history + new turn (prompts).
- Call services.llm_openai (via LLMClient interface), masking any failure
  with a canned reply (services.fallbacks).
- Store the assistant turn and return (reply, session_id).
- Voice in/out: transcribe audio, synthesize replies, never failing visibly.

Storage errors are not masked: losing the log is not something a friendly
reply can paper over.

Testing: Pure unit tests with fakes: mock LLMClient, in-memory storage.
Verify message assembly, persistence and fallbacks.
"""

from __future__ import annotations
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping, Optional

from .config import Settings
from .errors import InvalidInput, CollaboratorUnavailable
from .interfaces import LLMClient, PromptFactory, SecurityGuard
from .models import ChatResult, LLMSettings, Message, Role, Usage
from .persistence.session_store import ContextStore, MessageStore
from .persistence.storage import build_storage
from .prompts import DefaultPromptFactory
from .services import fallbacks
from .services.llm_openai import OpenAILLMClient
from .services.security import DefaultSecurity
from .services.speech import clip_for_speech, tts_bytes
from .services.voice import transcribe_audio_bytes

logger = logging.getLogger(__name__)


def _without_turn(messages: list[dict], turn: dict) -> list[dict]:
    """Drop the most recent entry equal to `turn` (the one we just stored)."""
    for i in range(len(messages) - 1, -1, -1):
        if messages[i] == turn:
            return messages[:i] + messages[i + 1 :]
    return messages


class ConversationController:
    def __init__(
        self,
        llm: Optional[LLMClient],
        messages: MessageStore,
        contexts: ContextStore,
        *,
        settings: Optional[LLMSettings] = None,
        stt_model: str = "whisper-1",
        tts_model: str = "gpt-4o-mini-tts",
        tts_voice: str = "alloy",
        rng: Optional[random.Random] = None,
    ):
        self.llm: Optional[LLMClient] = llm
        self.messages = messages
        self.contexts = contexts
        self.prompts: PromptFactory = DefaultPromptFactory()
        self.security: SecurityGuard = DefaultSecurity()
        self.settings = settings or LLMSettings(model="gpt-4o-mini")
        self.stt_model = stt_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.rng = rng

        self.usage = Usage()
        self.model_used: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, *, llm: Optional[LLMClient] = None
    ) -> "ConversationController":
        """Wire storage and (when a key is configured) the OpenAI client."""
        if llm is None and settings.openai_api_key:
            llm = OpenAILLMClient(
                api_key=settings.openai_api_key, timeout=settings.request_timeout
            )
        if llm is None:
            logger.warning("No OPENAI_API_KEY configured; replies will be canned.")
        storage = build_storage(settings)
        return cls(
            llm,
            MessageStore(storage),
            ContextStore(storage),
            settings=settings.llm_settings(),
            stt_model=settings.stt_model,
            tts_model=settings.tts_model,
            tts_voice=settings.tts_voice,
        )

    def is_ready(self) -> bool:
        """True if a generation client is configured."""
        return self.llm is not None

    # ---------------------------
    # Session reads / profile
    # ---------------------------
    def history(self, session_id: str) -> list[dict]:
        return self.messages.list(session_id)

    def get_context(self, session_id: str) -> dict:
        return self.contexts.get(session_id)

    def update_context(self, session_id: str, partial: Mapping[str, Any]) -> dict:
        return self.contexts.update(session_id, partial)

    # ---------------------------
    # One chat turn
    # ---------------------------
    def send_message(self, session_id: str, text: Optional[str]) -> ChatResult:
        """
        Handles a normal back-and-forth turn (user input + AI reply).
        Raises InvalidInput for empty text and StorageFailure if the log can't
        be written; model failures come back as a fallback reply instead.
        """
        self.security.validate_user_input(text)
        user_text = self.security.sanitize_for_prompt(text)
        if not user_text:
            raise InvalidInput("Please enter a non-empty message.")

        stored_user = self.messages.append(
            session_id, Message(role=Role.USER.value, content=user_text)
        )

        with ThreadPoolExecutor(max_workers=2) as pool:
            context_future = pool.submit(self.contexts.get, session_id)
            log_future = pool.submit(self.messages.list, session_id)
            context = context_future.result()
            log = log_future.result()

        prompt = self.prompts.assemble(
            context=context,
            messages=_without_turn(log, stored_user),
            user_text=user_text,
        )

        reply, fallback, meta = self._generate(prompt)

        self.messages.append(
            session_id, Message(role=Role.ASSISTANT.value, content=reply)
        )
        logger.info(
            "Chat turn: session=%s text_len=%s history=%s reply_len=%s fallback=%s",
            session_id,
            len(user_text),
            len(prompt) - 2,
            len(reply),
            fallback,
        )
        return ChatResult(
            reply=reply, session_id=session_id, fallback=fallback, meta=meta
        )

    def _generate(self, prompt: list[dict[str, str]]) -> tuple[str, bool, dict]:
        if self.llm is None:
            return fallbacks.pick(fallbacks.FILLER_REPLIES, self.rng), True, {}

        try:
            reply, meta = self.llm.chat(prompt, self.settings)
        except CollaboratorUnavailable as e:
            logger.warning("Generation unavailable, using fallback: %s", e)
            return fallbacks.pick(fallbacks.APOLOGY_REPLIES, self.rng), True, {}
        except Exception:
            logger.exception("Generation raised unexpectedly, using fallback")
            return fallbacks.pick(fallbacks.APOLOGY_REPLIES, self.rng), True, {}

        meta = dict(meta or {})
        self.model_used = meta.get("model") or self.settings.model
        self.usage.add_chat(
            self.model_used,
            int(meta.get("tokens_in") or 0),
            int(meta.get("tokens_out") or 0),
        )

        reply = (reply or "").strip()
        if not reply:
            logger.warning("Generation returned an empty reply, using fallback")
            return fallbacks.pick(fallbacks.EMPTY_REPLIES, self.rng), True, meta
        return reply, False, meta

    # ---------------------------
    # Voice in / out
    # ---------------------------
    def transcribe(self, audio: Optional[bytes]) -> str:
        """Returns a transcript (possibly empty) or a sentinel string, never an error."""
        self.security.validate_audio(audio)
        if self.llm is None:
            return fallbacks.TRANSCRIPTION_UNAVAILABLE
        try:
            text, meta = transcribe_audio_bytes(audio, self.llm, model=self.stt_model)
        except Exception:
            logger.exception("Transcription failed, returning sentinel")
            return fallbacks.TRANSCRIPTION_FAILED

        self.usage.add_transcription(
            meta.get("model") or self.stt_model, float(meta.get("duration_s") or 0.0)
        )
        return text

    def speak(self, text: Optional[str]) -> bytes:
        """Returns MP3 bytes for `text`, or b"" if synthesis isn't possible."""
        safe = (text or "").strip()
        if not safe:
            raise InvalidInput("No text provided.")
        if self.llm is None:
            return b""
        try:
            audio = tts_bytes(
                safe, self.llm, voice=self.tts_voice, model=self.tts_model
            )
        except Exception:
            logger.exception("Speech synthesis failed")
            return b""

        self.usage.add_speech(self.tts_model, len(clip_for_speech(safe)))
        return audio
