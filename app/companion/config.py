from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .models import LLMSettings


load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY") or None
        self.chat_model: str = os.getenv("CHAT_MODEL", "gpt-4o-mini")
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
        self.top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
        self.max_tokens: int = int(os.getenv("MODEL_MAX_TOKENS", "512"))
        self.stt_model: str = os.getenv("STT_MODEL", "whisper-1")
        self.tts_model: str = os.getenv("TTS_MODEL", "gpt-4o-mini-tts")
        self.tts_voice: str = os.getenv("TTS_VOICE", "alloy")
        self.request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
        self.storage_backend: str = os.getenv("STORAGE_BACKEND", "memory").lower()
        self.storage_path: str = os.getenv("STORAGE_PATH", "companion.db")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}

    def llm_settings(self) -> LLMSettings:
        return LLMSettings(
            model=self.chat_model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
