"""
Purpose: Thin client wrapper around OpenAI (or other LLMs later).
One place for auth, timeouts, model options, response/usage normalization.

A single attempt per call: SDK-level retries are disabled and any SDK error
(timeout, rate limit, connection, API) becomes CollaboratorUnavailable, which
the controller masks with a fallback reply.

Testing: Mock SDK calls; assert it maps usage and errors correctly.
"""

from __future__ import annotations
import logging
from openai import OpenAI, OpenAIError

from ..errors import CollaboratorUnavailable
from ..models import LLMSettings

logger = logging.getLogger(__name__)


class OpenAILLMClient:
    def __init__(self, api_key: str, *, timeout: float = 30.0):
        self.api_key = api_key
        if not self.api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        try:
            self.client = OpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)
        except Exception as e:
            raise RuntimeError(f"Failed to initialize OpenAI client: {e}")

    def chat(
        self, messages: list[dict[str, str]], settings: LLMSettings
    ) -> tuple[str, dict]:
        payload = [{"role": m["role"], "content": m["content"]} for m in messages]

        try:
            cc = self.client.chat.completions.create(
                model=settings.model,
                messages=payload,
                temperature=settings.temperature,
                top_p=settings.top_p,
                max_tokens=settings.max_tokens,
            )
        except OpenAIError as e:
            logger.warning("Chat completion failed (%s): %s", type(e).__name__, e)
            raise CollaboratorUnavailable(f"Generation failed: {e}") from e

        text = cc.choices[0].message.content if cc.choices else None
        usage = getattr(cc, "usage", None)
        tokens_in = getattr(usage, "prompt_tokens", 0) if usage else 0
        tokens_out = getattr(usage, "completion_tokens", 0) if usage else 0
        return (text or ""), {
            "model": cc.model,
            "tokens_in": tokens_in,
            "tokens_out": tokens_out,
        }
