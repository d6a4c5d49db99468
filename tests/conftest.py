import random

import pytest

from companion.controller import ConversationController
from companion.errors import CollaboratorUnavailable
from companion.models import LLMSettings
from companion.persistence.session_store import ContextStore, MessageStore
from companion.persistence.storage import InMemoryStorage


class FakeLLM:
    """Stands in for OpenAILLMClient: records every prompt, replies from a script."""

    def __init__(self, replies=None, error=None, meta=None):
        self.replies = list(replies or [])
        self.error = error
        self.meta = meta
        self.calls = []

    def chat(self, messages, settings):
        self.calls.append({"messages": messages, "settings": settings})
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if self.replies else "Sounds fun! What happened next?"
        if self.meta is not None:
            return reply, self.meta
        return reply, {"model": settings.model, "tokens_in": 12, "tokens_out": 7}


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def message_store(storage):
    return MessageStore(storage)


@pytest.fixture
def context_store(storage):
    return ContextStore(storage)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def failing_llm():
    return FakeLLM(error=CollaboratorUnavailable("request timed out"))


@pytest.fixture
def make_controller(message_store, context_store):
    def _make(llm):
        return ConversationController(
            llm,
            message_store,
            context_store,
            settings=LLMSettings(model="gpt-4o-mini", temperature=0.7, top_p=0.9, max_tokens=512),
            rng=random.Random(7),
        )

    return _make


@pytest.fixture
def controller(make_controller, fake_llm):
    return make_controller(fake_llm)
