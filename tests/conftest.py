from __future__ import annotations

import threading

import pytest

from backend.core.llm import LLMConfig
from backend.core.session_store import SessionStore
from backend.event_log import clear_events
from backend.services.chat import ChatService


class FakeProvider:
    """Scripted stand-in for a model provider: errors first, then replies."""

    def __init__(self, replies=None, errors=None):
        self.replies = list(replies or [])
        self.errors = list(errors or [])
        self.calls = []

    def __call__(self, cfg, history, parts):
        self.calls.append((list(history), list(parts)))
        if self.errors:
            err = self.errors.pop(0)
            if err is not None:
                raise err
        return self.replies.pop(0) if self.replies else "ok"


class BlockingProvider:
    """Holds the model call open until released, so a cancel can land mid-call."""

    def __init__(self, reply: str = "late reply"):
        self.reply = reply
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self, cfg, history, parts):
        self.started.set()
        self.release.wait(5)
        return self.reply


@pytest.fixture
def fake_provider():
    """Factory for scripted providers: `fake_provider(replies=[...], errors=[...])`."""
    return FakeProvider


@pytest.fixture
def blocking_provider():
    provider = BlockingProvider()
    yield provider
    provider.release.set()


@pytest.fixture(autouse=True)
def _clean_event_log():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def make_service(store):
    def _make(provider, **kwargs) -> ChatService:
        kwargs.setdefault("base_delay", 0)
        return ChatService(store, LLMConfig(api_key="test-key"), provider=provider, **kwargs)

    return _make
