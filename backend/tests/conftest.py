import inspect
import os

# Ensure config reads these during import in tests.
os.environ.setdefault("OPENROUTER_API_KEY", "sk-or-v1-test-key-0000000000")
os.environ.setdefault("ENV", "test")

import pytest

from backend.src.config import CouncilConfig
from backend.src.engine.errors import ModelTransportError
from backend.src.engine.openrouter import ModelReply


class FakeInvoker:
    """Stands in for `query_model`.

    `replies` maps model -> str | Exception | callable(messages) returning either
    (optionally awaitable). Unknown models fail with a transport error.
    """

    def __init__(self, replies):
        self.replies = dict(replies)
        self.calls = []

    def prompts_for(self, model):
        return [messages[0]["content"] for m, messages, _ in self.calls if m == model]

    async def __call__(self, model, messages, **kwargs):
        self.calls.append((model, messages, kwargs))
        reply = self.replies.get(model)
        if callable(reply):
            reply = reply(messages)
            if inspect.isawaitable(reply):
                reply = await reply
        if isinstance(reply, BaseException):
            raise reply
        if reply is None:
            raise ModelTransportError(model, "no fake reply configured")
        return ModelReply(model=model, content=reply, reasoning_details=None, usage=None, latency_ms=1)


@pytest.fixture
def fake_invoker():
    return FakeInvoker


@pytest.fixture
def council_config():
    return CouncilConfig(
        council_models=("test/alpha", "test/beta", "test/gamma"),
        chairman_model="test/chair",
        title_model="test/title",
        model_timeout_seconds=5.0,
        title_timeout_seconds=1.0,
        run_timeout_seconds=None,
    )
