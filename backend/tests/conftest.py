"""Shared fixtures for backend API tests."""

import base64
import json
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

import users
from chat import ChatRelay
from config import limiter
from errors import UpstreamError
from feedback import FeedbackAdvisor
from judge0 import Judge0Client
from main import (
    app,
    get_chat_relay,
    get_execution_relay,
    get_feedback_advisor,
    get_question_generator,
)
from questions import QuestionGenerator

JUDGE0_URL = "http://judge0.test"


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeLLM:
    """Stands in for ``llm.LLM``: records every message list and replays canned fragments."""

    def __init__(
        self,
        fragments: list[str] | None = None,
        *,
        configured: bool = True,
        fail_on_open: bool = False,
        fail_after: int | None = None,
    ) -> None:
        self.fragments = fragments if fragments is not None else ["Hello", ", ", "candidate."]
        self.configured = configured
        self.fail_on_open = fail_on_open
        self.fail_after = fail_after
        self.calls: list[dict] = []
        self.closed = False

    async def complete(self, messages, *, max_tokens=None, temperature=None) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        if self.fail_on_open:
            raise UpstreamError("LLM request failed: boom")
        return "".join(self.fragments)

    async def stream(self, messages, *, max_tokens=None, temperature=None):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        if self.fail_on_open:
            raise UpstreamError("LLM request failed: boom")
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_after is not None and i >= self.fail_after:
                    raise UpstreamError("LLM stream interrupted")
                yield fragment
        finally:
            self.closed = True


class Judge0Stub:
    """Routes Judge0 calls through ``httpx.MockTransport`` and keeps the requests it saw."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        self.transport = httpx.MockTransport(_record)

    def client(self, base_url: str = JUDGE0_URL, **kwargs) -> Judge0Client:
        return Judge0Client(base_url, transport=self.transport, **kwargs)

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture(autouse=True)
def _reset_state():
    """Reset rate-limiter storage, dependency overrides and accounts between tests."""
    fresh = MemoryStorage()
    limiter._storage = fresh
    limiter._limiter = FixedWindowRateLimiter(fresh)
    users.clear_users()
    yield
    app.dependency_overrides.clear()
    users.clear_users()


@pytest_asyncio.fixture
async def client():
    """Async HTTP client against the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture()
def judge0_stub():
    """Install a Judge0 stub; call it with a request handler, get the stub back."""

    def _install(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> Judge0Stub:
        stub = Judge0Stub(handler)
        relay = stub.client(**kwargs)
        app.dependency_overrides[get_execution_relay] = lambda: relay
        return stub

    return _install


@pytest.fixture()
def fake_llm():
    """Install a FakeLLM behind every LLM-backed endpoint."""

    def _install(**kwargs) -> FakeLLM:
        llm = FakeLLM(**kwargs)
        app.dependency_overrides[get_chat_relay] = lambda: ChatRelay(llm)
        app.dependency_overrides[get_question_generator] = lambda: QuestionGenerator(llm)
        app.dependency_overrides[get_feedback_advisor] = lambda: FeedbackAdvisor(llm)
        return llm

    return _install
