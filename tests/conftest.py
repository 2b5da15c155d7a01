# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a recording log sink, sample completion options, canned
chat-completion payloads and an httpx MockTransport factory.
No external services: all network I/O is mocked.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
from pydantic import BaseModel

from pagepilot.llm.models import (
    ChatCompletionOptions,
    ChatImage,
    ChatMessage,
    ResponseModel,
)
from pagepilot.llm.retry import NO_DELAY, RetryConfig
from pagepilot.logging.models import LogLine


class RecordingSink:
    """LogSink that keeps every LogLine it receives."""

    def __init__(self) -> None:
        self.lines: list[LogLine] = []

    def __call__(self, line: LogLine) -> None:
        self.lines.append(line)

    def messages(self) -> list[str]:
        return [line.message for line in self.lines]


class ClickAction(BaseModel):
    """Structured output used across the LLM tests."""

    selector: str
    reason: str


def completion_payload(content: str | None = "ok", **overrides: Any) -> dict[str, Any]:
    """Chat-completion JSON as an OpenAI-compatible backend returns it."""
    payload: dict[str, Any] = {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }
    payload.update(overrides)
    return payload


class MockBackend:
    """Scripted httpx transport: replies are consumed in order, calls recorded.

    Each reply is a dict (sent as JSON with status 200), an httpx.Response,
    or an exception instance to raise.
    """

    def __init__(self, replies: list[Any]) -> None:
        self._replies = list(replies)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


# === FIXTURES ===


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def no_delay() -> RetryConfig:
    return NO_DELAY


@pytest.fixture
def sample_options() -> ChatCompletionOptions:
    """Plain-text completion request."""
    return ChatCompletionOptions(
        messages=[
            ChatMessage(role="system", content="You drive a web browser."),
            ChatMessage(role="user", content="Which button submits the form?"),
        ],
        temperature=0.1,
        request_id="req-1",
    )


@pytest.fixture
def structured_options() -> ChatCompletionOptions:
    """Completion request asking for a ClickAction."""
    return ChatCompletionOptions(
        messages=[ChatMessage(role="user", content="Click the login button")],
        response_model=ResponseModel(name="ClickAction", schema=ClickAction),
        request_id="req-structured",
    )


@pytest.fixture
def sample_image() -> ChatImage:
    return ChatImage(buffer=b"\xff\xd8\xff\xe0fake-jpeg", description="Current viewport")


@pytest.fixture
def mock_backend() -> Callable[[list[Any]], MockBackend]:
    """Factory: ``mock_backend([reply, ...])``."""
    return MockBackend


@pytest.fixture
def click_action() -> type[ClickAction]:
    return ClickAction


@pytest.fixture
def make_completion() -> Callable[..., dict[str, Any]]:
    """Factory: ``make_completion(content, **overrides)``."""
    return completion_payload
