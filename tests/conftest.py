"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports the settings module,
so every test sees the same deterministic configuration.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "test-model")
os.environ.setdefault("LLM_API_KEY", "test-router-key")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_STRATEGY", "fixed")
os.environ.setdefault("RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "5")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock, Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from homework_api.adapters.llm.base import AbstractLLMClient  # noqa: E402
from homework_api.adapters.rate_limit import (  # noqa: E402
    EscalationPolicy,
    InMemoryFixedWindowRateLimiter,
)
from homework_api.core.app_factory import create_app  # noqa: E402
from homework_api.services.chat_service import ChatService  # noqa: E402


def completion(content: str = "The answer is 42.") -> dict:
    """Minimal upstream chat-completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


@pytest.fixture
def clock() -> Mock:
    """Synthetic millisecond clock starting at t=0."""
    return Mock(return_value=0.0)


@pytest.fixture
def limiter(clock: Mock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(
        limit=5,
        window_ms=60_000,
        escalation=EscalationPolicy(multiplier=2, cap_factor=16),
        clock=clock,
    )


@pytest.fixture
def llm() -> AsyncMock:
    mock = AsyncMock(spec=AbstractLLMClient)
    mock.create_chat_completion.return_value = completion()
    return mock


@pytest.fixture
def app(limiter: InMemoryFixedWindowRateLimiter, llm: AsyncMock) -> FastAPI:
    application = create_app(rate_limiter=limiter)
    application.state.chat_service = ChatService(llm=llm, limiter=limiter)
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_completion():
    return completion
