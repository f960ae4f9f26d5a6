"""
Pytest configuration and shared fixtures.
"""

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from completion_queue.config import Settings
from completion_queue.notifier import WebhookNotifier
from completion_queue.store import JobStore
from tests.helpers import FakeClock


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with short delays."""
    return Settings(
        max_concurrent_requests=2,
        max_attempts=3,
        backoff_base_seconds=0.01,
        job_timeout_seconds=2.0,
        retention_seconds=3600.0,
        reaper_interval_seconds=300.0,
        webhook_timeout_seconds=1.0,
        api_key=None,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> JobStore:
    """Create a job store driven by the fake clock."""
    return JobStore(clock=clock)


@pytest.fixture
def webhook_requests() -> list[dict[str, Any]]:
    """Webhook requests captured by the mock transport, in arrival order."""
    return []


@pytest_asyncio.fixture
async def notifier(
    webhook_requests: list[dict[str, Any]],
) -> AsyncGenerator[WebhookNotifier, None]:
    """Create a notifier whose HTTP client records every delivery."""

    def handler(request: httpx.Request) -> httpx.Response:
        webhook_requests.append(
            {"url": str(request.url), "body": json.loads(request.content)}
        )
        return httpx.Response(204)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier(client=client)
    yield notifier
    await notifier.aclose()


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Create a sample chat completion payload."""
    return {
        "model": "gpt-3.5-turbo",
        "messages": [{"role": "user", "content": "Hello"}],
        "temperature": 0.7,
    }


@pytest.fixture
def sample_completion() -> dict[str, Any]:
    """Create a sample downstream chat completion response."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hi there!"},
                "finish_reason": "stop",
            }
        ],
    }
