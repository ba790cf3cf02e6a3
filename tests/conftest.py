"""Pytest configuration and fixtures.

This module provides common fixtures used across all tests.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from mood_radar.core.logging import setup_logging
from mood_radar.services.providers.base import AnalysisRequest
from mood_radar.services.signals.base import Signal

# Setup logging for tests
setup_logging()


@pytest.fixture
def make_signal() -> Callable[..., Signal]:
    """Factory for test signals.

    Returns:
        Function building a Signal with sensible defaults
    """

    def _make(
        title: str = "Test headline",
        snippet: str = "Test snippet body",
        url: str = "https://example.com/1",
        published_at: str = "",
    ) -> Signal:
        return Signal(title=title, snippet=snippet, url=url, published_at=published_at)

    return _make


@pytest.fixture
def sentiment_request() -> AnalysisRequest:
    """Create a complete sentiment analysis request."""
    return AnalysisRequest(
        topic="sustainable fashion",
        region="US",
        time_window="7 days",
        source_focus="news and blogs",
    )


@pytest.fixture
def opportunity_request() -> AnalysisRequest:
    """Create a complete opportunity analysis request."""
    return AnalysisRequest(
        topic="home espresso",
        region="US",
        platform="YouTube",
        audience="beginner baristas",
    )


@pytest.fixture
def mock_http_client() -> MagicMock:
    """Create a mock shared HTTP client."""
    client = MagicMock()
    client.post = AsyncMock()
    client.get = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def create_mock_response() -> Callable[..., httpx.Response]:
    """Factory for real httpx responses.

    Returns:
        Function building an httpx.Response from JSON or text
    """

    def _create(
        status_code: int = 200,
        json_data: Any = None,
        text: str | None = None,
        url: str = "https://api.test/endpoint",
    ) -> httpx.Response:
        request = httpx.Request("POST", url)
        if text is not None:
            return httpx.Response(status_code, text=text, request=request)
        return httpx.Response(status_code, json=json_data, request=request)

    return _create


@pytest.fixture
def anyio_backend() -> str:
    """Specify backend for anyio.

    Returns:
        Backend name
    """
    return "asyncio"
