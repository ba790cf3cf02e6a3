"""Unit tests for HTTP client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mood_radar.infrastructure.http_client import HTTPClient


class TestHTTPClientInit:
    """Tests for HTTPClient initialization."""

    @patch("mood_radar.infrastructure.http_client.httpx.AsyncClient")
    def test_init_default_values(self, mock_async_client):
        """Test initialization with default values."""
        HTTPClient()

        mock_async_client.assert_called_once()
        call_kwargs = mock_async_client.call_args[1]
        assert call_kwargs["follow_redirects"] is True

    @patch("mood_radar.infrastructure.http_client.httpx.AsyncClient")
    def test_init_custom_timeout(self, mock_async_client):
        """Test initialization with custom timeout."""
        HTTPClient(timeout=15.0)

        call_kwargs = mock_async_client.call_args[1]
        assert call_kwargs["timeout"].read == 15.0


class TestHTTPClientRequests:
    """Tests for HTTPClient request methods."""

    @pytest.fixture
    def mock_client(self):
        """Create HTTPClient with mocked internal client."""
        with patch("mood_radar.infrastructure.http_client.httpx.AsyncClient") as mock:
            mock_instance = MagicMock()
            mock_instance.get = AsyncMock()
            mock_instance.post = AsyncMock()
            mock_instance.aclose = AsyncMock()
            mock.return_value = mock_instance

            client = HTTPClient()
            yield client, mock_instance

    @pytest.mark.asyncio
    async def test_get_request(self, mock_client):
        """Test GET request."""
        client, mock_instance = mock_client

        await client.get("https://example.com", params={"key": "value"})

        mock_instance.get.assert_called_once_with("https://example.com", params={"key": "value"})

    @pytest.mark.asyncio
    async def test_post_with_json(self, mock_client):
        """Test POST request with JSON body and headers."""
        client, mock_instance = mock_client

        await client.post(
            "https://api.perplexity.ai/chat/completions",
            json={"model": "sonar"},
            headers={"Authorization": "Bearer token"},
        )

        mock_instance.post.assert_called_once_with(
            "https://api.perplexity.ai/chat/completions",
            json={"model": "sonar"},
            headers={"Authorization": "Bearer token"},
        )


class TestHTTPClientClose:
    """Tests for HTTPClient close method."""

    @pytest.mark.asyncio
    async def test_close(self):
        """Test closing the client."""
        with patch("mood_radar.infrastructure.http_client.httpx.AsyncClient") as mock:
            mock_instance = MagicMock()
            mock_instance.aclose = AsyncMock()
            mock.return_value = mock_instance

            client = HTTPClient()
            await client.close()

            mock_instance.aclose.assert_called_once()
