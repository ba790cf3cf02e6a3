"""Unit tests for the Perplexity retrieval provider."""

import json

import pytest

from mood_radar.core.exceptions import (
    ConfigError,
    MalformedResponseError,
    ProviderUnreachableError,
)
from mood_radar.services.providers.perplexity import (
    PerplexityRetrievalProvider,
    build_retrieval_prompt,
    coerce_search_results,
    completion_content,
)


def completion(content: str, **extra) -> dict:
    """Create a chat-completions payload."""
    return {"choices": [{"message": {"content": content}}], **extra}


@pytest.fixture
def provider(mock_http_client) -> PerplexityRetrievalProvider:
    """Create a provider with a mock HTTP client."""
    return PerplexityRetrievalProvider(api_key="pplx-key", http_client=mock_http_client)


class TestBuildRetrievalPrompt:
    """Tests for build_retrieval_prompt."""

    def test_sentiment_prompt(self, sentiment_request):
        """Test topic, region and window are embedded."""
        prompt = build_retrieval_prompt(sentiment_request)

        assert '"sustainable fashion"' in prompt
        assert '"US"' in prompt
        assert "last 7 days" in prompt
        assert "Source focus: news and blogs." in prompt
        assert "publishedAt" in prompt
        assert "Target audience" not in prompt

    def test_opportunity_prompt(self, opportunity_request):
        """Test platform and audience are embedded when present."""
        prompt = build_retrieval_prompt(opportunity_request)

        assert 'on "YouTube"' in prompt
        assert 'Target audience: "beginner baristas".' in prompt


class TestCompletionContent:
    """Tests for completion_content."""

    def test_message_content(self):
        """Test the chat message content is used."""
        assert completion_content(completion("[]")) == "[]"

    def test_text_fallback(self):
        """Test choices[0].text is used without a message."""
        assert completion_content({"choices": [{"text": "raw"}]}) == "raw"

    @pytest.mark.parametrize("payload", [None, [], {}, {"choices": []}, {"choices": ["x"]}])
    def test_missing_content(self, payload):
        """Test unexpected shapes give empty content."""
        assert completion_content(payload) == ""


class TestCoerceSearchResults:
    """Tests for coerce_search_results."""

    def test_date_precedence(self):
        """Test last_updated wins over date."""
        signals = coerce_search_results(
            [
                {"title": "A", "url": "https://a.com", "last_updated": "2025-03-02", "date": "x"},
                {"title": "B", "url": "https://b.com", "date": "2025-03-01"},
                {"title": "", "url": "https://c.com"},
                "garbage",
            ]
        )

        assert [(s.title, s.published_at) for s in signals] == [
            ("A", "2025-03-02"),
            ("B", "2025-03-01"),
        ]


class TestPerplexityRetrievalProvider:
    """Tests for PerplexityRetrievalProvider.retrieve."""

    @pytest.mark.parametrize(
        "api_url",
        [
            "https://api.perplexity.ai",
            "https://api.perplexity.ai/",
            "https://api.perplexity.ai/chat/completions",
        ],
    )
    def test_endpoint(self, mock_http_client, api_url):
        """Test base and full URLs resolve to the same endpoint."""
        provider = PerplexityRetrievalProvider("k", mock_http_client, api_url=api_url)

        assert provider.endpoint == "https://api.perplexity.ai/chat/completions"

    @pytest.mark.asyncio
    async def test_retrieve_parses_completion(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test records are parsed from prose-wrapped JSON."""
        records = [
            {"title": "Eco line", "snippet": "s", "url": "https://a.com/1", "publishedAt": "2025"},
            {"title": "", "url": "https://b.com/2"},
        ]
        mock_http_client.post.return_value = create_mock_response(
            200, completion(f"Here is the data:\n{json.dumps(records)}")
        )

        signals = await provider.retrieve(sentiment_request)

        assert [s.url for s in signals] == ["https://a.com/1"]
        assert signals[0].published_at == "2025"

    @pytest.mark.asyncio
    async def test_request_shape(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test the request carries the bearer key, model and prompt."""
        mock_http_client.post.return_value = create_mock_response(200, completion("[]"))

        await provider.retrieve(sentiment_request)

        call = mock_http_client.post.call_args
        assert call.args[0] == "https://api.perplexity.ai/chat/completions"
        assert call.kwargs["headers"]["Authorization"] == "Bearer pplx-key"
        body = call.kwargs["json"]
        assert body["model"] == "sonar"
        assert body["temperature"] == 0.2
        assert [m["role"] for m in body["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_search_results_fallback(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test search_results are used when the completion has no records."""
        mock_http_client.post.return_value = create_mock_response(
            200,
            completion(
                "I could not format that.",
                search_results=[{"title": "Fallback", "url": "https://f.com", "date": "2025"}],
            ),
        )

        signals = await provider.retrieve(sentiment_request)

        assert [s.title for s in signals] == ["Fallback"]

    @pytest.mark.asyncio
    async def test_empty_array_is_not_malformed(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test an empty but valid array yields no signals."""
        mock_http_client.post.return_value = create_mock_response(200, completion("[]"))

        assert await provider.retrieve(sentiment_request) == []

    @pytest.mark.asyncio
    async def test_unparseable_completion(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test prose without JSON or search results is malformed."""
        mock_http_client.post.return_value = create_mock_response(200, completion("No data."))

        with pytest.raises(MalformedResponseError) as exc_info:
            await provider.retrieve(sentiment_request)

        assert exc_info.value.context["raw"] == "No data."

    @pytest.mark.asyncio
    async def test_non_json_body(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test a non-JSON body is malformed."""
        mock_http_client.post.return_value = create_mock_response(200, text="<html>")

        with pytest.raises(MalformedResponseError):
            await provider.retrieve(sentiment_request)

    @pytest.mark.asyncio
    async def test_error_status(
        self, provider, mock_http_client, create_mock_response, sentiment_request
    ):
        """Test a non-2xx status is unreachable."""
        mock_http_client.post.return_value = create_mock_response(429, {"error": "rate"})

        with pytest.raises(ProviderUnreachableError) as exc_info:
            await provider.retrieve(sentiment_request)

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_http_client, sentiment_request):
        """Test retrieval without a key fails before any request."""
        provider = PerplexityRetrievalProvider(api_key="", http_client=mock_http_client)

        with pytest.raises(ConfigError):
            await provider.retrieve(sentiment_request)

        mock_http_client.post.assert_not_called()
