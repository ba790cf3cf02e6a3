"""Perplexity retrieval provider.

Asks the Perplexity chat-completions API for recent public coverage of a
topic as a JSON array of signals. When the completion holds no usable
records, the API's own search_results are used instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from mood_radar.core.exceptions import ConfigError, MalformedResponseError
from mood_radar.core.logging import get_logger
from mood_radar.services.providers.base import (
    AnalysisRequest,
    RetrievalProvider,
    extract_json_array,
    post_json,
)
from mood_radar.services.signals.base import Signal

if TYPE_CHECKING:
    from mood_radar.infrastructure.http_client import HTTPClient

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a precise data extractor."

_RESPONSE_FORMAT = """Return ONLY a strict JSON array of items with fields:
[
  {
    "title": "string",
    "snippet": "string",
    "url": "string",
    "publishedAt": "ISO date string"
  }
]
No extra text, no markdown."""


def build_retrieval_prompt(request: AnalysisRequest) -> str:
    """Build the retrieval prompt for a request.

    Platform and audience are mentioned only when the request has them.

    Args:
        request: Analysis request

    Returns:
        User prompt text
    """
    prompt = f'Find latest news, discussions and public conversations about "{request.topic}"'
    if request.platform:
        prompt += f' on "{request.platform}"'
    if request.region:
        prompt += f' in "{request.region}"'
    if request.time_window:
        prompt += f" in the last {request.time_window}"
    prompt += "."
    if request.audience:
        prompt += f' Target audience: "{request.audience}".'
    if request.source_focus:
        prompt += f" Source focus: {request.source_focus}."
    return f"{prompt}\n{_RESPONSE_FORMAT}"


def completion_content(payload: Any) -> str:
    """Get choices[0].message.content, falling back to choices[0].text."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""

    choice = choices[0]
    message = choice.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if content is None:
        content = choice.get("text")
    return content if isinstance(content, str) else ""


def coerce_signals(records: list[Any]) -> list[Signal]:
    """Coerce raw records into signals, dropping unusable ones."""
    signals = []
    for record in records:
        signal = Signal.from_raw(record)
        if signal is not None:
            signals.append(signal)
    return signals


def coerce_search_results(results: list[Any]) -> list[Signal]:
    """Coerce Perplexity search_results into signals.

    The publish date comes from last_updated, then date.
    """
    records = []
    for item in results:
        if not isinstance(item, dict):
            continue
        published = item.get("last_updated")
        if published is None:
            published = item.get("date")
        records.append({**item, "publishedAt": published})
    return coerce_signals(records)


class PerplexityRetrievalProvider(RetrievalProvider):
    """Perplexity chat-completions retrieval client.

    Attributes:
        api_key: Perplexity API key
        api_url: Base URL or full chat/completions URL
        model: Model name
        http_client: Shared HTTP client from DI
    """

    SERVICE = "Perplexity"
    TEMPERATURE = 0.2

    def __init__(
        self,
        api_key: str,
        http_client: HTTPClient,
        api_url: str = "https://api.perplexity.ai",
        model: str = "sonar",
    ) -> None:
        """Initialize Perplexity client.

        Args:
            api_key: Perplexity API key
            http_client: Shared HTTP client from DI
            api_url: Base URL or full chat/completions URL
            model: Model name
        """
        self.api_key = api_key
        self.http_client = http_client
        self.api_url = api_url
        self.model = model

    @property
    def endpoint(self) -> str:
        """Chat-completions endpoint derived from api_url."""
        if self.api_url.endswith("/chat/completions"):
            return self.api_url
        return f"{self.api_url.rstrip('/')}/chat/completions"

    async def retrieve(self, request: AnalysisRequest) -> list[Signal]:
        """Retrieve signals for a request.

        Args:
            request: Analysis request

        Returns:
            Coerced signals in provider order

        Raises:
            ConfigError: If no API key is configured
            ProviderUnreachableError: On transport failure or non-2xx status
            MalformedResponseError: If neither the completion nor the search
                results hold parseable records
        """
        if not self.api_key:
            raise ConfigError("Missing PERPLEXITY_API_KEY.", config_path="perplexity_api_key")

        logger.info("Retrieving signals", topic=request.topic, region=request.region)
        response = await post_json(
            self.http_client,
            self.SERVICE,
            self.endpoint,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_retrieval_prompt(request)},
                ],
                "temperature": self.TEMPERATURE,
            },
        )
        payload = self._decode(response)

        content = completion_content(payload)
        extracted = extract_json_array(content)
        signals = coerce_signals(extracted or [])

        search_results = payload.get("search_results") if isinstance(payload, dict) else None
        if not signals and isinstance(search_results, list):
            signals = coerce_search_results(search_results)
            logger.info("Using search results fallback", count=len(signals))
        elif extracted is None and not isinstance(search_results, list):
            raise MalformedResponseError(
                self.SERVICE,
                "unable to parse signals from completion",
                raw=content,
            )

        logger.info("Signals retrieved", topic=request.topic, count=len(signals))
        return signals

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                self.SERVICE, "response body is not JSON", raw=response.text
            ) from e


__all__ = [
    "PerplexityRetrievalProvider",
    "build_retrieval_prompt",
    "coerce_search_results",
    "coerce_signals",
    "completion_content",
]
