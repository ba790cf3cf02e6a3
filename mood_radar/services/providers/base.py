"""Base classes for external analysis providers.

This module defines the abstract provider interfaces, the request DTO they
consume, and the helpers every provider shares:
- Lenient JSON extraction from text that wraps JSON in prose
- Schema validation returning a tagged SchemaResult instead of raising
- HTTP error mapping onto the pipeline error taxonomy
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from mood_radar.core.exceptions import (
    MalformedResponseError,
    ProviderUnreachableError,
    RequestValidationError,
)
from mood_radar.core.logging import get_logger
from mood_radar.services.signals.base import (
    ClassifiedSignal,
    NarrativeCluster,
    Signal,
    WireModel,
)

if TYPE_CHECKING:
    from mood_radar.infrastructure.http_client import HTTPClient

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class AnalysisRequest(WireModel):
    """Parameters of one analysis run.

    Attributes:
        topic: Topic or niche to analyze
        region: Region or country focus
        time_window: Look-back window (e.g. "7 days")
        source_focus: Preferred kind of sources
        platform: Target creator platform (opportunity runs)
        audience: Target audience (opportunity runs)
    """

    topic: str = ""
    region: str = ""
    time_window: str = ""
    source_focus: str = ""
    platform: str | None = None
    audience: str | None = None

    def missing_fields(self, *names: str) -> list[str]:
        """Get the named fields that are missing or blank."""
        return [name for name in names if not (getattr(self, name) or "").strip()]

    def require(self, *names: str) -> None:
        """Ensure the named fields are present.

        Raises:
            RequestValidationError: If any named field is missing or blank
        """
        missing = self.missing_fields(*names)
        if missing:
            raise RequestValidationError(
                f"Missing {', '.join(missing)}.",
                fields=missing,
            )

    def context(self) -> dict[str, Any]:
        """Get the non-empty request fields with wire names, for prompts."""
        return {key: value for key, value in self.to_wire().items() if value}


@dataclass
class ClassificationResult:
    """Output of the classification provider.

    Attributes:
        items: Classified items
        clusters: Clusters supplied by the provider (None if omitted)
        signals: Signals actually sent after the snippet budget
    """

    items: list[ClassifiedSignal]
    clusters: list[NarrativeCluster] | None = None
    signals: list[Signal] = field(default_factory=list)


@dataclass
class SchemaResult(Generic[ModelT]):
    """Tagged result of validating an untrusted payload.

    Exactly one of data (success) or violations (failure) is meaningful.

    Attributes:
        ok: Whether validation passed
        data: Typed payload on success
        violations: "field.path: reason" strings on failure
    """

    ok: bool
    data: ModelT | None = None
    violations: list[str] = field(default_factory=list)


def validate_payload(schema: type[ModelT], payload: Any) -> SchemaResult[ModelT]:
    """Validate an untrusted payload against a pydantic schema.

    Never raises: violations are returned in the result.

    Args:
        schema: Pydantic model class
        payload: Parsed JSON payload

    Returns:
        SchemaResult with typed data or the list of violations
    """
    try:
        return SchemaResult(ok=True, data=schema.model_validate(payload))
    except ValidationError as e:
        violations = [
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in e.errors()
        ]
        return SchemaResult(ok=False, violations=violations)


def _extract_between(text: str, opening: str, closing: str) -> Any:
    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end == -1 or end < start:
        return None
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None


def extract_json_array(text: str) -> list[Any] | None:
    """Extract the JSON array between the first "[" and the last "]".

    Args:
        text: Provider output, possibly with surrounding prose

    Returns:
        Parsed list, or None if nothing parseable was found
    """
    parsed = _extract_between(text or "", "[", "]")
    return parsed if isinstance(parsed, list) else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Extract the JSON object between the first "{" and the last "}".

    Args:
        text: Provider output, possibly with surrounding prose

    Returns:
        Parsed dict, or None if nothing parseable was found
    """
    parsed = _extract_between(text or "", "{", "}")
    return parsed if isinstance(parsed, dict) else None


def parse_json_body(text: str) -> Any:
    """Parse a response body as JSON, falling back to object extraction.

    Returns:
        Parsed value, or None if the body holds no usable JSON
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return extract_json_object(text)
    return parsed if parsed not in (None, "") else None


async def post_json(
    http_client: HTTPClient,
    service: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """POST to a provider, mapping transport and status failures.

    Args:
        http_client: Shared HTTP client
        service: Provider name for errors and logs
        url: Endpoint URL
        **kwargs: Passed through to httpx (json, headers, ...)

    Returns:
        Successful (2xx) response

    Raises:
        ProviderUnreachableError: On timeout, transport error, or non-2xx status
    """
    try:
        response = await http_client.post(url, **kwargs)
    except httpx.TimeoutException as e:
        logger.error("Provider request timed out", service=service, endpoint=url)
        raise ProviderUnreachableError(service, "request timed out", endpoint=url) from e
    except httpx.RequestError as e:
        logger.error("Provider request error", service=service, endpoint=url, error=str(e))
        raise ProviderUnreachableError(service, str(e) or type(e).__name__, endpoint=url) from e

    if not response.is_success:
        logger.error(
            "Provider returned error status",
            service=service,
            endpoint=url,
            status_code=response.status_code,
        )
        raise ProviderUnreachableError(
            service,
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            endpoint=url,
            response_body=response.text,
        )
    return response


class RetrievalProvider(ABC):
    """Turns an analysis request into raw signals."""

    @abstractmethod
    async def retrieve(self, request: AnalysisRequest) -> list[Signal]:
        """Retrieve signals for a request.

        Args:
            request: Analysis request

        Returns:
            Coerced signals (not yet deduplicated)
        """
        ...


class ClassificationProvider(ABC):
    """Assigns emotion/concern/narrative labels to signals."""

    @abstractmethod
    async def classify(
        self,
        request: AnalysisRequest,
        signals: list[Signal],
    ) -> ClassificationResult:
        """Classify signals.

        Args:
            request: Analysis request
            signals: Deduplicated signals

        Returns:
            ClassificationResult with items and optional clusters
        """
        ...


class AgentProvider(ABC):
    """Runs a goal and returns a stage-specific JSON result."""

    @abstractmethod
    async def run_goal(self, goal: str) -> Any:
        """Run a goal description and return the agent's JSON result."""
        ...

    async def run_stage(self, goal: str, schema: type[ModelT]) -> ModelT:
        """Run a goal and validate its result against a stage schema.

        Args:
            goal: Goal description
            schema: Stage output schema

        Returns:
            Validated stage output

        Raises:
            MalformedResponseError: If the result violates the schema
        """
        result = validate_payload(schema, await self.run_goal(goal))
        if not result.ok or result.data is None:
            raise MalformedResponseError(
                self.service_name,
                f"{schema.__name__} failed validation",
                violations=result.violations,
            )
        return result.data

    @property
    def service_name(self) -> str:
        """Provider name used in errors."""
        return type(self).__name__


__all__ = [
    "AgentProvider",
    "AnalysisRequest",
    "ClassificationProvider",
    "ClassificationResult",
    "RetrievalProvider",
    "SchemaResult",
    "extract_json_array",
    "extract_json_object",
    "parse_json_body",
    "post_json",
    "validate_payload",
]
