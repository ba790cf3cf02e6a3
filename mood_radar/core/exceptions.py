"""Custom exceptions for the Mood Radar application.

This module defines all custom exceptions used throughout the application.
All exceptions inherit from MoodRadarError for easy catching.

Exception classes include context dictionaries for structured logging
and debugging. Use the `context` property to access additional details.

Pipeline failures carry an ErrorKind tag so callers can decide whether to
retry the same stage, retry from scratch, or give up:

- validation: missing/empty request fields, or the snippet budget left nothing
- provider-unreachable: network failure or non-success response from a provider
- malformed: provider response could not be parsed or failed schema validation
- internal: any other unexpected failure
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag carried by every pipeline error."""

    VALIDATION = "validation"
    PROVIDER_UNREACHABLE = "provider-unreachable"
    MALFORMED = "malformed"
    INTERNAL = "internal"


class MoodRadarError(Exception):
    """Base exception for all Mood Radar errors.

    All custom exceptions in the application should inherit from this class.
    Provides a context dictionary for structured error information.

    Attributes:
        context: Dictionary with additional error context

    Example:
        >>> try:
        ...     raise MoodRadarError("Something went wrong", context={"topic": "ev"})
        ... except MoodRadarError as e:
        ...     print(f"Error: {e}, Context: {e.context}")
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize MoodRadarError.

        Args:
            message: Error message
            context: Optional dictionary with additional context
        """
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.

        Returns:
            Dictionary with error type, message, and context
        """
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(MoodRadarError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Error message
            config_path: Path to the config file/key
            context: Additional context
        """
        ctx = context or {}
        if config_path:
            ctx["config_path"] = config_path
        super().__init__(message, context=ctx)


# ============================================
# Pipeline Errors
# ============================================


class PipelineError(MoodRadarError):
    """Base exception for errors surfaced to pipeline callers.

    Attributes:
        kind: Error taxonomy tag
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize PipelineError.

        Args:
            message: Error message
            kind: Error kind (defaults to the class-level kind)
            context: Additional context
        """
        if kind is not None:
            self.kind = kind
        super().__init__(message, context=context)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary, including the error kind.

        Returns:
            Dictionary with kind, error type, message, and context
        """
        data = super().to_dict()
        data["kind"] = self.kind.value
        return data


class RequestValidationError(PipelineError):
    """Raised when a request is missing required fields or has no usable input.

    Attributes:
        fields: Names of the offending request fields
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        fields: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize RequestValidationError.

        Args:
            message: Error message
            fields: Offending request fields
            context: Additional context
        """
        ctx = context or {}
        if fields:
            ctx["fields"] = fields
        self.fields = fields or []
        super().__init__(message, context=ctx)


class ProviderUnreachableError(PipelineError):
    """Raised when an external provider call fails or returns non-success.

    Attributes:
        service: Name of the external service
        status_code: HTTP status code (if applicable)
        endpoint: API endpoint that was called
    """

    kind = ErrorKind.PROVIDER_UNREACHABLE

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
        response_body: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ProviderUnreachableError.

        Args:
            service: Name of the external service
            message: Error message
            status_code: HTTP status code (optional)
            endpoint: API endpoint (optional)
            response_body: Response body for debugging (optional)
            context: Additional context
        """
        ctx = context or {}
        ctx["service"] = service
        if status_code is not None:
            ctx["status_code"] = status_code
        if endpoint:
            ctx["endpoint"] = endpoint
        if response_body:
            ctx["response_body"] = response_body[:500]  # Truncate long responses

        self.service = service
        self.status_code = status_code
        self.endpoint = endpoint

        super().__init__(f"{service} request failed: {message}", context=ctx)


class MalformedResponseError(PipelineError):
    """Raised when a provider response cannot be parsed or fails its schema.

    Attributes:
        service: Name of the external service
        violations: Schema violations as "field.path: reason" strings
    """

    kind = ErrorKind.MALFORMED

    def __init__(
        self,
        service: str,
        message: str,
        violations: list[str] | None = None,
        raw: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize MalformedResponseError.

        Args:
            service: Name of the external service
            message: Error message
            violations: Schema violations
            raw: Raw response text (optional, truncated)
            context: Additional context
        """
        ctx = context or {}
        ctx["service"] = service
        if violations:
            ctx["violations"] = violations
        if raw:
            ctx["raw"] = raw[:500]

        self.service = service
        self.violations = violations or []

        super().__init__(f"{service} response malformed: {message}", context=ctx)


class InternalPipelineError(PipelineError):
    """Raised for unexpected failures inside the pipeline."""

    kind = ErrorKind.INTERNAL


__all__ = [
    "ErrorKind",
    "MoodRadarError",
    "ConfigError",
    "PipelineError",
    "RequestValidationError",
    "ProviderUnreachableError",
    "MalformedResponseError",
    "InternalPipelineError",
]
