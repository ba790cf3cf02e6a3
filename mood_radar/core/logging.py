"""Structured logging configuration using structlog.

This module sets up structured logging for the entire application.
Logs are output in JSON format in production for easy parsing and analysis.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from mood_radar.core.config import get_config


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log events.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary

    Returns:
        Updated event dictionary with app context
    """
    config = get_config()
    event_dict["app"] = config.app_name
    event_dict["env"] = config.app_env
    return event_dict


def setup_logging() -> None:
    """Configure structured logging for the application.

    This function sets up structlog with:
    - JSON output for production
    - Console output for development
    - Appropriate log levels based on environment
    - Standard library integration

    Logs go to stderr so that NDJSON event streams written to stdout stay clean.

    Example:
        >>> setup_logging()
        >>> logger = structlog.get_logger()
        >>> logger.info("Pipeline started", topic="sustainable fashion")
    """
    config = get_config()

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, config.log_level),
    )

    # Structlog processors
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    # Add CallsiteParameterAdder only in development
    if config.is_development:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    if config.is_production:
        processors.extend(
            [
                structlog.processors.dict_tracebacks,
                structlog.processors.JSONRenderer(),
            ]
        )
    else:
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.dev.ConsoleRenderer(colors=True),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Logger name (defaults to calling module)

    Returns:
        Configured structlog logger

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Stage complete", stage="A", signals=12)
        >>> logger.error("Stage failed", stage="C", error="Connection timeout")
    """
    return structlog.get_logger(name)
