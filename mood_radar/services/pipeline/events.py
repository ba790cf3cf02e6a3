"""Stage events and their NDJSON wire format.

Each pipeline run emits, per stage, a start event, zero or more progress
events, then exactly one complete or error event. Events are written as
newline-delimited JSON; readers skip lines they cannot parse.
"""

import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from mood_radar.core.logging import get_logger

logger = get_logger(__name__)


class Stage(str, Enum):
    """Pipeline stage label."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


STAGE_ORDER: tuple[Stage, ...] = (Stage.A, Stage.B, Stage.C, Stage.D, Stage.E)


class EventStatus(str, Enum):
    """Stage event status."""

    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


class PipelineStatus(str, Enum):
    """Status of a pipeline run."""

    IDLE = "idle"
    RUNNING_A = "running_a"
    RUNNING_B = "running_b"
    RUNNING_C = "running_c"
    RUNNING_D = "running_d"
    RUNNING_E = "running_e"
    COMPLETE = "complete"
    FAILED = "failed"

    @classmethod
    def running(cls, stage: Stage) -> "PipelineStatus":
        """Get the running status for a stage."""
        return cls(f"running_{stage.value.lower()}")


class StageEvent(BaseModel):
    """One record of the pipeline event stream.

    Attributes:
        stage: Stage the event belongs to
        status: start, progress, complete, or error
        message: Human-readable message
        data: Stage output (complete) or error details (error)
    """

    stage: Stage
    status: EventStatus
    message: str | None = None
    data: Any = None

    @property
    def is_terminal(self) -> bool:
        """Whether this event ends its stage."""
        return self.status in (EventStatus.COMPLETE, EventStatus.ERROR)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting absent fields."""
        return self.model_dump(mode="json", exclude_none=True)


def encode_event(event: StageEvent) -> str:
    """Encode an event as one NDJSON line (with trailing newline)."""
    return json.dumps(event.to_wire(), ensure_ascii=False) + "\n"


def decode_event(line: str | bytes) -> StageEvent | None:
    """Decode one NDJSON line.

    Args:
        line: Raw line

    Returns:
        StageEvent, or None for blank, unparseable, or wrongly-shaped lines
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    text = line.strip()
    if not text:
        return None

    try:
        return StageEvent.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError):
        logger.debug("Skipping unparseable event line", line=text[:100])
        return None


def _split(chunks: Iterable[str | bytes]) -> Iterator[str | bytes]:
    for chunk in chunks:
        yield from chunk.splitlines()


def iter_events(lines: Iterable[str | bytes]) -> Iterator[StageEvent]:
    """Parse an NDJSON stream line by line, skipping unparseable lines.

    Args:
        lines: Lines or multi-line chunks of NDJSON

    Yields:
        Parsed stage events
    """
    for line in _split(lines):
        event = decode_event(line)
        if event is not None:
            yield event


async def aiter_events(lines: AsyncIterable[str | bytes]) -> AsyncIterator[StageEvent]:
    """Async counterpart of iter_events."""
    async for chunk in lines:
        for line in chunk.splitlines():
            event = decode_event(line)
            if event is not None:
                yield event


__all__ = [
    "STAGE_ORDER",
    "EventStatus",
    "PipelineStatus",
    "Stage",
    "StageEvent",
    "aiter_events",
    "decode_event",
    "encode_event",
    "iter_events",
]
