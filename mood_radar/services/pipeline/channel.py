"""Bounded event channel and cooperative cancellation.

The pipeline producer publishes stage events into an EventChannel; the
consumer drains it as a lazy, single-pass async iterator that ends when the
producer closes the channel. A full channel blocks the producer, so a slow
consumer applies backpressure instead of growing memory.

CancellationToken is checked before and after every external call. guard()
also interrupts a call that is still suspended when the token is cancelled.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable
from typing import Generic, TypeVar

from mood_radar.core.exceptions import MoodRadarError
from mood_radar.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_CLOSED = object()


class RunCancelledError(MoodRadarError):
    """Raised inside a producer when its run has been cancelled."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(
            f"Run cancelled: {reason}" if reason else "Run cancelled",
            context={"reason": reason} if reason else None,
        )


class CancellationToken:
    """Cooperative cancellation signal shared by a run's producer and consumer."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the run. Later calls keep the first reason."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise RunCancelledError if the token is cancelled."""
        if self.is_cancelled:
            raise RunCancelledError(self.reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await an external call, checking cancellation before and after.

        If the token is cancelled while the call is suspended, the call is
        cancelled and RunCancelledError is raised.

        Args:
            awaitable: External call to run

        Returns:
            Result of the call

        Raises:
            RunCancelledError: If the token is or becomes cancelled
        """
        if self.is_cancelled:
            # Close an unstarted coroutine so it is not reported as never awaited
            close = getattr(awaitable, "close", None)
            if callable(close):
                close()
            raise RunCancelledError(self.reason)

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if not call.done():
            call.cancel()
            await asyncio.gather(call, return_exceptions=True)
            raise RunCancelledError(self.reason)

        if self.is_cancelled:
            # The result is discarded; mark any exception as retrieved
            if not call.cancelled():
                call.exception()
            raise RunCancelledError(self.reason)
        return call.result()


class EventChannel(Generic[T]):
    """Bounded single-producer, single-consumer channel.

    Attributes:
        maxsize: Capacity before send() blocks
    """

    def __init__(self, maxsize: int = 32) -> None:
        """Initialize channel.

        Args:
            maxsize: Capacity before send() blocks
        """
        self.maxsize = maxsize
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        """Whether the producer has closed the channel."""
        return self._closed

    async def send(self, item: T) -> bool:
        """Publish an item, waiting while the channel is full.

        Returns:
            False if the channel was already closed (item dropped)
        """
        if self._closed:
            return False
        await self._queue.put(item)
        return True

    def close(self) -> None:
        """Close the channel; the consumer stops after draining queued items.

        Never blocks, so a cancelled producer can always close.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # The consumer is not waiting on an empty queue; _drain sees
            # closed-and-empty once it catches up
            pass

    def __aiter__(self) -> AsyncIterator[T]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[T]:
        # Single pass: a second iteration yields nothing
        if self._drained:
            return
        self._drained = True
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]


__all__ = ["CancellationToken", "EventChannel", "RunCancelledError"]
