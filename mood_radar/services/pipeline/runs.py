"""Per-caller run registry.

A caller keeps at most one in-flight streaming run. Starting a new run
cancels the caller's previous run through its cancellation token, so the
old stream stops emitting and releases its resources.
"""

from collections.abc import AsyncIterator

from mood_radar.core.logging import get_logger
from mood_radar.services.pipeline.channel import CancellationToken
from mood_radar.services.pipeline.events import StageEvent
from mood_radar.services.pipeline.orchestrator import StreamingPipeline
from mood_radar.services.providers.base import AnalysisRequest

logger = get_logger(__name__)


class RunRegistry:
    """Tracks the in-flight run of each caller."""

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def start(
        self,
        caller_id: str,
        pipeline: StreamingPipeline,
        request: AnalysisRequest,
    ) -> AsyncIterator[StageEvent]:
        """Start a run for a caller, cancelling their previous one.

        Args:
            caller_id: Caller identity (session, tab, user)
            pipeline: Pipeline to run
            request: Analysis request

        Returns:
            Lazy event stream of the new run
        """
        self.cancel(caller_id, reason="superseded by a new run")

        token = CancellationToken()
        self._tokens[caller_id] = token
        logger.info("Run started", caller_id=caller_id, variant=pipeline.variant.value)
        return self._track(caller_id, token, pipeline.stream(request, token))

    def cancel(self, caller_id: str, reason: str = "cancelled by caller") -> bool:
        """Cancel a caller's in-flight run.

        Returns:
            True if a run was cancelled
        """
        token = self._tokens.pop(caller_id, None)
        if token is None or token.is_cancelled:
            return False
        token.cancel(reason)
        logger.info("Run cancelled", caller_id=caller_id, reason=reason)
        return True

    def is_active(self, caller_id: str) -> bool:
        """Whether the caller has an in-flight run."""
        token = self._tokens.get(caller_id)
        return token is not None and not token.is_cancelled

    async def _track(
        self,
        caller_id: str,
        token: CancellationToken,
        stream: AsyncIterator[StageEvent],
    ) -> AsyncIterator[StageEvent]:
        try:
            async for event in stream:
                yield event
        finally:
            await stream.aclose()  # type: ignore[attr-defined]
            if self._tokens.get(caller_id) is token:
                del self._tokens[caller_id]


__all__ = ["RunRegistry"]
