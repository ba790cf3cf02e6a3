"""Two-stage analysis service (non-streaming).

Splits a sentiment analysis into two independently retriable halves:
1. retrieve: fetch and deduplicate signals
2. reason: classify the retained signals and build the report

A failed run records where it stopped (ResumePoint) and keeps any signals
already retrieved, so the caller can retry only the failed half.

Usage:
    service = container.services.analysis_service()
    outcome = await service.run(request)
    if outcome.failed_at == ResumePoint.CLASSIFICATION:
        outcome = await service.run(
            request, resume_from=ResumePoint.CLASSIFICATION, signals=outcome.signals
        )
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from mood_radar.core.exceptions import (
    InternalPipelineError,
    MoodRadarError,
    PipelineError,
    RequestValidationError,
)
from mood_radar.core.logging import get_logger
from mood_radar.services.pipeline.report import SentimentReport, SentimentReporter
from mood_radar.services.providers.base import (
    AnalysisRequest,
    ClassificationProvider,
    RetrievalProvider,
)
from mood_radar.services.signals.base import Signal
from mood_radar.services.signals.deduplicator import SignalDeduplicator

logger = get_logger(__name__)


class ResumePoint(str, Enum):
    """Where a two-stage run starts (or must be retried from)."""

    RETRIEVAL = "retrieval"
    CLASSIFICATION = "classification"


class RunOutcome(BaseModel):
    """Result of a two-stage run.

    Attributes:
        signals: Signals retrieved (or retained) so far
        report: Final report (None on failure)
        failed_at: Half that failed (None on success)
        error: Serialized error with its kind (None on success)
    """

    signals: list[Signal] = Field(default_factory=list)
    report: SentimentReport | None = None
    failed_at: ResumePoint | None = None
    error: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the run produced a report."""
        return self.failed_at is None and self.report is not None


class AnalysisService:
    """Retrieve-then-reason sentiment analysis.

    Attributes:
        retrieval: Retrieval provider
        classifier: Classification provider
        reporter: Report builder
        deduplicator: Signal deduplicator
    """

    REQUIRED_FIELDS = ("topic", "region", "time_window")

    def __init__(
        self,
        retrieval: RetrievalProvider,
        classifier: ClassificationProvider,
        reporter: SentimentReporter,
        deduplicator: SignalDeduplicator | None = None,
    ):
        """Initialize service.

        Args:
            retrieval: Retrieval provider
            classifier: Classification provider
            reporter: Report builder
            deduplicator: Signal deduplicator (uses defaults if not provided)
        """
        self.retrieval = retrieval
        self.classifier = classifier
        self.reporter = reporter
        self.deduplicator = deduplicator or SignalDeduplicator()

    async def retrieve(self, request: AnalysisRequest) -> list[Signal]:
        """Retrieve and deduplicate signals.

        Raises:
            RequestValidationError: If topic, region, or time window is missing
            ProviderUnreachableError: If the retrieval provider fails
            MalformedResponseError: If the provider response is unusable
        """
        request.require(*self.REQUIRED_FIELDS)
        raw = await self.retrieval.retrieve(request)
        return self.deduplicator.dedupe(raw)

    async def reason(self, request: AnalysisRequest, signals: list[Signal]) -> SentimentReport:
        """Classify retained signals and build the report.

        Raises:
            RequestValidationError: If there are no signals, or none fit the budget
            ProviderUnreachableError: If the classification provider fails
            MalformedResponseError: If the classification violates its schema
        """
        if not signals:
            raise RequestValidationError("Missing snippets for reasoning.", fields=["snippets"])
        classification = await self.classifier.classify(request, signals)
        return await self.reporter.build(request.topic, signals, classification)

    async def run(
        self,
        request: AnalysisRequest,
        resume_from: ResumePoint = ResumePoint.RETRIEVAL,
        signals: list[Signal] | None = None,
    ) -> RunOutcome:
        """Run both halves, or only reasoning when resuming.

        Errors are captured in the outcome rather than raised.

        Args:
            request: Analysis request
            resume_from: RETRIEVAL for a full run, CLASSIFICATION to reuse signals
            signals: Retained signals (required when resuming from CLASSIFICATION)

        Returns:
            RunOutcome with the report, or the failure point and error
        """
        retained = list(signals or [])
        log = logger.bind(topic=request.topic, resume_from=resume_from.value)

        if resume_from == ResumePoint.RETRIEVAL:
            try:
                retained = await self.retrieve(request)
            except Exception as e:
                return self._failed(ResumePoint.RETRIEVAL, e, [], log)
            log.info("Retrieval complete", signal_count=len(retained))

        try:
            report = await self.reason(request, retained)
        except Exception as e:
            return self._failed(ResumePoint.CLASSIFICATION, e, retained, log)

        log.info("Analysis complete", volatility=report.volatility)
        return RunOutcome(signals=retained, report=report)

    @staticmethod
    def _failed(
        point: ResumePoint,
        error: Exception,
        signals: list[Signal],
        log: Any,
    ) -> RunOutcome:
        if not isinstance(error, PipelineError):
            log.error("Analysis crashed", failed_at=point.value, error=str(error), exc_info=True)
            context = error.context if isinstance(error, MoodRadarError) else {}
            error = InternalPipelineError(
                str(error) or type(error).__name__,
                context={**context, "error_type": type(error).__name__},
            )
        else:
            log.warning("Analysis failed", failed_at=point.value, kind=error.kind.value)

        return RunOutcome(signals=signals, failed_at=point, error=error.to_dict())


__all__ = ["AnalysisService", "ResumePoint", "RunOutcome"]
