"""Streaming analysis pipeline.

Runs five stages strictly in order, publishing stage events into a bounded
channel that the caller consumes as an async iterator:

    A (retrieve) -> B (normalize) -> C (mine/classify) -> D (score) -> E (synthesize)

For every stage the pipeline emits start, zero or more progress events,
then exactly one complete (with the stage output as data) or error event.
The first error is terminal: no later stage runs, and outputs already
emitted are left as they are.

Variants:
- OpportunityPipeline: C/D/E call the goal agent for opportunities,
  scores and a creator playbook
- SentimentPipeline: C classifies signals, D aggregates and diffs against
  the previous snapshot, E assembles the dashboard report

Usage:
    pipeline = container.services.sentiment_pipeline()
    async for event in pipeline.stream(AnalysisRequest(topic="ev", ...)):
        print(encode_event(event), end="")
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from mood_radar.config import BudgetConfig
from mood_radar.core.exceptions import MoodRadarError, PipelineError, RequestValidationError
from mood_radar.core.logging import get_logger
from mood_radar.core.state_machine import StateMachine, create_pipeline_state_machine
from mood_radar.services.pipeline.channel import (
    CancellationToken,
    EventChannel,
    RunCancelledError,
)
from mood_radar.services.pipeline.events import (
    EventStatus,
    PipelineStatus,
    Stage,
    StageEvent,
)
from mood_radar.services.pipeline.report import SentimentReporter
from mood_radar.services.providers.base import (
    AgentProvider,
    AnalysisRequest,
    ClassificationProvider,
    ClassificationResult,
    RetrievalProvider,
)
from mood_radar.services.providers.mino import apply_snippet_budget
from mood_radar.services.providers.schemas import (
    OpportunityStage,
    PlaybookStage,
    ScoringStage,
)
from mood_radar.services.signals.base import Signal
from mood_radar.services.signals.deduplicator import SignalDeduplicator

logger = get_logger(__name__)

T = TypeVar("T")


class PipelineVariant(str, Enum):
    """Deployment variant of the streaming pipeline."""

    OPPORTUNITY = "opportunity"
    SENTIMENT = "sentiment"


@dataclass
class StageOutcome:
    """Terminal result of a successful stage.

    Attributes:
        message: Completion message
        data: Stage output (JSON-compatible)
    """

    message: str
    data: dict[str, Any]


@dataclass
class RunContext:
    """Mutable state of one streaming run.

    Attributes:
        request: Analysis request
        token: Cancellation token
        channel: Event channel
        state: Pipeline state machine
        stage: Stage currently running
        signals: Deduplicated signals (stage A)
        normalized: Normalized signals (stage B)
        results: Variant-specific intermediate outputs
    """

    request: AnalysisRequest
    token: CancellationToken
    channel: EventChannel[StageEvent]
    state: StateMachine
    stage: Stage | None = None
    signals: list[Signal] = field(default_factory=list)
    normalized: list[Signal] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)

    async def emit(self, event: StageEvent) -> None:
        """Publish an event unless the run was cancelled.

        Raises:
            RunCancelledError: If the run was cancelled
        """
        self.token.raise_if_cancelled()
        await self.channel.send(event)

    async def progress(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Publish a progress event for the current stage."""
        if self.stage is None:
            return
        await self.emit(
            StageEvent(stage=self.stage, status=EventStatus.PROGRESS, message=message, data=data)
        )

    async def call(self, awaitable: Awaitable[T]) -> T:
        """Run an external call under the cancellation token."""
        return await self.token.guard(awaitable)


StageHandler = Callable[[RunContext], Awaitable[StageOutcome]]


@dataclass(frozen=True)
class StagePlan:
    """One stage of a pipeline variant.

    Attributes:
        stage: Stage label
        start_message: Message of the start event
        handler: Coroutine producing the stage outcome
    """

    stage: Stage
    start_message: str
    handler: StageHandler


class StreamingPipeline(ABC):
    """Base five-stage streaming pipeline.

    Subclasses define the stage plan and the request fields they require.
    Stage A (retrieve and dedup) is shared by every variant.

    Attributes:
        retrieval: Retrieval provider
        deduplicator: Signal deduplicator
        buffer_size: Event channel capacity
    """

    variant: PipelineVariant
    required_fields: tuple[str, ...] = ("topic",)

    def __init__(
        self,
        retrieval: RetrievalProvider,
        deduplicator: SignalDeduplicator | None = None,
        buffer_size: int = 32,
    ):
        """Initialize pipeline.

        Args:
            retrieval: Retrieval provider
            deduplicator: Signal deduplicator (uses defaults if not provided)
            buffer_size: Event channel capacity
        """
        self.retrieval = retrieval
        self.deduplicator = deduplicator or SignalDeduplicator()
        self.buffer_size = buffer_size

    @abstractmethod
    def stage_plan(self) -> list[StagePlan]:
        """Get the ordered stages A-E of this variant."""
        ...

    async def stream(
        self,
        request: AnalysisRequest,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StageEvent]:
        """Run the pipeline, yielding stage events as they happen.

        The run starts on first iteration. Closing the iterator early
        cancels the run. The iterator is single-pass.

        Args:
            request: Analysis request
            cancel_token: Token for cooperative cancellation (optional)

        Yields:
            Stage events in emission order
        """
        token = cancel_token or CancellationToken()
        channel: EventChannel[StageEvent] = EventChannel(self.buffer_size)
        producer = asyncio.create_task(self._produce(request, token, channel))

        drained = False
        try:
            async for event in channel:
                if token.is_cancelled:
                    break
                yield event
            else:
                drained = True
        finally:
            if not drained and not producer.done():
                token.cancel("consumer closed stream")
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    async def collect(
        self,
        request: AnalysisRequest,
        cancel_token: CancellationToken | None = None,
    ) -> list[StageEvent]:
        """Run the pipeline to the end and return all events."""
        return [event async for event in self.stream(request, cancel_token)]

    async def _produce(
        self,
        request: AnalysisRequest,
        token: CancellationToken,
        channel: EventChannel[StageEvent],
    ) -> None:
        run = RunContext(
            request=request,
            token=token,
            channel=channel,
            state=create_pipeline_state_machine(),
        )
        log = logger.bind(variant=self.variant.value, topic=request.topic)

        try:
            for plan in self.stage_plan():
                run.state.transition(PipelineStatus.running(plan.stage))
                run.stage = plan.stage
                await run.emit(
                    StageEvent(stage=plan.stage, status=EventStatus.START, message=plan.start_message)
                )

                outcome = await plan.handler(run)

                await run.emit(
                    StageEvent(
                        stage=plan.stage,
                        status=EventStatus.COMPLETE,
                        message=outcome.message,
                        data=outcome.data,
                    )
                )
                log.debug("Stage complete", stage=plan.stage.value)

            run.state.transition(PipelineStatus.COMPLETE)
            log.info("Pipeline complete")

        except RunCancelledError as e:
            log.info("Pipeline cancelled", stage=_stage_value(run.stage), reason=e.reason)

        except PipelineError as e:
            await self._fail(run, e.kind.value, str(e), e.context)
            log.warning(
                "Pipeline stage failed",
                stage=_stage_value(run.stage),
                kind=e.kind.value,
                error=str(e),
            )

        except Exception as e:
            log.error(
                "Pipeline stage crashed",
                stage=_stage_value(run.stage),
                error=str(e),
                exc_info=True,
            )
            details = (
                e.to_dict() if isinstance(e, MoodRadarError) else {"error_type": type(e).__name__}
            )
            await self._fail(run, "internal", str(e) or "Pipeline error", details)

        finally:
            channel.close()

    async def _fail(
        self,
        run: RunContext,
        kind: str,
        message: str,
        details: dict[str, Any],
    ) -> None:
        """Move to FAILED and emit the error under the stage that failed."""
        if run.stage is None or run.token.is_cancelled:
            return
        if run.state.can_transition(PipelineStatus.FAILED):
            run.state.transition(PipelineStatus.FAILED)
        await run.channel.send(
            StageEvent(
                stage=run.stage,
                status=EventStatus.ERROR,
                message=message,
                data={"kind": kind, "details": details},
            )
        )

    # ============================================
    # Shared stages
    # ============================================

    async def _retrieve(self, run: RunContext) -> StageOutcome:
        run.request.require(*self.required_fields)

        raw = await run.call(self.retrieval.retrieve(run.request))
        await run.progress(f"Retrieved {len(raw)} raw signals", {"count": len(raw)})

        report = self.deduplicator.run(raw)
        run.signals = report.signals
        return StageOutcome(
            message=f"Stage A complete: {len(report.signals)} signals",
            data={
                "signals": [signal.to_wire() for signal in report.signals],
                "dropped": {reason.value: count for reason, count in report.dropped.items()},
            },
        )

    @staticmethod
    def _normalize_signals(signals: list[Signal]) -> list[Signal]:
        return [
            signal.model_copy(
                update={"title": signal.title.strip(), "snippet": signal.snippet.strip()}
            )
            for signal in signals
        ]


def _stage_value(stage: Stage | None) -> str | None:
    return stage.value if stage else None


def _dump(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


class OpportunityPipeline(StreamingPipeline):
    """Creator opportunity pipeline.

    A: retrieve, B: normalize, C: mine opportunities and gaps,
    D: score opportunities, E: generate the creator playbook.

    Attributes:
        agent: Goal agent used for stages C-E
    """

    variant = PipelineVariant.OPPORTUNITY
    required_fields = ("topic", "platform", "audience")

    def __init__(
        self,
        retrieval: RetrievalProvider,
        agent: AgentProvider,
        deduplicator: SignalDeduplicator | None = None,
        buffer_size: int = 32,
    ):
        super().__init__(retrieval, deduplicator, buffer_size)
        self.agent = agent

    def stage_plan(self) -> list[StagePlan]:
        return [
            StagePlan(Stage.A, "Stage A: Fetching live signals…", self._retrieve),
            StagePlan(Stage.B, "Stage B: Normalizing signals…", self._normalize),
            StagePlan(Stage.C, "Stage C: Extracting opportunities…", self._mine),
            StagePlan(Stage.D, "Stage D: Scoring opportunity impact…", self._score),
            StagePlan(Stage.E, "Stage E: Generating creator playbook…", self._playbook),
        ]

    async def _normalize(self, run: RunContext) -> StageOutcome:
        run.normalized = self._normalize_signals(run.signals)
        return StageOutcome(
            message="Stage B complete: Signals normalized",
            data={"normalized": [signal.to_wire() for signal in run.normalized]},
        )

    async def _mine(self, run: RunContext) -> StageOutcome:
        request = run.request
        context = {
            "niche": request.topic,
            "platform": request.platform,
            "audience": request.audience,
            "country": request.region or None,
            "signals": [signal.to_wire() for signal in run.normalized],
        }
        goal = (
            "You are analyzing creator opportunities. Using the signals below, return JSON ONLY:\n"
            "{\n"
            '  "opportunities": [\n'
            "    {\n"
            '      "title": "string",\n'
            '      "description": "string",\n'
            '      "platformFit": "string",\n'
            '      "audienceAngle": "string",\n'
            '      "evidenceIndexes": [number],\n'
            '      "newness": "string"\n'
            "    }\n"
            "  ],\n"
            '  "gaps": [\n'
            "    {\n"
            '      "gap": "string",\n'
            '      "whyNow": "string",\n'
            '      "suggestedContent": "string"\n'
            "    }\n"
            "  ]\n"
            "}\n"
            f"Signals:\n{_dump(context)}\n"
            "No markdown, no extra keys."
        )
        stage = await run.call(self.agent.run_stage(goal, OpportunityStage))
        run.results["opportunities"] = stage
        return StageOutcome(
            message="Stage C complete: Opportunities extracted",
            data=stage.to_wire(),
        )

    async def _score(self, run: RunContext) -> StageOutcome:
        opportunities: OpportunityStage = run.results["opportunities"]
        goal = (
            "Score the opportunity list. Return JSON ONLY:\n"
            "{\n"
            '  "scored": [\n'
            "    {\n"
            '      "title": "string",\n'
            '      "score": number,\n'
            '      "risk": "string",\n'
            '      "effort": "string",\n'
            '      "rationale": "string",\n'
            '      "recommended": boolean\n'
            "    }\n"
            "  ]\n"
            "}\n"
            f"Input:\n{_dump(opportunities.to_wire())}\n"
            "No markdown, no extra keys."
        )
        stage = await run.call(self.agent.run_stage(goal, ScoringStage))
        run.results["scored"] = stage
        return StageOutcome(message="Stage D complete: Scores generated", data=stage.to_wire())

    async def _playbook(self, run: RunContext) -> StageOutcome:
        opportunities: OpportunityStage = run.results["opportunities"]
        scored: ScoringStage = run.results["scored"]
        goal = (
            "Generate a creator playbook based on scored opportunities. Return JSON ONLY:\n"
            "{\n"
            '  "playbook": {\n'
            '    "positioning": "string",\n'
            '    "contentPillars": ["string"],\n'
            '    "weeklyPlan": ["string"],\n'
            '    "monetizationIdeas": ["string"],\n'
            '    "collaborationTargets": ["string"],\n'
            '    "watchouts": ["string"]\n'
            "  }\n"
            "}\n"
            f"Input:\n{_dump({'opportunities': opportunities.to_wire(), 'scored': scored.to_wire()})}\n"
            "No markdown, no extra keys."
        )
        stage = await run.call(self.agent.run_stage(goal, PlaybookStage))
        return StageOutcome(message="Stage E complete: Playbook ready", data=stage.to_wire())


class SentimentPipeline(StreamingPipeline):
    """Public sentiment pipeline.

    A: retrieve, B: normalize and budget, C: classify,
    D: aggregate, diff and suggest, E: assemble the dashboard report.

    Attributes:
        classifier: Classification provider
        reporter: Report builder (aggregation, snapshot diff, suggestions)
        budget: Snippet budget applied in stage B
    """

    variant = PipelineVariant.SENTIMENT
    required_fields = ("topic", "region", "time_window")

    def __init__(
        self,
        retrieval: RetrievalProvider,
        classifier: ClassificationProvider,
        reporter: SentimentReporter,
        deduplicator: SignalDeduplicator | None = None,
        budget: BudgetConfig | None = None,
        buffer_size: int = 32,
    ):
        super().__init__(retrieval, deduplicator, buffer_size)
        self.classifier = classifier
        self.reporter = reporter
        self.budget = budget or BudgetConfig()

    def stage_plan(self) -> list[StagePlan]:
        return [
            StagePlan(Stage.A, "Stage A: Fetching live signals…", self._retrieve),
            StagePlan(Stage.B, "Stage B: Normalizing signals…", self._normalize),
            StagePlan(Stage.C, "Stage C: Classifying emotions and narratives…", self._classify),
            StagePlan(Stage.D, "Stage D: Scoring mood shifts…", self._score),
            StagePlan(Stage.E, "Stage E: Synthesizing dashboard…", self._synthesize),
        ]

    async def _normalize(self, run: RunContext) -> StageOutcome:
        normalized = self._normalize_signals(run.signals)
        if not normalized:
            raise RequestValidationError("No signals retrieved for reasoning.", fields=["snippets"])

        run.normalized = apply_snippet_budget(normalized, self.budget)
        if not run.normalized:
            raise RequestValidationError("Snippet budget exceeded.", fields=["snippets"])

        excluded = len(normalized) - len(run.normalized)
        if excluded:
            await run.progress(
                f"Snippet budget excluded {excluded} signals",
                {"excluded": excluded},
            )
        return StageOutcome(
            message="Stage B complete: Signals normalized",
            data={
                "normalized": [signal.to_wire() for signal in run.normalized],
                "excluded": excluded,
            },
        )

    async def _classify(self, run: RunContext) -> StageOutcome:
        classification: ClassificationResult = await run.call(
            self.classifier.classify(run.request, run.normalized)
        )
        run.results["classification"] = classification
        return StageOutcome(
            message=f"Stage C complete: {len(classification.items)} signals classified",
            data={
                "items": [item.to_wire() for item in classification.items],
                "clusters": (
                    [cluster.to_wire() for cluster in classification.clusters]
                    if classification.clusters is not None
                    else None
                ),
            },
        )

    async def _score(self, run: RunContext) -> StageOutcome:
        classification: ClassificationResult = run.results["classification"]

        aggregation = self.reporter.aggregate(classification)
        await run.progress(
            "Aggregated emotions and narratives",
            {"clusters": len(aggregation.clusters), "emotions": len(aggregation.emotions)},
        )

        diff = await run.call(self.reporter.diff(aggregation))
        suggestions = self.reporter.suggest(run.signals, run.request.topic)

        run.results.update(aggregation=aggregation, diff=diff, suggestions=suggestions)
        return StageOutcome(
            message="Stage D complete: Scores generated",
            data={
                "emotions": [stat.to_wire() for stat in aggregation.emotions],
                "concerns": [stat.to_wire() for stat in aggregation.concerns],
                "clusters": [cluster.to_wire() for cluster in aggregation.clusters],
                "volatility": diff.volatility,
                "risingNarratives": [item.to_wire() for item in diff.rising_narratives],
                "suggestions": [suggestion.to_wire() for suggestion in suggestions],
            },
        )

    async def _synthesize(self, run: RunContext) -> StageOutcome:
        report = self.reporter.assemble(
            run.request.topic,
            run.results["classification"],
            run.results["aggregation"],
            run.results["diff"],
            run.results["suggestions"],
        )
        return StageOutcome(
            message="Stage E complete: Dashboard ready",
            data={"report": report.to_wire()},
        )


__all__ = [
    "OpportunityPipeline",
    "PipelineVariant",
    "RunContext",
    "SentimentPipeline",
    "StageOutcome",
    "StagePlan",
    "StreamingPipeline",
]
