"""Analysis pipeline services.

This package sequences providers and signal engines into runs:
1. Events define the stage event stream and its NDJSON wire format
2. Channel provides the bounded event queue and cancellation token
3. Orchestrator runs the five-stage streaming variants
4. Analysis runs the two-stage retrieve/reason flow with resume points
5. Runs keeps one in-flight run per caller
"""

from mood_radar.services.pipeline.analysis import AnalysisService, ResumePoint, RunOutcome
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
    aiter_events,
    encode_event,
    iter_events,
)
from mood_radar.services.pipeline.orchestrator import (
    OpportunityPipeline,
    PipelineVariant,
    SentimentPipeline,
    StreamingPipeline,
)
from mood_radar.services.pipeline.report import SentimentReport, SentimentReporter
from mood_radar.services.pipeline.runs import RunRegistry

__all__ = [
    # Events
    "Stage",
    "EventStatus",
    "PipelineStatus",
    "StageEvent",
    "encode_event",
    "iter_events",
    "aiter_events",
    # Channel
    "EventChannel",
    "CancellationToken",
    "RunCancelledError",
    # Orchestrator
    "PipelineVariant",
    "StreamingPipeline",
    "OpportunityPipeline",
    "SentimentPipeline",
    # Report
    "SentimentReport",
    "SentimentReporter",
    # Two-stage service
    "AnalysisService",
    "ResumePoint",
    "RunOutcome",
    # Runs
    "RunRegistry",
]
