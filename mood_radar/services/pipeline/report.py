"""Sentiment report assembly.

Combines classification output with the aggregation, snapshot diff and
suggestion engines into the final dashboard report. Shared by the
streaming sentiment pipeline and the two-stage AnalysisService.
"""

from datetime import UTC, datetime

from pydantic import Field

from mood_radar.core.logging import get_logger
from mood_radar.services.providers.base import ClassificationResult
from mood_radar.services.signals.aggregator import Aggregation, SignalAggregator
from mood_radar.services.signals.base import (
    ConcernStat,
    EmotionStat,
    NarrativeCluster,
    RisingNarrative,
    Signal,
    Suggestion,
    WireModel,
)
from mood_radar.services.signals.snapshot import SnapshotDiff, SnapshotDiffEngine
from mood_radar.services.signals.suggestions import SuggestionBuilder

logger = get_logger(__name__)


class SentimentReport(WireModel):
    """Dashboard output of a sentiment run.

    Attributes:
        topic: Analysis topic
        emotions: Emotion stats, most frequent first
        concerns: Concern stats, most frequent first
        dominant_concern: Most frequent concern
        clusters: Narrative clusters, largest first
        dominant_narrative: Largest cluster label
        volatility: Emotion volatility against the previous run (0-100)
        rising_narratives: Clusters that grew since the previous run
        suggestions: Direct creator suggestions
        signal_count: Signals sent for classification
        classified_count: Classified items returned
        baseline_timestamp: Timestamp of the snapshot diffed against
        generated_at: Report creation time
    """

    topic: str
    emotions: list[EmotionStat] = Field(default_factory=list)
    concerns: list[ConcernStat] = Field(default_factory=list)
    dominant_concern: str | None = None
    clusters: list[NarrativeCluster] = Field(default_factory=list)
    dominant_narrative: str | None = None
    volatility: int = 0
    rising_narratives: list[RisingNarrative] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    signal_count: int = 0
    classified_count: int = 0
    baseline_timestamp: datetime | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SentimentReporter:
    """Builds sentiment reports from classification results.

    Attributes:
        aggregator: Aggregation engine
        diff_engine: Snapshot diff engine (owns the persisted snapshot)
        suggestion_builder: Direct suggestion builder
    """

    def __init__(
        self,
        aggregator: SignalAggregator,
        diff_engine: SnapshotDiffEngine,
        suggestion_builder: SuggestionBuilder,
    ):
        self.aggregator = aggregator
        self.diff_engine = diff_engine
        self.suggestion_builder = suggestion_builder

    def aggregate(self, classification: ClassificationResult) -> Aggregation:
        """Aggregate classified items against the signals that were sent."""
        return self.aggregator.aggregate(
            classification.items,
            classification.signals,
            classification.clusters,
        )

    async def diff(self, aggregation: Aggregation) -> SnapshotDiff:
        """Diff an aggregation against the previous snapshot and persist it."""
        return await self.diff_engine.diff(
            aggregation.emotion_distribution(),
            aggregation.cluster_sizes(),
        )

    def suggest(self, signals: list[Signal], topic: str) -> list[Suggestion]:
        """Build direct suggestions for the signals."""
        return self.suggestion_builder.build(signals, topic)

    def assemble(
        self,
        topic: str,
        classification: ClassificationResult,
        aggregation: Aggregation,
        diff: SnapshotDiff,
        suggestions: list[Suggestion],
    ) -> SentimentReport:
        """Assemble the final report from computed parts."""
        return SentimentReport(
            topic=topic,
            emotions=aggregation.emotions,
            concerns=aggregation.concerns,
            dominant_concern=aggregation.dominant_concern,
            clusters=aggregation.clusters,
            dominant_narrative=aggregation.dominant_narrative,
            volatility=diff.volatility,
            rising_narratives=diff.rising_narratives,
            suggestions=suggestions,
            signal_count=len(classification.signals),
            classified_count=len(classification.items),
            baseline_timestamp=diff.baseline_timestamp,
        )

    async def build(
        self,
        topic: str,
        signals: list[Signal],
        classification: ClassificationResult,
    ) -> SentimentReport:
        """Build a report in one step.

        Args:
            topic: Analysis topic
            signals: Deduplicated signals (for suggestions)
            classification: Classification result

        Returns:
            SentimentReport
        """
        aggregation = self.aggregate(classification)
        diff = await self.diff(aggregation)
        suggestions = self.suggest(signals, topic)
        report = self.assemble(topic, classification, aggregation, diff, suggestions)

        logger.info(
            "Sentiment report built",
            topic=topic,
            volatility=report.volatility,
            dominant_narrative=report.dominant_narrative,
            suggestion_count=len(suggestions),
        )
        return report


__all__ = ["SentimentReport", "SentimentReporter"]
