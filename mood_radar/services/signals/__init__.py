"""Signal analysis services.

This package implements the deterministic analysis core:
1. Deduplicator drops blocked, incomplete, exact and near-duplicate signals
2. Scorer computes relevance, recency, diversity and confidence
3. Suggestion builder turns leading signals into scored suggestions
4. Aggregator builds emotion/concern distributions and narrative clusters
5. Snapshot diff engine computes volatility and rising narratives
"""

from mood_radar.config import AggregationConfig, DedupConfig, SuggestionConfig
from mood_radar.services.signals.aggregator import Aggregation, SignalAggregator
from mood_radar.services.signals.base import (
    ClassifiedSignal,
    ConcernStat,
    EmotionStat,
    NarrativeCluster,
    Provenance,
    RisingNarrative,
    Signal,
    SourceRef,
    Suggestion,
    SuggestionSignals,
)
from mood_radar.services.signals.deduplicator import (
    DedupReason,
    DedupReport,
    SignalDeduplicator,
)
from mood_radar.services.signals.snapshot import (
    AnalysisSnapshot,
    InMemorySnapshotStore,
    RedisSnapshotStore,
    SnapshotDiff,
    SnapshotDiffEngine,
    SnapshotStore,
)
from mood_radar.services.signals.suggestions import SuggestionBuilder

__all__ = [
    # Base DTOs
    "Signal",
    "ClassifiedSignal",
    "NarrativeCluster",
    "EmotionStat",
    "ConcernStat",
    "RisingNarrative",
    "SourceRef",
    "SuggestionSignals",
    "Provenance",
    "Suggestion",
    # Deduplicator
    "SignalDeduplicator",
    "DedupConfig",
    "DedupReport",
    "DedupReason",
    # Suggestions
    "SuggestionBuilder",
    "SuggestionConfig",
    # Aggregator
    "SignalAggregator",
    "AggregationConfig",
    "Aggregation",
    # Snapshot
    "AnalysisSnapshot",
    "SnapshotStore",
    "InMemorySnapshotStore",
    "RedisSnapshotStore",
    "SnapshotDiff",
    "SnapshotDiffEngine",
]
