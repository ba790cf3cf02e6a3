"""Signal aggregation service.

Groups classified signals into emotion and concern distributions and
narrative clusters. Labels are trimmed and lower-cased before grouping.

Cluster sources, in order of preference:
1. Clusters supplied by the classification provider (used as-is)
2. Clusters derived by grouping items on cluster, then narrative, then
   a fixed default label

All sorts are stable: ties keep first-encounter order.
"""

from collections import Counter

from pydantic import BaseModel, Field

from mood_radar.config import AggregationConfig
from mood_radar.core.logging import get_logger
from mood_radar.services.signals.base import (
    ClassifiedSignal,
    ConcernStat,
    EmotionStat,
    NarrativeCluster,
    Signal,
)
from mood_radar.services.signals.scorer import round_half_up

logger = get_logger(__name__)

DEFAULT_EMOTION = "neutral"
DEFAULT_CONCERN = "general sentiment"
DEFAULT_NARRATIVE = "general narrative"


def normalize_label(label: str | None, default: str) -> str:
    """Trim and lower-case a label, falling back to default when empty."""
    text = (label or "").strip().lower()
    return text or default


class Aggregation(BaseModel):
    """Aggregated view of one batch of classified signals.

    Attributes:
        item_count: Number of classified items
        emotions: Emotion stats, most frequent first
        concerns: Concern stats, most frequent first
        clusters: Narrative clusters, largest first
        dominant_concern: Label of the most frequent concern
        dominant_narrative: Label of the largest cluster
    """

    item_count: int = 0
    emotions: list[EmotionStat] = Field(default_factory=list)
    concerns: list[ConcernStat] = Field(default_factory=list)
    clusters: list[NarrativeCluster] = Field(default_factory=list)
    dominant_concern: str | None = None
    dominant_narrative: str | None = None

    def emotion_distribution(self) -> dict[str, float]:
        """Get emotion fractions of all classified items."""
        total = max(1, self.item_count)
        return {stat.emotion: stat.count / total for stat in self.emotions}

    def cluster_sizes(self) -> dict[str, int]:
        """Get label -> size, summing repeated labels."""
        sizes: dict[str, int] = {}
        for cluster in self.clusters:
            sizes[cluster.label] = sizes.get(cluster.label, 0) + cluster.size
        return sizes


class SignalAggregator:
    """Aggregates classified signals into distributions and clusters.

    Attributes:
        config: Aggregation configuration
    """

    def __init__(self, config: AggregationConfig | None = None):
        """Initialize aggregator.

        Args:
            config: Aggregation configuration (uses defaults if not provided)
        """
        self.config = config or AggregationConfig()

    def aggregate(
        self,
        items: list[ClassifiedSignal],
        signals: list[Signal],
        provider_clusters: list[NarrativeCluster] | None = None,
    ) -> Aggregation:
        """Aggregate classified items.

        Args:
            items: Classified items from the classification provider
            signals: Signals sent for classification (for headline lookup)
            provider_clusters: Clusters supplied by the provider, if any

        Returns:
            Aggregation with stats, clusters, and dominant labels
        """
        emotions = self.emotion_stats(items)
        concerns = self.concern_stats(items)

        if provider_clusters:
            clusters = sorted(provider_clusters, key=lambda c: c.size, reverse=True)
            cluster_source = "provider"
        else:
            clusters = self.derive_clusters(items, signals)
            cluster_source = "derived"

        aggregation = Aggregation(
            item_count=len(items),
            emotions=emotions,
            concerns=concerns,
            clusters=clusters,
            dominant_concern=concerns[0].label if concerns else None,
            dominant_narrative=clusters[0].label if clusters else None,
        )

        logger.info(
            "Signals aggregated",
            item_count=len(items),
            emotion_count=len(emotions),
            cluster_count=len(clusters),
            cluster_source=cluster_source,
            dominant_narrative=aggregation.dominant_narrative,
        )
        return aggregation

    def emotion_stats(self, items: list[ClassifiedSignal]) -> list[EmotionStat]:
        """Count emotions with their rounded share of all items.

        Args:
            items: Classified items

        Returns:
            EmotionStats sorted by count, descending
        """
        counts = Counter(normalize_label(item.emotion, DEFAULT_EMOTION) for item in items)
        total = max(1, len(items))
        return [
            EmotionStat(
                emotion=emotion,
                count=count,
                percentage=round_half_up(100 * count / total),
            )
            for emotion, count in _by_count(counts)
        ]

    def concern_stats(self, items: list[ClassifiedSignal]) -> list[ConcernStat]:
        """Count concerns, most frequent first."""
        counts = Counter(normalize_label(item.concern, DEFAULT_CONCERN) for item in items)
        return [ConcernStat(label=label, count=count) for label, count in _by_count(counts)]

    def derive_clusters(
        self,
        items: list[ClassifiedSignal],
        signals: list[Signal],
    ) -> list[NarrativeCluster]:
        """Derive clusters by grouping items on their cluster label.

        Items without a cluster label fall back to their narrative, then to
        "general narrative". Example headlines are looked up by item index;
        out-of-range indices and repeated headlines are skipped.

        Args:
            items: Classified items
            signals: Signals sent for classification

        Returns:
            Derived clusters sorted by size, descending
        """
        groups: dict[str, NarrativeCluster] = {}
        limit = self.config.max_example_headlines

        for item in items:
            label = (item.cluster or "").strip() or (item.narrative or "").strip()
            label = label or DEFAULT_NARRATIVE

            group = groups.get(label)
            if group is None:
                group = NarrativeCluster(label=label, size=0)
                groups[label] = group
            group.size += 1

            headline = _headline_at(signals, item.index)
            if (
                headline
                and len(group.example_headlines) < limit
                and headline not in group.example_headlines
            ):
                group.example_headlines.append(headline)

        return sorted(groups.values(), key=lambda c: c.size, reverse=True)


def _by_count(counts: Counter[str]) -> list[tuple[str, int]]:
    # Counter preserves insertion order, so a stable sort keeps first-seen ties
    return sorted(counts.items(), key=lambda entry: entry[1], reverse=True)


def _headline_at(signals: list[Signal], index: int | None) -> str | None:
    if index is None or index < 0 or index >= len(signals):
        return None
    return signals[index].title or None


__all__ = [
    "DEFAULT_CONCERN",
    "DEFAULT_EMOTION",
    "DEFAULT_NARRATIVE",
    "Aggregation",
    "SignalAggregator",
    "normalize_label",
]
