"""Snapshot diff service.

Compares the current aggregation against the snapshot persisted by the
previous run:
- Volatility: L1 distance between emotion distributions, scaled to 0-100
- Rising narratives: clusters that grew since the previous run

After every diff the new snapshot unconditionally replaces the old one.
There is no history, no merge and no compare-and-swap: two concurrent runs
race read-then-write and the last writer wins. SnapshotDiff.baseline_timestamp
exposes which snapshot a run was compared against.

Storage is injected through the SnapshotStore protocol:
- InMemorySnapshotStore: process-wide dict (default)
- RedisSnapshotStore: JSON under a single Redis key
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import Field, ValidationError

from mood_radar.core.logging import get_logger
from mood_radar.core.redis import cache_get, cache_set
from mood_radar.services.signals.base import RisingNarrative, WireModel
from mood_radar.services.signals.scorer import round_half_up

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AnalysisSnapshot(WireModel):
    """The one artifact persisted across runs.

    Attributes:
        emotion_distribution: Emotion -> fraction of classified items (0..1)
        clusters: Cluster label -> size
        timestamp: When the snapshot was written
    """

    emotion_distribution: dict[str, float] = Field(default_factory=dict)
    clusters: dict[str, int] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


@runtime_checkable
class SnapshotStore(Protocol):
    """Key-value storage for the previous run's snapshot."""

    async def get(self, key: str) -> AnalysisSnapshot | None:
        """Get the snapshot stored under key, or None if absent or unreadable."""
        ...

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        """Replace the snapshot stored under key."""
        ...


# Process-wide default storage shared by InMemorySnapshotStore instances
_PROCESS_SNAPSHOTS: dict[str, AnalysisSnapshot] = {}


class InMemorySnapshotStore:
    """Snapshot store backed by a dict.

    Instances share process-wide storage unless given their own dict.
    """

    def __init__(self, storage: dict[str, AnalysisSnapshot] | None = None):
        self._storage = _PROCESS_SNAPSHOTS if storage is None else storage

    async def get(self, key: str) -> AnalysisSnapshot | None:
        snapshot = self._storage.get(key)
        return snapshot.model_copy(deep=True) if snapshot is not None else None

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        self._storage[key] = snapshot.model_copy(deep=True)


class RedisSnapshotStore:
    """Snapshot store persisting JSON under a Redis key.

    Corrupt or invalid payloads read as a missing snapshot.

    Attributes:
        redis: Async Redis client (injected)
        expire: Optional TTL in seconds
    """

    def __init__(self, redis: Redis[Any], expire: int | None = None):
        """Initialize store.

        Args:
            redis: Async Redis client
            expire: Optional expiration in seconds
        """
        self.redis = redis
        self.expire = expire

    async def get(self, key: str) -> AnalysisSnapshot | None:
        payload = await cache_get(self.redis, key)
        if payload is None:
            return None

        try:
            return AnalysisSnapshot.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable snapshot",
                key=key,
                error_count=e.error_count(),
            )
            return None

    async def put(self, key: str, snapshot: AnalysisSnapshot) -> None:
        stored = await cache_set(self.redis, key, snapshot.to_wire(), expire=self.expire)
        if not stored:
            logger.warning("Snapshot not persisted", key=key)


def compute_volatility(current: dict[str, float], previous: dict[str, float]) -> int:
    """Compute emotion volatility between two distributions.

    Sums |current - previous| over the union of labels (missing entries count
    as 0), caps the sum at 2 and scales to 0-100.

    Args:
        current: Current emotion fractions
        previous: Previous emotion fractions

    Returns:
        Volatility in [0, 100]
    """
    labels = set(current) | set(previous)
    distance = sum(abs(current.get(label, 0.0) - previous.get(label, 0.0)) for label in labels)
    return round_half_up(min(1.0, max(0.0, distance) / 2) * 100)


def compute_rising_narratives(
    current: dict[str, int],
    previous: dict[str, int],
    limit: int = 5,
) -> list[RisingNarrative]:
    """Find clusters that grew since the previous run.

    Args:
        current: Current cluster sizes (encounter order is the tie-breaker)
        previous: Previous cluster sizes
        limit: Maximum number of narratives returned

    Returns:
        Narratives with delta > 0, largest delta first
    """
    rising = [
        RisingNarrative(label=label, delta=size - previous.get(label, 0))
        for label, size in current.items()
    ]
    rising = [narrative for narrative in rising if narrative.delta > 0]
    rising.sort(key=lambda narrative: narrative.delta, reverse=True)
    return rising[:limit]


class SnapshotDiff(WireModel):
    """Result of diffing against the previous snapshot.

    Attributes:
        volatility: Emotion volatility (0-100)
        rising_narratives: Clusters that grew, largest delta first
        baseline_timestamp: Timestamp of the snapshot compared against (None if absent)
        snapshot: The snapshot written by this run
    """

    volatility: int = Field(ge=0, le=100)
    rising_narratives: list[RisingNarrative] = Field(default_factory=list)
    baseline_timestamp: datetime | None = None
    snapshot: AnalysisSnapshot


class SnapshotDiffEngine:
    """Diffs aggregations against the previous run and persists the new snapshot.

    Attributes:
        store: Snapshot storage
        key: Key of the snapshot (one per installation)
        max_rising_narratives: Rising narratives reported per run
    """

    def __init__(
        self,
        store: SnapshotStore,
        key: str = "mood-radar:snapshot:default",
        max_rising_narratives: int = 5,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize diff engine.

        Args:
            store: Snapshot storage
            key: Snapshot key
            max_rising_narratives: Rising narratives reported per run
            clock: Source of snapshot timestamps
        """
        self.store = store
        self.key = key
        self.max_rising_narratives = max_rising_narratives
        self._clock = clock

    async def diff(
        self,
        emotion_distribution: dict[str, float],
        cluster_sizes: dict[str, int],
    ) -> SnapshotDiff:
        """Compare against the previous snapshot, then overwrite it.

        A missing or unreadable previous snapshot is an empty baseline.

        Args:
            emotion_distribution: Current emotion fractions
            cluster_sizes: Current cluster label -> size

        Returns:
            SnapshotDiff with volatility, rising narratives, and the new snapshot
        """
        previous = await self.store.get(self.key)
        previous_emotions = previous.emotion_distribution if previous else {}
        previous_clusters = previous.clusters if previous else {}

        volatility = compute_volatility(emotion_distribution, previous_emotions)
        rising = compute_rising_narratives(
            cluster_sizes, previous_clusters, limit=self.max_rising_narratives
        )

        snapshot = AnalysisSnapshot(
            emotion_distribution=dict(emotion_distribution),
            clusters=dict(cluster_sizes),
            timestamp=self._clock(),
        )
        await self.store.put(self.key, snapshot)

        logger.info(
            "Snapshot diffed",
            key=self.key,
            has_baseline=previous is not None,
            volatility=volatility,
            rising_count=len(rising),
        )
        return SnapshotDiff(
            volatility=volatility,
            rising_narratives=rising,
            baseline_timestamp=previous.timestamp if previous else None,
            snapshot=snapshot,
        )


__all__ = [
    "AnalysisSnapshot",
    "InMemorySnapshotStore",
    "RedisSnapshotStore",
    "SnapshotDiff",
    "SnapshotDiffEngine",
    "SnapshotStore",
    "compute_rising_narratives",
    "compute_volatility",
]
