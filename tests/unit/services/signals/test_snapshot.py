"""Unit tests for snapshot stores and the snapshot diff engine.

Tests cover:
- Volatility bounds and symmetry
- Rising narrative filtering, ordering and limit
- Empty or corrupt baselines
- Unconditional overwrite and the read-then-write race
"""

import asyncio
import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from redis.asyncio import Redis as AsyncRedis

from mood_radar.services.signals.snapshot import (
    AnalysisSnapshot,
    InMemorySnapshotStore,
    RedisSnapshotStore,
    SnapshotDiffEngine,
    SnapshotStore,
    compute_rising_narratives,
    compute_volatility,
)

T0 = datetime(2025, 3, 1, tzinfo=UTC)
T1 = datetime(2025, 3, 2, tzinfo=UTC)


@pytest.fixture
def store() -> InMemorySnapshotStore:
    """Create an isolated in-memory store."""
    return InMemorySnapshotStore(storage={})


class TestVolatility:
    """Tests for compute_volatility."""

    @pytest.mark.parametrize(
        "current,previous",
        [
            ({"joy": 0.5, "fear": 0.5}, {"joy": 0.2, "anger": 0.8}),
            ({"joy": 1.0}, {}),
            ({"joy": 0.3}, {"joy": 0.3, "fear": 0.1}),
            ({}, {}),
        ],
    )
    def test_symmetric_and_bounded(self, current, previous):
        """Test swapping arguments gives the same value within [0, 100]."""
        forward = compute_volatility(current, previous)

        assert forward == compute_volatility(previous, current)
        assert 0 <= forward <= 100

    def test_identical_is_zero(self):
        """Test a distribution compared to itself."""
        distribution = {"joy": 0.67, "fear": 0.33}
        assert compute_volatility(distribution, distribution) == 0

    def test_disjoint_is_maximal(self):
        """Test fully disjoint distributions."""
        assert compute_volatility({"joy": 1.0}, {"fear": 1.0}) == 100

    def test_against_empty_baseline(self):
        """Test volatility against a missing snapshot."""
        # L1 = 0.6 + 0.4 = 1.0 -> 50
        assert compute_volatility({"joy": 0.6, "fear": 0.4}, {}) == 50

    def test_partial_shift(self):
        """Test a partial redistribution."""
        # |0.5-0.3| + |0.5-0.7| = 0.4 -> 20
        assert compute_volatility({"joy": 0.5, "fear": 0.5}, {"joy": 0.3, "fear": 0.7}) == 20


class TestRisingNarratives:
    """Tests for compute_rising_narratives."""

    def test_new_cluster_rises(self):
        """Test only grown clusters are reported."""
        rising = compute_rising_narratives({"policy": 3, "backlash": 2}, {"policy": 3})

        assert [r.model_dump() for r in rising] == [{"label": "backlash", "delta": 2}]

    def test_excludes_non_positive_deltas(self):
        """Test shrinking and unchanged clusters are excluded."""
        rising = compute_rising_narratives({"a": 1, "b": 4, "c": 5}, {"a": 3, "b": 4, "c": 2})

        assert [(r.label, r.delta) for r in rising] == [("c", 3)]
        assert all(r.delta > 0 for r in rising)

    def test_sorted_with_stable_ties_and_limited(self):
        """Test descending order, tie order, and the top-5 limit."""
        current = {"a": 1, "b": 3, "c": 3, "d": 2, "e": 5, "f": 1, "g": 4}

        rising = compute_rising_narratives(current, {})

        assert [r.label for r in rising] == ["e", "g", "b", "c", "d"]
        assert len(rising) == 5

    def test_empty_baseline_returns_all_current(self):
        """Test every current cluster rises against an empty baseline."""
        rising = compute_rising_narratives({"x": 2, "y": 1}, {})

        assert [(r.label, r.delta) for r in rising] == [("x", 2), ("y", 1)]


class TestInMemorySnapshotStore:
    """Tests for InMemorySnapshotStore."""

    @pytest.mark.asyncio
    async def test_roundtrip_returns_copies(self, store):
        """Test stored snapshots are isolated from caller mutation."""
        snapshot = AnalysisSnapshot(emotion_distribution={"joy": 1.0}, clusters={"a": 1})
        await store.put("k", snapshot)

        snapshot.clusters["a"] = 99
        loaded = await store.get("k")

        assert loaded.clusters == {"a": 1}
        assert await store.get("missing") is None

    def test_satisfies_protocol(self, store):
        """Test the store implements SnapshotStore."""
        assert isinstance(store, SnapshotStore)

    @pytest.mark.asyncio
    async def test_default_storage_is_shared(self):
        """Test instances without their own dict share process storage."""
        key = "mood-radar:test:shared"
        await InMemorySnapshotStore().put(key, AnalysisSnapshot(clusters={"a": 1}))

        loaded = await InMemorySnapshotStore().get(key)

        assert loaded is not None
        assert loaded.clusters == {"a": 1}


class TestRedisSnapshotStore:
    """Tests for RedisSnapshotStore."""

    @pytest.fixture
    def mock_redis(self) -> AsyncMock:
        """Create a mock Redis client."""
        redis = AsyncMock(spec=AsyncRedis)
        redis.set = AsyncMock(return_value=True)
        redis.get = AsyncMock(return_value=None)
        return redis

    @pytest.mark.asyncio
    async def test_put_writes_wire_json(self, mock_redis):
        """Test snapshots are written as camelCase JSON."""
        store = RedisSnapshotStore(mock_redis, expire=3600)
        snapshot = AnalysisSnapshot(emotion_distribution={"joy": 1.0}, clusters={}, timestamp=T0)

        await store.put("k", snapshot)

        key, payload = mock_redis.set.call_args.args
        assert key == "k"
        assert json.loads(payload)["emotionDistribution"] == {"joy": 1.0}
        assert mock_redis.set.call_args.kwargs == {"ex": 3600}

    @pytest.mark.asyncio
    async def test_get_parses_snapshot(self, mock_redis):
        """Test a stored snapshot is loaded."""
        mock_redis.get.return_value = json.dumps(
            {
                "emotionDistribution": {"joy": 0.5},
                "clusters": {"policy": 3},
                "timestamp": T0.isoformat(),
            }
        )

        loaded = await RedisSnapshotStore(mock_redis).get("k")

        assert loaded.clusters == {"policy": 3}
        assert loaded.timestamp == T0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        ["not json at all", json.dumps({"clusters": {"policy": "many"}}), json.dumps([1, 2])],
    )
    async def test_corrupt_payload_reads_as_missing(self, mock_redis, raw):
        """Test corrupt snapshots are treated as absent."""
        mock_redis.get.return_value = raw

        assert await RedisSnapshotStore(mock_redis).get("k") is None

    @pytest.mark.asyncio
    async def test_redis_failure_reads_as_missing(self, mock_redis):
        """Test connection errors do not fail the read."""
        mock_redis.get.side_effect = ConnectionError("down")

        assert await RedisSnapshotStore(mock_redis).get("k") is None


class TestSnapshotDiffEngine:
    """Tests for SnapshotDiffEngine.diff."""

    @pytest.mark.asyncio
    async def test_first_run_uses_empty_baseline(self, store):
        """Test diffing without a previous snapshot."""
        engine = SnapshotDiffEngine(store, key="k", clock=lambda: T0)

        diff = await engine.diff({"joy": 1.0}, {"policy": 3})

        assert diff.volatility == 50
        assert [(r.label, r.delta) for r in diff.rising_narratives] == [("policy", 3)]
        assert diff.baseline_timestamp is None
        assert (await store.get("k")).timestamp == T0

    @pytest.mark.asyncio
    async def test_second_run_diffs_against_first(self, store):
        """Test the previous run's snapshot is the baseline."""
        await SnapshotDiffEngine(store, key="k", clock=lambda: T0).diff({"joy": 1.0}, {"policy": 3})

        diff = await SnapshotDiffEngine(store, key="k", clock=lambda: T1).diff(
            {"joy": 1.0}, {"policy": 3, "backlash": 2}
        )

        assert diff.volatility == 0
        assert [(r.label, r.delta) for r in diff.rising_narratives] == [("backlash", 2)]
        assert diff.baseline_timestamp == T0
        assert diff.snapshot.timestamp == T1

    @pytest.mark.asyncio
    async def test_overwrites_unconditionally(self, store):
        """Test each diff replaces the stored snapshot."""
        engine = SnapshotDiffEngine(store, key="k")
        await engine.diff({"joy": 1.0}, {"a": 5})
        await engine.diff({"fear": 1.0}, {"b": 1})

        stored = await store.get("k")

        assert stored.emotion_distribution == {"fear": 1.0}
        assert stored.clusters == {"b": 1}

    @pytest.mark.asyncio
    async def test_rising_limit_configurable(self, store):
        """Test the configured rising narrative limit."""
        engine = SnapshotDiffEngine(store, key="k", max_rising_narratives=1)

        diff = await engine.diff({}, {"a": 1, "b": 2})

        assert [r.label for r in diff.rising_narratives] == ["b"]

    @pytest.mark.asyncio
    async def test_concurrent_runs_last_writer_wins(self, store):
        """Test two runs racing on one key both read the same baseline."""
        await store.put("k", AnalysisSnapshot(clusters={"policy": 1}, timestamp=T0))
        both_read = asyncio.Event()
        reads = 0
        writes: list[dict[str, int]] = []

        class RacingStore:
            async def get(self, key):
                nonlocal reads
                snapshot = await store.get(key)
                reads += 1
                if reads == 2:
                    both_read.set()
                await both_read.wait()
                return snapshot

            async def put(self, key, snapshot):
                writes.append(snapshot.clusters)
                await store.put(key, snapshot)

        first = SnapshotDiffEngine(RacingStore(), key="k", clock=lambda: T1)
        second = SnapshotDiffEngine(RacingStore(), key="k", clock=lambda: T1)

        diff_a, diff_b = await asyncio.gather(
            first.diff({}, {"policy": 2}),
            second.diff({}, {"policy": 5}),
        )

        assert diff_a.baseline_timestamp == diff_b.baseline_timestamp == T0
        assert len(writes) == 2
        assert (await store.get("k")).clusters == writes[-1]
