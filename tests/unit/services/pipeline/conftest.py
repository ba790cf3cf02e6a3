"""Fixtures and fake providers for pipeline tests."""

import asyncio
from typing import Any

import pytest

from mood_radar.services.pipeline.report import SentimentReporter
from mood_radar.services.providers.base import (
    AgentProvider,
    AnalysisRequest,
    ClassificationProvider,
    ClassificationResult,
    RetrievalProvider,
)
from mood_radar.services.signals.aggregator import SignalAggregator
from mood_radar.services.signals.base import ClassifiedSignal, Signal
from mood_radar.services.signals.snapshot import InMemorySnapshotStore, SnapshotDiffEngine
from mood_radar.services.signals.suggestions import SuggestionBuilder

SNAPSHOT_KEY = "mood-radar:snapshot:test"


class FakeRetrieval(RetrievalProvider):
    """Retrieval returning fixed signals or raising a fixed error."""

    def __init__(self, signals: list[Signal] | None = None, error: Exception | None = None):
        self.signals = signals or []
        self.error = error
        self.calls = 0

    async def retrieve(self, request: AnalysisRequest) -> list[Signal]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.signals)


class BlockingRetrieval(RetrievalProvider):
    """Retrieval that never returns until cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.cancelled = asyncio.Event()

    async def retrieve(self, request: AnalysisRequest) -> list[Signal]:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.set()
            raise
        return []


class FakeClassifier(ClassificationProvider):
    """Classifier labelling every signal with one emotion and cluster."""

    def __init__(
        self,
        emotion: str = "joy",
        cluster: str = "launch",
        error: Exception | None = None,
        clusters: Any = None,
    ):
        self.emotion = emotion
        self.cluster = cluster
        self.error = error
        self.clusters = clusters
        self.received: list[Signal] | None = None

    async def classify(
        self,
        request: AnalysisRequest,
        signals: list[Signal],
    ) -> ClassificationResult:
        self.received = signals
        if self.error is not None:
            raise self.error
        items = [
            ClassifiedSignal(
                index=index,
                emotion=self.emotion,
                concern="price",
                narrative=self.cluster,
                cluster=self.cluster,
            )
            for index in range(len(signals))
        ]
        return ClassificationResult(items=items, clusters=self.clusters, signals=signals)


class FakeAgent(AgentProvider):
    """Agent returning queued results in call order."""

    def __init__(self, results: list[Any]):
        self.results = list(results)
        self.goals: list[str] = []

    async def run_goal(self, goal: str) -> Any:
        self.goals.append(goal)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def signals(make_signal) -> list[Signal]:
    """Create three distinct signals."""
    return [
        make_signal(
            title="Brand launches recycled denim line",
            snippet="Shoppers welcome the launch",
            url="https://www.vogue.com/denim",
        ),
        make_signal(
            title="Critics question carbon labels",
            snippet="Experts doubt the claims",
            url="https://www.bbc.co.uk/labels",
        ),
        make_signal(
            title="Thrift marketplace volume doubles",
            snippet="Resale grows fast",
            url="https://techcrunch.com/thrift",
        ),
    ]


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    """Create an isolated snapshot store."""
    return InMemorySnapshotStore(storage={})


@pytest.fixture
def reporter(snapshot_store) -> SentimentReporter:
    """Create a reporter backed by the isolated store."""
    return SentimentReporter(
        aggregator=SignalAggregator(),
        diff_engine=SnapshotDiffEngine(snapshot_store, key=SNAPSHOT_KEY),
        suggestion_builder=SuggestionBuilder(),
    )


@pytest.fixture
def snapshot_key() -> str:
    """Key the reporter persists snapshots under."""
    return SNAPSHOT_KEY


@pytest.fixture
def fake_retrieval() -> type[FakeRetrieval]:
    """Factory for fixed-result retrieval providers."""
    return FakeRetrieval


@pytest.fixture
def blocking_retrieval() -> BlockingRetrieval:
    """Create a retrieval provider that blocks until cancelled."""
    return BlockingRetrieval()


@pytest.fixture
def fake_classifier() -> type[FakeClassifier]:
    """Factory for fake classification providers."""
    return FakeClassifier


@pytest.fixture
def fake_agent() -> type[FakeAgent]:
    """Factory for queued-result agents."""
    return FakeAgent
