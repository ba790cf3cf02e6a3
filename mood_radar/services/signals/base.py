"""Base DTOs for signal analysis.

This module defines the core data structures passed between the dedup,
scoring, aggregation and snapshot engines. Python attributes are
snake_case; serialized output uses the camelCase wire names consumers
expect (publishedAt, exampleHeadlines, confidenceLabel, ...).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


def _coerce_text(value: Any) -> str:
    """Coerce an untrusted field to a trimmed string ("" for missing)."""
    if value is None:
        return ""
    return str(value).strip()


class Signal(WireModel):
    """One retrieved piece of public text.

    Attributes:
        title: Headline
        snippet: Body text excerpt
        url: Source URL (identity key)
        published_at: ISO-ish date string, possibly empty or unparseable
    """

    title: str
    snippet: str = ""
    url: str
    published_at: str = ""

    @classmethod
    def from_raw(cls, record: Any) -> "Signal | None":
        """Coerce an untrusted provider record into a Signal.

        Fields are coerced to trimmed strings. Records that are not mappings
        or that lack a title or URL are discarded.

        Args:
            record: Raw record from a retrieval provider

        Returns:
            Signal, or None if the record is unusable
        """
        if not isinstance(record, dict):
            return None

        published = record.get("publishedAt")
        if published is None:
            published = record.get("published_at")

        title = _coerce_text(record.get("title"))
        url = _coerce_text(record.get("url"))
        if not title or not url:
            return None

        return cls(
            title=title,
            snippet=_coerce_text(record.get("snippet")),
            url=url,
            published_at=_coerce_text(published),
        )


class ClassifiedSignal(WireModel):
    """Labels assigned to one signal by the classification provider.

    Attributes:
        index: Position in the snippet list sent for classification (may be invalid)
        emotion: Emotion label
        concern: Concern label
        narrative: Narrative label
        cluster: Cluster label
    """

    index: int | None = None
    emotion: str = ""
    concern: str = ""
    narrative: str = ""
    cluster: str = ""


class NarrativeCluster(WireModel):
    """A named group of classified signals sharing a storyline."""

    label: str
    size: int = Field(default=0, ge=0)
    example_headlines: list[str] = Field(default_factory=list)


class EmotionStat(WireModel):
    """Emotion frequency with its share of all classified items."""

    emotion: str
    count: int
    percentage: int


class ConcernStat(WireModel):
    """Concern frequency."""

    label: str
    count: int


class RisingNarrative(WireModel):
    """A cluster whose size grew since the previous run."""

    label: str
    delta: int


class SourceRef(WireModel):
    """Provenance entry pointing back at the signal a suggestion came from."""

    title: str
    snippet: str
    url: str
    domain: str
    published_at: str


class SuggestionSignals(WireModel):
    """Score breakdown shown alongside a suggestion."""

    relevance: float
    recency: int
    diversity: int
    rationale: list[str] = Field(default_factory=list)


class Provenance(WireModel):
    """Sources and caveats behind a suggestion."""

    sources: list[SourceRef] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class Suggestion(WireModel):
    """A scored, presentable unit derived from one signal.

    Attributes:
        id: "<domain>-<position>"
        title: Display title
        summary: Display summary
        score: Weighted score (0-100)
        confidence: Confidence score (0-100)
        confidence_label: "High", "Medium" or "Early signal"
        signals: Score breakdown
        provenance: Sources and notes
    """

    id: str
    title: str
    summary: str
    score: int = Field(ge=0, le=100)
    confidence: int = Field(ge=0, le=100)
    confidence_label: str
    signals: SuggestionSignals
    provenance: Provenance


__all__ = [
    "ClassifiedSignal",
    "ConcernStat",
    "EmotionStat",
    "NarrativeCluster",
    "Provenance",
    "RisingNarrative",
    "Signal",
    "SourceRef",
    "Suggestion",
    "SuggestionSignals",
    "WireModel",
]
