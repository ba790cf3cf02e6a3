"""Response schemas for provider payloads.

Classification payloads are validated strictly: every item needs a
non-negative integer index and non-empty labels. Integral floats such as
2.0 count as integers. Agent stage payloads are lenient, filling absent
sections with empty defaults, but still reject wrongly-typed values.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from mood_radar.services.signals.base import ClassifiedSignal, NarrativeCluster, WireModel


def _integral_float_to_int(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# Rejects bools, strings and fractional numbers
Count = Annotated[int, BeforeValidator(_integral_float_to_int), Field(ge=0, strict=True)]


class ClassificationItem(WireModel):
    """One classified snippet as returned by the classifier."""

    index: Count
    emotion: str = Field(min_length=1)
    concern: str = Field(min_length=1)
    narrative: str = Field(min_length=1)
    cluster: str = Field(min_length=1)


class ClusterItem(WireModel):
    """One narrative cluster as returned by the classifier."""

    label: str = Field(min_length=1)
    size: Count
    example_headlines: list[str] = Field(default_factory=list)


class ClassificationResponse(WireModel):
    """Classifier response: {items, clusters?}."""

    items: list[ClassificationItem]
    clusters: list[ClusterItem] | None = None

    def to_items(self) -> list[ClassifiedSignal]:
        """Convert items to domain ClassifiedSignals."""
        return [ClassifiedSignal(**item.model_dump()) for item in self.items]

    def to_clusters(self) -> list[NarrativeCluster] | None:
        """Convert clusters to domain NarrativeClusters (None if omitted)."""
        if self.clusters is None:
            return None
        return [NarrativeCluster(**cluster.model_dump()) for cluster in self.clusters]


# ============================================
# Agent stage schemas (opportunity pipeline)
# ============================================


class Opportunity(WireModel):
    """A content opportunity mined from signals."""

    title: str
    description: str = ""
    platform_fit: str = ""
    audience_angle: str = ""
    evidence_indexes: list[int] = Field(default_factory=list)
    newness: str = ""


class OpportunityGap(WireModel):
    """An uncovered gap in current content."""

    gap: str
    why_now: str = ""
    suggested_content: str = ""


class OpportunityStage(WireModel):
    """Stage C output: opportunities and gaps."""

    opportunities: list[Opportunity] = Field(default_factory=list)
    gaps: list[OpportunityGap] = Field(default_factory=list)


class OpportunityScore(WireModel):
    """Impact score for one opportunity."""

    title: str
    score: float
    risk: str = ""
    effort: str = ""
    rationale: str = ""
    recommended: bool = False


class ScoringStage(WireModel):
    """Stage D output: scored opportunities."""

    scored: list[OpportunityScore] = Field(default_factory=list)


class Playbook(WireModel):
    """Creator playbook."""

    positioning: str = ""
    content_pillars: list[str] = Field(default_factory=list)
    weekly_plan: list[str] = Field(default_factory=list)
    monetization_ideas: list[str] = Field(default_factory=list)
    collaboration_targets: list[str] = Field(default_factory=list)
    watchouts: list[str] = Field(default_factory=list)


class PlaybookStage(WireModel):
    """Stage E output: the playbook (may be absent)."""

    playbook: Playbook | None = None


__all__ = [
    "ClassificationItem",
    "ClassificationResponse",
    "ClusterItem",
    "Opportunity",
    "OpportunityGap",
    "OpportunityScore",
    "OpportunityStage",
    "Playbook",
    "PlaybookStage",
    "ScoringStage",
]
