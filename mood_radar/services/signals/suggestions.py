"""Direct suggestion builder.

Turns the leading deduplicated signals into scored, provenance-tracked
creator suggestions. Diversity and confidence use the whole signal set as
context; relevance and recency are per signal.
"""

from mood_radar.config import SuggestionConfig
from mood_radar.core.logging import get_logger
from mood_radar.services.signals.base import (
    Provenance,
    Signal,
    SourceRef,
    Suggestion,
    SuggestionSignals,
)
from mood_radar.services.signals.scorer import (
    clamp,
    confidence_label,
    days_since,
    get_hostname,
    score_confidence,
    score_diversity,
    score_recency,
    score_relevance,
    weighted_score,
)

logger = get_logger(__name__)

PROVENANCE_NOTES = [
    "Sources are public web articles, blogs, or forums with URLs.",
    "X/Twitter and Reddit are intentionally excluded.",
    "Scores and confidence are directional, not absolute truth.",
]


class SuggestionBuilder:
    """Builds creator suggestions from deduplicated signals.

    Attributes:
        config: Suggestion configuration (count and score weights)
    """

    def __init__(self, config: SuggestionConfig | None = None):
        """Initialize builder.

        Args:
            config: Suggestion configuration (uses defaults if not provided)
        """
        self.config = config or SuggestionConfig()

    def build(self, signals: list[Signal], topic: str) -> list[Suggestion]:
        """Build suggestions for the first signals of a set.

        Args:
            signals: Deduplicated signals in retrieval order
            topic: Analysis topic

        Returns:
            At most max_suggestions suggestions, in signal order
        """
        sources = [self._source_ref(signal) for signal in signals]
        diversity = score_diversity(len({source.domain for source in sources}))
        weights = self.config.weights

        suggestions: list[Suggestion] = []
        for index, signal in enumerate(signals[: self.config.max_suggestions]):
            source = sources[index]
            relevance = score_relevance(topic, f"{signal.title} {signal.snippet}")
            recency = score_recency(days_since(signal.published_at))
            confidence = score_confidence(
                source_count=len(signals),
                diversity_score=diversity,
                recency_score=recency,
            )
            score = int(
                clamp(
                    weighted_score(
                        [
                            (relevance, weights.relevance),
                            (recency, weights.recency),
                            (diversity, weights.diversity),
                        ]
                    )
                )
            )

            suggestions.append(
                Suggestion(
                    id=f"{source.domain}-{index}",
                    title=f"Creator angle: {signal.title}",
                    summary=(
                        f"Frame {topic} through this signal and extract a hook, a quick POV, "
                        "and a practical takeaway your audience can act on."
                    ),
                    score=score,
                    confidence=confidence,
                    confidence_label=confidence_label(confidence),
                    signals=SuggestionSignals(
                        relevance=relevance,
                        recency=recency,
                        diversity=diversity,
                        rationale=[
                            f'Relevance comes from keyword overlap with "{topic}".',
                            "Recency uses the source date to keep ideas fresh.",
                            "Diversity rewards coverage across distinct domains.",
                        ],
                    ),
                    provenance=Provenance(sources=[source], notes=list(PROVENANCE_NOTES)),
                )
            )

        logger.debug(
            "Suggestions built",
            topic=topic,
            signal_count=len(signals),
            suggestion_count=len(suggestions),
            diversity=diversity,
        )
        return suggestions

    @staticmethod
    def _source_ref(signal: Signal) -> SourceRef:
        return SourceRef(
            title=signal.title,
            snippet=signal.snippet,
            url=signal.url,
            domain=get_hostname(signal.url),
            published_at=signal.published_at,
        )


__all__ = ["PROVENANCE_NOTES", "SuggestionBuilder"]
