"""Signal scoring functions.

Calculates the score components shown with every suggestion:
- Relevance (topic keyword overlap)
- Recency (bucketed age of the source)
- Diversity (number of distinct source domains)
- Confidence (source count, diversity and recency combined)

All functions are deterministic and total: invalid input degrades to a
documented default instead of raising. Scores live on a 0-100 scale and
rounding is half-up.
"""

import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

from dateutil.parser import parse as parse_date

# Neutral-low relevance when the topic has no tokens
DEFAULT_RELEVANCE = 40
# Recency when the publish date is missing or unparseable
UNKNOWN_RECENCY = 35
# Fills components a free-form date leaves out
_PARSE_DEFAULT = datetime(2000, 1, 1)

# (max age in days, score); boundaries resolve to the more recent bucket
_RECENCY_BUCKETS: tuple[tuple[float, int], ...] = (
    (1, 95),
    (3, 85),
    (7, 70),
    (14, 58),
    (30, 45),
)
_STALE_RECENCY = 30

# (min unique domains, score)
_DIVERSITY_BUCKETS: tuple[tuple[int, int], ...] = (
    (5, 90),
    (4, 80),
    (3, 70),
    (2, 55),
)
_SINGLE_SOURCE_DIVERSITY = 40


def clamp(value: float, minimum: float = 0, maximum: float = 100) -> float:
    """Clamp value into [minimum, maximum]."""
    return min(max(value, minimum), maximum)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding up.

    Python's round() uses banker's rounding (round(0.5) == 0), which would
    shift scores sitting exactly on a half.
    """
    return int(math.floor(value + 0.5))


def get_hostname(url: str) -> str:
    """Get the hostname of a URL without a leading "www.".

    Args:
        url: Source URL

    Returns:
        Hostname, or "unknown" if the URL has no parseable host
    """
    try:
        host = urlparse(url.strip()).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    return host.removeprefix("www.")


def parse_published_at(value: str) -> datetime | None:
    """Parse a provider date string.

    ISO 8601 and RFC 2822 are tried first, then free-form dates such as
    "May 5, 2024" or "2024/05/05". Missing day or month default to the
    first. Naive values are treated as UTC.

    Args:
        value: Date string from a provider

    Returns:
        Timezone-aware datetime, or None if unparseable
    """
    text = value.strip() if value else ""
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            try:
                parsed = parse_date(text, default=_PARSE_DEFAULT)
            except (ValueError, OverflowError):
                return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def days_since(published_at: str, now: datetime | None = None) -> float | None:
    """Get the age of a source in fractional days.

    Args:
        published_at: Date string from a provider
        now: Reference time (default: current UTC time)

    Returns:
        max(0, now - published_at) in days, or None if the date is missing
        or unparseable
    """
    published = parse_published_at(published_at)
    if published is None:
        return None

    reference = now or datetime.now(UTC)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=UTC)
    return max(0.0, (reference - published).total_seconds() / 86400)


def score_relevance(topic: str, text: str) -> float:
    """Score keyword overlap between a topic and a text.

    The topic is lower-cased and split on whitespace; a hit is a topic token
    that appears as a substring of the lower-cased text.

    Args:
        topic: Analysis topic
        text: Signal text (title and snippet)

    Returns:
        100 * hits / tokens clamped to [35, 100], or 40 for an empty topic
    """
    tokens = topic.lower().split()
    if not tokens:
        return DEFAULT_RELEVANCE

    normalized_text = text.lower()
    hits = sum(1 for token in tokens if token in normalized_text)
    return clamp(hits / len(tokens) * 100, 35, 100)


def score_recency(days: float | None) -> int:
    """Score how recent a source is.

    Args:
        days: Age in days, or None when unknown

    Returns:
        Recency score (95 for <= 1 day down to 30 for > 30 days; 35 if unknown)
    """
    if days is None:
        return UNKNOWN_RECENCY
    for max_days, score in _RECENCY_BUCKETS:
        if days <= max_days:
            return score
    return _STALE_RECENCY


def score_diversity(unique_domains: int) -> int:
    """Score source diversity by number of distinct domains."""
    for min_domains, score in _DIVERSITY_BUCKETS:
        if unique_domains >= min_domains:
            return score
    return _SINGLE_SOURCE_DIVERSITY


def weighted_score(values: list[tuple[float, float]]) -> int:
    """Weighted average of (value, weight) pairs, rounded half-up.

    Args:
        values: (value, weight) pairs

    Returns:
        Rounded weighted average, or 0 when the total weight is 0
    """
    total_weight = sum(weight for _, weight in values)
    if not total_weight:
        return 0
    total = sum(value * weight for value, weight in values)
    return round_half_up(total / total_weight)


def score_confidence(source_count: int, diversity_score: float, recency_score: float) -> int:
    """Score confidence in a suggestion.

    Weighted average of a source-count score (source_count * 18 clamped to
    [35, 95], weight 0.4), diversity (0.3) and recency (0.3).

    Args:
        source_count: Number of signals backing the analysis
        diversity_score: Diversity score
        recency_score: Recency score of the signal

    Returns:
        Confidence in [0, 100]
    """
    source_score = clamp(source_count * 18, 35, 95)
    return int(
        clamp(
            weighted_score(
                [
                    (source_score, 0.4),
                    (diversity_score, 0.3),
                    (recency_score, 0.3),
                ]
            )
        )
    )


def confidence_label(score: float) -> str:
    """Label a confidence score ("High", "Medium" or "Early signal")."""
    if score >= 80:
        return "High"
    if score >= 60:
        return "Medium"
    return "Early signal"


__all__ = [
    "DEFAULT_RELEVANCE",
    "UNKNOWN_RECENCY",
    "clamp",
    "confidence_label",
    "days_since",
    "get_hostname",
    "parse_published_at",
    "round_half_up",
    "score_confidence",
    "score_diversity",
    "score_recency",
    "score_relevance",
    "weighted_score",
]
