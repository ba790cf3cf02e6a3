"""Signal deduplication service.

This module removes exact and near-duplicate signals before any scoring
happens. Order of first appearance is preserved.

Matching rules:
- Exact duplicate: the trimmed URL was already accepted in this run
  (case-sensitive, no other normalization)
- Near duplicate: bigram Dice similarity of normalized titles >= threshold
  (0.9 by default) against any previously accepted title

Blocked domains (social platforms by default) are dropped before dedup.
"""

import re
from collections import Counter
from enum import Enum

from pydantic import BaseModel, Field

from mood_radar.config import DedupConfig
from mood_radar.core.logging import get_logger
from mood_radar.services.signals.base import Signal
from mood_radar.services.signals.scorer import get_hostname

logger = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Normalize a title for similarity comparison.

    Lower-cases, replaces every non-alphanumeric/non-space character with a
    space and collapses whitespace.

    Args:
        title: Raw title

    Returns:
        Normalized title (may be empty)
    """
    text = _NON_ALNUM.sub(" ", title.lower())
    return _WHITESPACE.sub(" ", text).strip()


def bigrams(text: str) -> set[str]:
    """Get the set of contiguous 2-character substrings of text."""
    return {text[i : i + 2] for i in range(len(text) - 1)}


def similarity_score(a: str, b: str) -> float:
    """Dice coefficient over the bigram sets of two normalized titles.

    Identical strings score 1 and an empty string scores 0. Two different
    single-character strings have no bigrams and score 0.

    Args:
        a: First normalized title
        b: Second normalized title

    Returns:
        Similarity in [0, 1]
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    first = bigrams(a)
    second = bigrams(b)
    total = len(first) + len(second)
    if total == 0:
        return 0.0
    return 2 * len(first & second) / total


def is_blocked_host(host: str, blocked_domains: list[str]) -> bool:
    """Check whether a host equals or is a subdomain of a blocked domain."""
    return any(host == domain or host.endswith(f".{domain}") for domain in blocked_domains)


class DedupReason(str, Enum):
    """Reason a signal was dropped."""

    MISSING_FIELD = "missing_field"
    BLOCKED_DOMAIN = "blocked_domain"
    EXACT_URL = "exact_url"
    NEAR_DUPLICATE = "near_duplicate"


class DedupReport(BaseModel):
    """Result of deduplicating a signal batch.

    Attributes:
        signals: Kept signals in first-seen order
        dropped: Number of dropped signals per reason
    """

    signals: list[Signal] = Field(default_factory=list)
    dropped: dict[DedupReason, int] = Field(default_factory=dict)

    @property
    def total_dropped(self) -> int:
        """Total number of dropped signals."""
        return sum(self.dropped.values())


class SignalDeduplicator:
    """Removes blocked, incomplete, exact and near-duplicate signals.

    The deduplicator is stateless between calls: every run starts with an
    empty set of accepted URLs and titles.

    Attributes:
        config: Deduplication configuration
    """

    def __init__(self, config: DedupConfig | None = None):
        """Initialize deduplicator.

        Args:
            config: Deduplication configuration (uses defaults if not provided)
        """
        self.config = config or DedupConfig()

    def dedupe(self, signals: list[Signal]) -> list[Signal]:
        """Deduplicate signals, returning only the kept ones."""
        return self.run(signals).signals

    def run(self, signals: list[Signal]) -> DedupReport:
        """Deduplicate signals and report why each drop happened.

        Args:
            signals: Raw signals in retrieval order

        Returns:
            DedupReport with kept signals and drop counts
        """
        kept: list[Signal] = []
        dropped: Counter[DedupReason] = Counter()
        seen_urls: set[str] = set()
        seen_titles: list[str] = []

        for signal in signals:
            reason = self._check(signal, seen_urls, seen_titles)
            if reason is not None:
                dropped[reason] += 1
                logger.debug(
                    "Signal dropped",
                    reason=reason.value,
                    title=signal.title[:50],
                    url=signal.url,
                )
                continue

            seen_urls.add(signal.url.strip())
            seen_titles.append(normalize_title(signal.title))
            kept.append(signal)

        logger.info(
            "Signals deduplicated",
            input_count=len(signals),
            kept_count=len(kept),
            dropped={reason.value: count for reason, count in dropped.items()},
        )
        return DedupReport(signals=kept, dropped=dict(dropped))

    def _check(
        self,
        signal: Signal,
        seen_urls: set[str],
        seen_titles: list[str],
    ) -> DedupReason | None:
        """Return the drop reason for a signal, or None to keep it."""
        url = signal.url.strip()
        title = normalize_title(signal.title)
        if not title or not signal.snippet.strip() or not url:
            return DedupReason.MISSING_FIELD

        if self.config.blocked_domains and is_blocked_host(
            get_hostname(url), self.config.blocked_domains
        ):
            return DedupReason.BLOCKED_DOMAIN

        if url in seen_urls:
            return DedupReason.EXACT_URL

        threshold = self.config.similarity_threshold
        if any(similarity_score(title, prior) >= threshold for prior in seen_titles):
            return DedupReason.NEAR_DUPLICATE

        return None


__all__ = [
    "DedupReason",
    "DedupReport",
    "SignalDeduplicator",
    "bigrams",
    "is_blocked_host",
    "normalize_title",
    "similarity_score",
]
