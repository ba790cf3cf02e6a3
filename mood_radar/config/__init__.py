"""Analysis configuration models."""

from mood_radar.config.analysis import (
    AggregationConfig,
    AnalysisConfig,
    BudgetConfig,
    DedupConfig,
    SuggestionConfig,
    SuggestionWeights,
)

__all__ = [
    "AggregationConfig",
    "AnalysisConfig",
    "BudgetConfig",
    "DedupConfig",
    "SuggestionConfig",
    "SuggestionWeights",
]
