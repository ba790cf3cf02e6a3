"""Analysis pipeline configuration models.

All fields have defaults - the pipeline runs without any configuration.
Overrides can be supplied from config/defaults.yaml (see core.config_loader).
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from mood_radar.config.validators import normalize_domain_list, validate_weights_sum


class DedupConfig(BaseModel):
    """Signal deduplication configuration.

    Attributes:
        similarity_threshold: Bigram Dice similarity at which titles are near-duplicates
        blocked_domains: Hosts (and their subdomains) dropped before dedup
    """

    similarity_threshold: float = Field(
        default=0.9, gt=0, le=1, description="Near-duplicate Dice threshold"
    )
    blocked_domains: list[str] = Field(
        default_factory=lambda: ["x.com", "twitter.com", "reddit.com"],
        description="Excluded social platforms",
    )

    @field_validator("blocked_domains", mode="before")
    @classmethod
    def normalize_domains(cls, v: list[str]) -> list[str]:
        """Normalize blocked domains to bare lowercase hosts."""
        return normalize_domain_list(v)


class BudgetConfig(BaseModel):
    """Snippet budget applied before sending signals for classification.

    Attributes:
        max_title_chars: Per-title cap
        max_snippet_chars: Per-body cap
        max_total_chars: Cumulative cap across all included signals
    """

    max_title_chars: int = Field(default=160, ge=1)
    max_snippet_chars: int = Field(default=800, ge=1)
    max_total_chars: int = Field(default=12000, ge=1)


class SuggestionWeights(BaseModel):
    """Weights of the suggestion score components.

    All weights must sum to 1.0.
    """

    relevance: float = Field(default=0.45, ge=0, le=1)
    recency: float = Field(default=0.35, ge=0, le=1)
    diversity: float = Field(default=0.20, ge=0, le=1)

    @model_validator(mode="after")
    def check_weights_sum(self) -> "SuggestionWeights":
        """Validate that all weights sum to 1.0."""
        validate_weights_sum(
            {
                "relevance": self.relevance,
                "recency": self.recency,
                "diversity": self.diversity,
            }
        )
        return self


class SuggestionConfig(BaseModel):
    """Direct suggestion configuration.

    Attributes:
        max_suggestions: Number of leading signals turned into suggestions
        weights: Score component weights
    """

    max_suggestions: int = Field(default=4, ge=0, le=50)
    weights: SuggestionWeights = Field(default_factory=SuggestionWeights)


class AggregationConfig(BaseModel):
    """Aggregation and diff configuration.

    Attributes:
        max_example_headlines: Headlines kept per derived cluster
        max_rising_narratives: Rising narratives reported per run
    """

    max_example_headlines: int = Field(default=3, ge=0, le=10)
    max_rising_narratives: int = Field(default=5, ge=0, le=50)


class AnalysisConfig(BaseModel):
    """Complete analysis configuration.

    Attributes:
        dedup: Deduplication settings
        budget: Classification snippet budget
        suggestions: Direct suggestion settings
        aggregation: Aggregation and diff settings
    """

    dedup: DedupConfig = Field(default_factory=DedupConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)


__all__ = [
    "AggregationConfig",
    "AnalysisConfig",
    "BudgetConfig",
    "DedupConfig",
    "SuggestionConfig",
    "SuggestionWeights",
]
