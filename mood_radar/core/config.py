"""Application configuration using Pydantic Settings.

This module defines all application configuration loaded from environment variables.
Configuration is validated at startup and provides type-safe access throughout the app.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration.

    All configuration is loaded from environment variables or .env file.
    Validation happens automatically via Pydantic.

    Example:
        >>> config = Config()
        >>> print(config.app_name)
        'MoodRadar'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Application Settings
    # ============================================
    app_name: str = Field(default="MoodRadar", description="Application name")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    # ============================================
    # Retrieval Provider (Perplexity)
    # ============================================
    perplexity_api_key: str = Field(default="", description="Perplexity API key")
    perplexity_api_url: str = Field(
        default="https://api.perplexity.ai", description="Perplexity base or completions URL"
    )
    perplexity_model: str = Field(default="sonar", description="Perplexity model name")

    # ============================================
    # Classification / Agent Provider (Mino)
    # ============================================
    mino_api_key: str = Field(default="", description="Mino API key")
    mino_api_url: str = Field(default="", description="Mino endpoint URL")
    mino_agent_url: str = Field(
        default="https://example.com", description="Target URL handed to the Mino agent"
    )
    mino_model: str = Field(default="mino-latest", description="Mino classifier model")

    # ============================================
    # HTTP
    # ============================================
    http_timeout: float = Field(default=60.0, gt=0, description="Provider request timeout (s)")

    # ============================================
    # Snapshot Persistence
    # ============================================
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    snapshot_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Where the previous analysis snapshot is kept"
    )
    snapshot_key: str = Field(
        default="mood-radar:snapshot:default", description="Key of the persisted snapshot"
    )

    # ============================================
    # Streaming
    # ============================================
    stream_buffer_size: int = Field(
        default=32, ge=1, le=1024, description="Bounded event channel capacity"
    )

    @field_validator("perplexity_api_url", "mino_api_url", mode="before")
    @classmethod
    def strip_url(cls, v: str) -> str:
        """Trim whitespace around configured URLs.

        Args:
            v: Raw URL string

        Returns:
            Trimmed URL
        """
        return v.strip() if isinstance(v, str) else v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode.

        Returns:
            True if app_env is 'development'
        """
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if app_env is 'production'
        """
        return self.app_env == "production"


# =============================================================================
# Singleton accessor
# =============================================================================

_config: Config | None = None


def get_config() -> Config:
    """Get the global Config singleton.

    This function provides a lazy-loaded singleton instance of Config.
    Use this instead of importing `container.config()` to avoid circular imports.

    Returns:
        The global Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
