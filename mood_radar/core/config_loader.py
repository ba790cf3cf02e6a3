"""Configuration loader for analysis defaults.

Loads tunables (dedup threshold, domain blocklist, snippet budget,
suggestion weights) from config/defaults.yaml and validates them into
an AnalysisConfig. The file only overrides model defaults, so an install
without it runs on AnalysisConfig() as is.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mood_radar.config import AnalysisConfig
from mood_radar.core.exceptions import ConfigError
from mood_radar.core.logging import get_logger

logger = get_logger(__name__)

# Base config directory (project root/config)
_CONFIG_BASE_DIR = Path(__file__).parent.parent.parent / "config"


@lru_cache(maxsize=1)
def load_defaults() -> dict[str, Any]:
    """Load global defaults from config/defaults.yaml.

    Returns:
        Dictionary of overrides (empty if the file is absent).

    Raises:
        ConfigError: If the file is invalid YAML.
    """
    defaults_path = _CONFIG_BASE_DIR / "defaults.yaml"
    if not defaults_path.exists():
        logger.warning("Defaults file not found, using model defaults", path=str(defaults_path))
        return {}
    return _load_yaml_file(defaults_path, "defaults")


@lru_cache(maxsize=1)
def load_analysis_config() -> AnalysisConfig:
    """Load the analysis section of the defaults as a typed config.

    Returns:
        Validated AnalysisConfig

    Raises:
        ConfigError: If the defaults file is unreadable or invalid.
    """
    analysis = load_defaults().get("analysis", {})
    if not isinstance(analysis, dict):
        raise ConfigError("'analysis' section must be a mapping", config_path="analysis")

    try:
        return AnalysisConfig.model_validate(analysis)
    except ValidationError as e:
        logger.error("Analysis config validation failed", errors=e.errors())
        raise ConfigError(f"Invalid analysis config: {e}", config_path="analysis") from e


def _load_yaml_file(path: Path, name: str) -> dict[str, Any]:
    """Load a YAML file from disk.

    Args:
        path: Path to the YAML file.
        name: Human-readable name for error messages.

    Returns:
        Parsed YAML content as dictionary.

    Raises:
        ConfigError: If parsing fails.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigError(f"Config file must contain a YAML object: {path}")

        logger.debug("Loaded config file", name=name, path=str(path))
        return content

    except yaml.YAMLError as e:
        logger.error("YAML parsing failed", name=name, path=str(path), error=str(e))
        raise ConfigError(f"Invalid YAML in {path}: {e}", config_path=str(path)) from e


def clear_global_config_cache() -> None:
    """Clear all cached global configurations.

    Call this if config files are modified at runtime and need to be reloaded.
    """
    load_defaults.cache_clear()
    load_analysis_config.cache_clear()
    logger.info("Global config cache cleared")
