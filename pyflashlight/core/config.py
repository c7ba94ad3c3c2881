"""
Configuration for analysis defaults.

Defaults are kept in a YAML file and validated with pydantic so that every
analysis function can fall back to one consistent set of values.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "defaults.yaml"
CONFIG_ENV_VAR = "PYFLASHLIGHT_CONFIG"


class AnalysisSettings(BaseModel):
    """Shared defaults for sampling, binning and parallelism."""

    random_seed: Optional[int] = 42
    n_max: int = Field(1000, ge=1)
    n_bins: int = Field(11, ge=2)
    cut_type: Literal["equal", "quantile"] = "equal"
    m_repetitions: int = Field(1, ge=1)
    n_jobs: int = 1


class InteractionSettings(BaseModel):
    """Defaults for Friedman's H-statistic."""

    n_max: int = Field(300, ge=2)
    normalize: bool = True
    squared: bool = False


class BreakdownSettings(BaseModel):
    """Defaults for single-observation attribution."""

    n_max: int = Field(1000, ge=1)
    visit_strategy: Literal["importance", "v", "permutation"] = "importance"


class SurrogateSettings(BaseModel):
    """Defaults for the global surrogate tree."""

    max_depth: int = Field(2, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    """All configurable defaults."""

    analysis: AnalysisSettings = AnalysisSettings()
    interaction: InteractionSettings = InteractionSettings()
    breakdown: BreakdownSettings = BreakdownSettings()
    surrogate: SurrogateSettings = SurrogateSettings()
    logging: LoggingSettings = LoggingSettings()


def load_settings(config_path: Union[str, Path, None] = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        config_path: Path to a YAML file. Sections or keys that are left
            out keep their built-in defaults.

    Returns:
        Validated settings
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    logger.debug(f"Loading settings from {path}")

    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    return Settings.model_validate(raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the active settings, honouring ``PYFLASHLIGHT_CONFIG``."""
    return load_settings(os.environ.get(CONFIG_ENV_VAR))


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts using the configured format."""
    log_settings = get_settings().logging
    logging.basicConfig(
        level=(level or log_settings.level).upper(),
        format=log_settings.format
    )
