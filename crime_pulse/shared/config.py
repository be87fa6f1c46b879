"""
Crime Pulse - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides for secrets
- Per-dataset YAML files for the dataset registry

Usage:
    from crime_pulse.shared.config import get_config

    config = get_config()  # Uses CP_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    # Access config values
    timeout = config.api.timeout_seconds
    weeks = config.stats.trend_weeks
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "crime-pulse"
    version: str = "0.1.0"
    description: str = "Crime incident dashboards over municipal open-data APIs"


class APIConfig(BaseModel):
    """HTTP query interface configuration."""

    timeout_seconds: int = 60
    default_row_limit: int = 200
    accept: str = "application/json"
    token_param: str = "$$app_token"


class StatsConfig(BaseModel):
    """Statistics view configuration."""

    trend_weeks: int = 26
    trend_days: int = 182
    top_n_limit: int = 8
    map_point_limit: int = 1000
    choropleth_group_limit: int = 200
    summary_limit: int = 4
    max_workers: int = 8


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    include_timestamp: bool = True


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for Crime Pulse.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables (for secrets)

    Environment variables take precedence over YAML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="CP_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Datasets offered by the selector, in display order
    datasets: list[str] = Field(default_factory=lambda: ["austin"])
    default_dataset: str = "austin"

    # Secrets (from environment variables only)
    app_token: str | None = Field(default=None, alias="CP_APP_TOKEN")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path:
    """Get the configuration directory path."""
    # Packaged configs next to the crime_pulse package modules
    config_dir = Path(__file__).parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    raise FileNotFoundError(
        "Could not find configs directory. "
        "Ensure the crime_pulse package was installed with its data files."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    config_dir = _get_config_dir()
    env_dir = config_dir / "environments"

    base_config = _load_yaml_file(env_dir / "base.yaml")
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses CP_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("CP_ENVIRONMENT", "dev")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    return Settings(**yaml_config)


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    return get_config(environment)


@lru_cache(maxsize=32)
def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Load the raw YAML configuration for one dataset.

    Args:
        dataset: Dataset id (file stem under configs/datasets/)

    Returns:
        Parsed YAML mapping, empty if the file does not exist
    """
    return _load_yaml_file(_get_config_dir() / "datasets" / f"{dataset}.yaml")
