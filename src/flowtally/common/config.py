"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
Command-line flags in flowtally.main override the loaded values.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowtally import __version__


class PathSettings(BaseSettings):
    """Input and output file locations for a run."""

    model_config = SettingsConfigDict(env_prefix="FLOWTALLY_")

    # Mandatory inputs
    flow_log_path: Path = Path("flow_log.txt")
    protocol_numbers_path: Path = Path("protocol-numbers.csv")

    # Optional input, tagging is disabled when unset or unreadable
    lookup_table_path: Path | None = Path("lookup_table.csv")

    # Destinations
    output_path: Path = Path("output.txt")
    error_log_path: Path = Path("errors.log")

    @field_validator("lookup_table_path", mode="before")
    @classmethod
    def empty_lookup_is_none(cls, v: object) -> object:
        """Treat an empty lookup table path as "no lookup table"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"
    include_timestamp: bool = True
    include_caller: bool = False


class MetricsSettings(BaseSettings):
    """Prometheus textfile export configuration."""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    # Written after a successful run when set, for node_exporter's textfile collector
    textfile_path: Path | None = None


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_version: str = __version__

    # Sub-configurations
    paths: PathSettings = Field(default_factory=PathSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    @property
    def tagging_enabled(self) -> bool:
        """Check if a lookup table is configured at all."""
        return self.paths.lookup_table_path is not None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
