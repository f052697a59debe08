"""
Application settings using Pydantic.

Provides environment-based configuration loading with BUILDLAYER_ prefix.
"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BUILDLAYER_",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    # Run storage
    scratch_root: Path = Path(tempfile.gettempdir())

    # Sequencing
    stage_pause_seconds: float = 5.0
    action_timeout_seconds: float | None = None

    # Stage document syntax
    placeholder_marker: str = "##"
    reference_marker: str = "@@"
    capture_parameter: str = "workflowAttrib"

    # Network allocation
    network_ledger: Path = Path("networks.json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
