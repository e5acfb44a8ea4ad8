"""Environment-driven settings for the CLI."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from servicekit.config.loader import get_config_path


class Settings(BaseSettings):
    """CLI settings, overridable via SERVICEKIT_* environment variables."""
    model_config = SettingsConfigDict(env_prefix="SERVICEKIT_")

    config_path: Path = Field(default_factory=get_config_path)
    log_level: str = "INFO"
