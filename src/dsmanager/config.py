# Settings for the datastore manager.
# Created: 2026-10-19
#
# Values come from DSMANAGER_* environment variables (or a local .env file)
# layered over the defaults below.

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPENCLOUD_URL = "https://apis.roblox.com/datastores/v1"


def _default_config_dir() -> Path:
    return Path.home() / ".dsmanager"


class Settings(BaseSettings):
    """Server and console settings."""

    model_config = SettingsConfigDict(
        env_prefix="DSMANAGER_",
        env_file=".env",
        extra="ignore",
    )

    # Upstream
    opencloud_base_url: str = DEFAULT_OPENCLOUD_URL
    request_timeout: float | None = 30.0

    # Rate limiting (sliding window, per client address)
    rate_limit_interval: float = Field(default=60.0, gt=0)
    rate_limit_limit: int = Field(default=30, ge=0)
    rate_limit_max_keys: int = Field(default=10_000, ge=1)

    # Server
    api_cors_allowed_origins: list[str] = Field(default_factory=list)
    log_level: str = "INFO"

    # Console
    console_api_url: str = "http://127.0.0.1:8888/api/v1"
    config_dir: Path = Field(default_factory=_default_config_dir)

    @classmethod
    def load(cls) -> Settings:
        """Build settings from the environment."""
        return cls()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call ``cache_clear()`` to reload)."""
    return Settings.load()


def get_config_dir() -> Path:
    """Return the config directory, creating it if needed."""
    config_dir = get_settings().config_dir.expanduser()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir
