"""bullscope configuration with sensible defaults for local Redis."""

from __future__ import annotations

import os
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_queue_names(value: str | None) -> list[str] | None:
    """Split a comma-separated queue list, dropping blanks."""
    if value is None or not value.strip():
        return None
    names = [name.strip() for name in value.split(",")]
    return [name for name in names if name] or None


class Settings(BaseSettings):
    """
    bullscope configuration.

    Values come from (highest priority first) explicit overrides passed by the
    CLI, environment variables / .env, then the defaults below. Environment
    variables are unprefixed so existing REDIS_HOST style setups keep working.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_host: str = "localhost"
    redis_port: int = Field(default=6379, gt=0)
    redis_password: str | None = None
    redis_db: int = Field(default=0, ge=0)

    # Milliseconds between full polls
    poll_interval: int = Field(default=3000, gt=0)

    # Comma-separated static queue list; disables key-space discovery
    queue_names: str | None = None

    bullmq_prefix: str = "bull"
    page_size: int = Field(default=25, gt=0)

    @property
    def queues(self) -> list[str] | None:
        """Configured static queue names, if any."""
        return parse_queue_names(self.queue_names)

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval / 1000

    @property
    def redis_url(self) -> str:
        """Redis URL for display (password masked)."""
        auth = ":***@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


def load_settings(**overrides: Any) -> Settings:
    """Build settings, letting non-None overrides win over the environment."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def has_redis_host_config(cli_host: str | None) -> bool:
    """Check if a Redis host was given on the command line or in the environment."""
    return bool(cli_host or os.environ.get("REDIS_HOST"))
