"""Application configuration."""

import os
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    data_dir: Path = Path("data")
    storage_key: str = "tracker_data"
    timezone: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_timezone(raw: str | None) -> tzinfo | None:
    """Return the configured zone, or None for the system local zone."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned.lower() in {"", "local"}:
        return None
    return ZoneInfo(cleaned)
