"""Application configuration."""

import os
from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    repository: str = "supabase"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "low"
    openai_store: bool = False
    openai_max_output_tokens: int | None = 2000
    analyze_timeout_seconds: float = 60.0
    pending_scan_ttl_seconds: int = 1800
    pending_scan_max_entries: int = 1000
    pending_scan_sweep_interval_seconds: float = 60.0
    history_limit: int = 20
    timezone: str | None = None
    static_dir: str = "static"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the configured zone, or None for the process local zone."""
    if name is None or not name.strip():
        return None
    return ZoneInfo(name.strip())
