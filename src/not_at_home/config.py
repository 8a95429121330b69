"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    session_ttl_hours: int = 24
    session_code_length: int = 4
    code_attempts: int = 5
    sweep_interval_minutes: int = 15
    sweeper_enabled: bool = True
    realtime_enabled: bool = True
    export_timezone: str = "UTC"
    telegram_bot_token: str | None = None
    telegram_share_chat_id: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_chat_id(raw: str | None) -> int | str | None:
    """Parse a Telegram chat id, keeping @channel usernames as strings."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    if cleaned.lstrip("-").isdigit():
        return int(cleaned)
    return cleaned
