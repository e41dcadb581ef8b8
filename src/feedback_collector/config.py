"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    whatsapp_access_token: str
    whatsapp_phone_number_id: str
    whatsapp_api_version: str = "v22.0"
    webhook_verify_token: str
    webhook_app_secret: str | None = None
    supabase_url: str
    supabase_service_key: str
    storage_bucket: str = "feedback-images"
    admin_token: str
    start_keyword: str = "share your thoughts"
    media_consent_enabled: bool = False
    session_ttl_hours: float = 12
    reaper_interval_seconds: float = 3600
    media_workers: int = 4
    media_queue_size: int = 100
    media_drain_timeout_seconds: float = 10
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def normalize_keyword(raw: str) -> str:
    """Normalize free text for keyword comparison."""
    return raw.strip().lower()
