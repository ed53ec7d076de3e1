"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_DAYS_LIMIT = 30
MAX_DAYS_LIMIT = 365


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "calorie_tracking"
    mongo_days_collection: str = "days"
    mongo_timeout_ms: int = 5000
    read_retry_attempts: int = 3
    read_retry_backoff_seconds: float = 0.2
    edit_conflict_retries: int = 3
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "low"
    openai_store: bool = False
    openai_timeout_seconds: float = 60.0
    openai_image_detail: str = "auto"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_limit(
    raw: object,
    default: int = DEFAULT_DAYS_LIMIT,
    maximum: int = MAX_DAYS_LIMIT,
) -> int:
    """Parse a listing limit, falling back to the default for junk input."""
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        value = raw
    else:
        cleaned = str(raw).strip()
        if not cleaned.lstrip("-").isdigit():
            return default
        value = int(cleaned)
    if value <= 0:
        return default
    return min(value, maximum)
