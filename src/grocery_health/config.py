"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    store_table: str = "kv_store"
    openai_api_key: str
    openai_model: str = "gpt-4.1-mini"
    favorites_api_base_url: str = "http://localhost:8000"
    favorites_timeout_seconds: float = 15.0
    favorites_retry_attempts: int = 1
    admin_token: str | None = None
    text_generation_timeout_seconds: float = 20.0
    text_generation_retry_attempts: int = 1
    store_retry_attempts: int = 2
    retry_delay_seconds: float = 0.5
    default_unit_price: float = 3.50
    default_purchase_price: float = 5.00
    default_search_price: float = 4.99
    default_dietary_preferences: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_csv_list(raw: str | None) -> list[str]:
    """Parse a comma-separated env value into a list of trimmed strings."""
    if raw is None:
        return []
    values: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value and value not in values:
            values.append(value)
    return values
