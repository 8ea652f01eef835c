"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Deferred Billing"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str

    # Billing provider (Stripe-compatible REST API)
    billing_api_base_url: str = "https://api.stripe.com"
    billing_api_key: str
    billing_timeout_seconds: float = 10.0
    billing_catalog_page_size: int = 100

    # Deterministic idempotency keys on subscription creation
    billing_idempotency_keys: bool = True


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
