"""
Runtime Environment Validation Module

This module validates all required environment variables at application startup.
If validation fails, the application will refuse to start (hard fail).

This prevents runtime errors from missing or misconfigured environment variables.
"""

import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductionSettings(BaseSettings):
    """
    Strict validation schema for production environment variables.

    All required fields MUST be present and valid, or the application will not start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # CRITICAL: Database Configuration
    # ========================================================================
    database_url: str  # REQUIRED: PostgreSQL connection string

    # ========================================================================
    # CRITICAL: Billing Provider
    # ========================================================================
    billing_api_key: str  # REQUIRED: secret key for the billing REST API
    billing_api_base_url: str = "https://api.stripe.com"
    billing_timeout_seconds: float = 10.0

    # ========================================================================
    # Application Configuration
    # ========================================================================
    app_name: str = "Deferred Billing"
    debug: bool = False
    api_v1_prefix: str = "/v1"

    # ========================================================================
    # CRITICAL: CORS Configuration
    # ========================================================================
    allowed_origins: Optional[str] = None  # Comma-separated list of allowed origins


def validate_environment() -> ProductionSettings:
    """
    Validate all required environment variables at startup.

    This function MUST be called before the FastAPI app starts.
    If validation fails, the application will exit with code 1.

    Returns:
        ProductionSettings: Validated settings object

    Raises:
        SystemExit: If validation fails (exit code 1)
    """

    try:
        settings = ProductionSettings()

        # 1. CORS: Ensure wildcard is not used in production
        if not settings.debug and settings.allowed_origins:
            origins = [o.strip() for o in settings.allowed_origins.split(",")]
            if "*" in origins:
                print(
                    "❌ FATAL: Wildcard CORS origin (*) detected in production mode.",
                    file=sys.stderr
                )
                print(
                    "   Set ALLOWED_ORIGINS to specific domains (comma-separated).",
                    file=sys.stderr
                )
                sys.exit(1)

        # 2. Billing: the key must not be blank and the base URL must be https outside debug
        if not settings.billing_api_key.strip():
            print("❌ FATAL: BILLING_API_KEY is empty", file=sys.stderr)
            sys.exit(1)
        if not settings.debug and not settings.billing_api_base_url.startswith("https://"):
            print(
                "❌ FATAL: BILLING_API_BASE_URL must use https:// in production mode",
                file=sys.stderr
            )
            sys.exit(1)
        if settings.billing_timeout_seconds <= 0:
            print("❌ FATAL: BILLING_TIMEOUT_SECONDS must be positive", file=sys.stderr)
            sys.exit(1)

        # 3. Database URL: Basic format validation
        if not settings.database_url.startswith("postgresql"):
            print(
                "❌ FATAL: DATABASE_URL must be a PostgreSQL connection string (postgresql:// or postgresql+asyncpg://)",
                file=sys.stderr
            )
            sys.exit(1)

        print("✅ Environment validation passed")
        print(f"   App: {settings.app_name}")
        print(f"   Debug: {settings.debug}")
        print(f"   Billing API: {settings.billing_api_base_url}")
        print(f"   CORS Origins: {settings.allowed_origins}")

        return settings

    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"   • {field}: {msg}", file=sys.stderr)

        print("\nThe application cannot start with invalid configuration.", file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    # Allow running this module directly to test validation
    validate_environment()
    print("\n✅ All environment variables are valid!")
