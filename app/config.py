"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out of the box for local development
    - Account id arrives in a header set by the upstream auth layer; this service
      never validates credentials itself
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://giftdrive:giftdrive@db:5432/giftdrive"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Rye
    rye_graphql_endpoint: str = "https://staging.graphql.api.rye.com/v1/query"
    rye_secret_api_key: str = "rye-placeholder"
    rye_shopper_ip: str = "127.0.0.1"
    rye_max_retries: int = 3
    rye_timeout_seconds: int = 30
    rye_base_delay_ms: int = 500
    rye_max_delay_ms: int = 8_000
    rye_webhook_secret_key: str | None = None

    # Shopper identity
    account_header: str = "X-Account-Id"
    guest_cart_cookie_name: str = "guestCartToken"
    guest_cart_cookie_max_age: int = 60 * 60 * 24 * 30
    guest_cart_cookie_secure: bool = False
    receipt_email_domain: str = "giftdrive.org"

    # API
    cors_origins: list[str] = ["http://localhost:3000"]
    expose_error_details: bool = False

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
