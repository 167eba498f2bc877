"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, RedisDsn, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Server
    project_name: str = "Storeforge Webhooks"
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 3000

    # Webhooks
    webhook_path_prefix: str = "/webhooks/"
    webhook_max_body_bytes: int = 1_048_576

    # Shopify (app client secret signs every webhook)
    shopify_client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("shopify_client_secret", "shopify_api_secret"),
    )

    # Redis (shop data, idempotency ledger, Celery broker)
    redis_url: RedisDsn = RedisDsn("redis://localhost:6379/0")

    # GDPR compliance processing
    compliance_mode: Literal["inline", "deferred"] = "inline"
    compliance_inline_timeout: float = 4.0  # Shopify waits 5s before retrying
    compliance_ledger_ttl_seconds: int = 60 * 60 * 24 * 30

    # Email (data export delivery)
    resend_api_key: str = ""
    compliance_export_from: str = "Storeforge Compliance <privacy@mail.storeforge.app>"
    compliance_export_recipient: str = "privacy@storeforge.app"

    # Error tracking
    sentry_dsn: str = ""


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
