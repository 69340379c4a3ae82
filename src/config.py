"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import (
    DEFAULT_REFRESH_THRESHOLD_DAYS,
    INSTAGRAM_API_TIMEOUT_SECONDS,
    STORY_POLL_INTERVAL_SECONDS,
    STORY_POLL_MAX_ATTEMPTS,
)


class ConfigurationError(Exception):
    """Raised when the Instagram credentials are missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Instagram Credential
    instagram_access_token: str = Field(
        default="", description="Instagram access token (long-lived recommended)"
    )
    instagram_business_account_id: str | None = Field(
        default=None,
        description="Instagram Business Account ID (auto-discovered if not provided)",
    )
    instagram_auto_refresh: bool = Field(
        default=True, description="Automatically refresh token when expired"
    )
    instagram_refresh_threshold_days: int = Field(
        default=DEFAULT_REFRESH_THRESHOLD_DAYS,
        ge=0,
        description="Refresh token when expiring within this many days",
    )
    instagram_webhook_verify_token: str | None = Field(
        default=None,
        description="Webhook verify token (also used as the delivery signing secret)",
    )

    # Webhook Behaviour
    strict_webhook_auth: bool = Field(
        default=False,
        description="Reject deliveries whose signature cannot be verified (fail-closed)",
    )
    webhook_events: list[str] = Field(
        default_factory=lambda: ["messages"],
        description="Webhook event types routed to the output channels",
    )
    webhook_ignore_echo: bool = Field(
        default=True,
        description="Ignore echo messages (messages sent by your own account)",
    )

    # Environment
    env: Literal["local", "railway", "prod"] = Field(
        default="local", description="Current environment"
    )

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # ==========================================================================
    # Timeout / Polling Configuration
    # ==========================================================================
    # Defaults are sourced from src/constants.py.

    instagram_api_timeout_seconds: float = Field(
        default=INSTAGRAM_API_TIMEOUT_SECONDS,
        description="Timeout for Instagram Graph API calls (seconds)",
    )
    story_poll_interval_seconds: float = Field(
        default=STORY_POLL_INTERVAL_SECONDS,
        description="Delay between story container status checks (seconds)",
    )
    story_poll_max_attempts: int = Field(
        default=STORY_POLL_MAX_ATTEMPTS,
        description="Maximum story container status checks before timing out",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
