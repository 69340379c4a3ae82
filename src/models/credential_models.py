"""Instagram credential model."""

from pydantic import BaseModel, Field

from src.config import ConfigurationError, Settings
from src.constants import DEFAULT_CREDENTIAL_ID, DEFAULT_REFRESH_THRESHOLD_DAYS


class InstagramCredential(BaseModel):
    """Credential for one configured Instagram connection.

    Read-only to the token subsystem: a refreshed token is cached, never
    written back here.
    """

    credential_id: str = Field(
        default=DEFAULT_CREDENTIAL_ID, description="Opaque id used as the cache key"
    )
    access_token: str = Field(..., description="Bearer token for the Graph API")
    business_account_id: str | None = Field(
        default=None, description="Instagram Business Account ID"
    )
    auto_refresh: bool = True
    refresh_threshold_days: int = Field(default=DEFAULT_REFRESH_THRESHOLD_DAYS, ge=0)
    webhook_verify_token: str | None = Field(
        default=None,
        description="Handshake verify token, also the delivery signing secret",
    )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credential_id: str = DEFAULT_CREDENTIAL_ID,
    ) -> "InstagramCredential":
        """Build the credential from application settings.

        Raises:
            ConfigurationError: If no access token is configured.
        """
        if not settings.instagram_access_token:
            raise ConfigurationError(
                "Instagram access token not configured. "
                "Set INSTAGRAM_ACCESS_TOKEN to a long-lived token."
            )
        return cls(
            credential_id=credential_id,
            access_token=settings.instagram_access_token,
            business_account_id=settings.instagram_business_account_id or None,
            auto_refresh=settings.instagram_auto_refresh,
            refresh_threshold_days=settings.instagram_refresh_threshold_days,
            webhook_verify_token=settings.instagram_webhook_verify_token,
        )
