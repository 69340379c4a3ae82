"""FastAPI dependencies shared by the routers."""

from fastapi import Depends, Request

from src.config import get_settings
from src.models.credential_models import InstagramCredential
from src.services.instagram_service import InstagramGraphClient
from src.services.token_manager import TokenManager


def get_credential() -> InstagramCredential:
    """Credential for the configured Instagram connection.

    Raises:
        ConfigurationError: If no access token is configured.
    """
    return InstagramCredential.from_settings(get_settings())


def get_token_manager(request: Request) -> TokenManager:
    """Process-wide token manager created in the app lifespan."""
    return request.app.state.token_manager


def get_graph_client(
    credential: InstagramCredential = Depends(get_credential),
    manager: TokenManager = Depends(get_token_manager),
) -> InstagramGraphClient:
    """Graph API client authenticated through the token manager."""
    settings = get_settings()
    return InstagramGraphClient(
        manager,
        credential,
        timeout_seconds=settings.instagram_api_timeout_seconds,
        poll_interval_seconds=settings.story_poll_interval_seconds,
        poll_max_attempts=settings.story_poll_max_attempts,
    )
