"""Token actions: check status, force refresh, clear cache, get access token."""

import logging

from fastapi import APIRouter, Depends

from src.api.dependencies import get_credential, get_token_manager
from src.models.credential_models import InstagramCredential
from src.services.token_manager import TokenManager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/status")
async def check_token_status(
    credential: InstagramCredential = Depends(get_credential),
    manager: TokenManager = Depends(get_token_manager),
):
    """Report expiry and refresh state of the configured token."""
    token_status = await manager.check_status(credential)
    return token_status.model_dump(by_alias=True)


@router.post("/refresh")
async def refresh_token(
    credential: InstagramCredential = Depends(get_credential),
    manager: TokenManager = Depends(get_token_manager),
):
    """Refresh the token regardless of its status."""
    result = await manager.force_refresh(credential)
    if not result.success:
        logger.warning("Forced token refresh failed: %s", result.message)
    return result.model_dump(by_alias=True)


@router.delete("/cache")
async def clear_token_cache(
    credential: InstagramCredential = Depends(get_credential),
    manager: TokenManager = Depends(get_token_manager),
):
    """Forget the cached token so the next call re-checks it."""
    manager.clear_cache(credential.credential_id)
    return {"success": True, "message": "Token cache cleared"}


@router.get("/access-token")
async def get_access_token(
    credential: InstagramCredential = Depends(get_credential),
    manager: TokenManager = Depends(get_token_manager),
):
    """Return a usable token, refreshing it first when needed."""
    token = await manager.get_usable_token(credential)
    return {
        "success": True,
        "accessToken": token,
        "message": "Access token retrieved",
    }
