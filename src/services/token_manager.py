"""Token orchestration: the single entry point outbound calls use."""

import time
from typing import Callable

import logfire

from src.models.credential_models import InstagramCredential
from src.models.token_models import TokenRefreshResult, TokenStatus
from src.services.instagram_token_api import InstagramTokenClient
from src.services.token_cache import TokenCache
from src.services.token_refresh import TokenRefreshEngine
from src.services.token_status import TokenStatusResolver


class TokenManager:
    """Keeps a usable access token for every outbound Graph API call.

    Example:
        >>> manager = TokenManager.create()
        >>> token = await manager.get_usable_token(credential)
    """

    def __init__(
        self,
        cache: TokenCache,
        resolver: TokenStatusResolver,
        refresh_engine: TokenRefreshEngine,
    ):
        self.cache = cache
        self._resolver = resolver
        self._refresh_engine = refresh_engine

    @classmethod
    def create(
        cls,
        cache: TokenCache | None = None,
        token_client: InstagramTokenClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "TokenManager":
        """Wire a manager from a cache and a token transport."""
        cache = cache if cache is not None else TokenCache()
        token_client = token_client or InstagramTokenClient()
        return cls(
            cache=cache,
            resolver=TokenStatusResolver(cache, token_client, clock=clock),
            refresh_engine=TokenRefreshEngine(cache, token_client, clock=clock),
        )

    async def get_usable_token(self, credential: InstagramCredential) -> str:
        """Return a token to authenticate the next API call.

        Never raises for token-endpoint failures; the configured token is the
        fallback.
        """
        if not credential.auto_refresh:
            return credential.access_token

        status = await self._resolver.resolve(credential)
        if status.is_expired or status.needs_refresh:
            logfire.info(
                "Token needs refresh, refreshing automatically",
                credential_id=credential.credential_id,
                is_expired=status.is_expired,
                days_until_expiry=status.days_until_expiry,
            )
            return await self._refresh_engine.refresh(credential)

        return status.token

    async def check_status(self, credential: InstagramCredential) -> TokenStatus:
        return await self._resolver.resolve(credential)

    async def refresh(self, credential: InstagramCredential) -> str:
        return await self._refresh_engine.refresh(credential)

    async def force_refresh(self, credential: InstagramCredential) -> TokenRefreshResult:
        """Refresh regardless of status."""
        try:
            new_token = await self._refresh_engine.refresh(credential)
        except Exception as e:
            logfire.error(
                "Forced token refresh failed",
                credential_id=credential.credential_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TokenRefreshResult(
                success=False,
                new_token="",
                message=f"Failed to refresh token: {e}",
            )
        return TokenRefreshResult(
            success=True,
            new_token=new_token,
            message="Token refreshed successfully",
        )

    def clear_cache(self, credential_id: str) -> bool:
        return self.cache.clear(credential_id)
