"""Best-effort renewal of long-lived Instagram tokens."""

import asyncio
import time
from typing import Callable

import logfire

from src.logging_config import mask_pii
from src.models.credential_models import InstagramCredential
from src.services.instagram_token_api import InstagramTokenClient
from src.services.token_cache import TokenCache


class TokenRefreshEngine:
    """Exchanges a long-lived token for a renewed one.

    Failures are never raised: many long-lived tokens cannot be refreshed,
    so the caller keeps working with the token it already has.

    Concurrent refreshes of the same credential share one in-flight request.
    """

    def __init__(
        self,
        cache: TokenCache,
        token_client: InstagramTokenClient,
        clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self._client = token_client
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task[str]] = {}

    async def refresh(self, credential: InstagramCredential) -> str:
        """Return a renewed token, or the configured one if renewal fails."""
        key = credential.credential_id
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._refresh(credential))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logfire.info("Joining in-flight token refresh", credential_id=key)

        # A cancelled waiter must not cancel the refresh other waiters share.
        return await asyncio.shield(task)

    def in_flight(self, credential_id: str) -> bool:
        return credential_id in self._in_flight

    def _forget(self, key: str, task: asyncio.Task[str]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _refresh(self, credential: InstagramCredential) -> str:
        token = credential.access_token
        logfire.info(
            "Refreshing access token",
            credential_id=credential.credential_id,
            token=mask_pii(token),
        )
        try:
            refreshed = await self._client.refresh_access_token(token)
        except Exception as e:
            logfire.error(
                "Token refresh failed, using original token",
                credential_id=credential.credential_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            logfire.warn(
                "Token may be a long-lived token that cannot be refreshed "
                "automatically; update the stored credential manually",
                credential_id=credential.credential_id,
            )
            return token

        now = self._clock()
        self._cache.set(
            credential.credential_id,
            token=refreshed.access_token,
            expires_at=now + refreshed.expires_in,
            last_checked_at=now,
        )
        logfire.info(
            "Access token refreshed",
            credential_id=credential.credential_id,
            new_token=mask_pii(refreshed.access_token),
            expires_in=refreshed.expires_in,
        )
        # The credential store is read-only to us; the new token lives in the cache only.
        logfire.warn(
            "New token generated; update the stored Instagram credential",
            credential_id=credential.credential_id,
        )
        return refreshed.access_token
