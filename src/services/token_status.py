"""Resolve the status of an Instagram access token.

The cache is consulted first; on a miss the token is introspected via
debug_token. Introspection failures never reach the caller: a degraded
"needs refresh" status is returned instead.
"""

import math
import time
from typing import Callable

import logfire

from src.constants import SECONDS_PER_DAY
from src.logging_config import mask_pii
from src.models.credential_models import InstagramCredential
from src.models.token_models import TokenStatus
from src.services.instagram_token_api import InstagramTokenClient
from src.services.token_cache import TokenCache


def days_until(expires_at: float, now: float) -> int:
    """Whole days (rounded up) until expiry; negative once expired."""
    return math.ceil((expires_at - now) / SECONDS_PER_DAY)


class TokenStatusResolver:
    """Computes a TokenStatus for a credential."""

    def __init__(
        self,
        cache: TokenCache,
        token_client: InstagramTokenClient,
        clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self._client = token_client
        self._clock = clock

    async def resolve(self, credential: InstagramCredential) -> TokenStatus:
        """Return the current status of the credential's configured token."""
        token = credential.access_token
        now = self._clock()

        cached = self._cache.get(credential.credential_id)
        if cached and cached.token == token and cached.expires_at > now:
            logfire.info(
                "Token status served from cache",
                credential_id=credential.credential_id,
                expires_at=cached.expires_at,
            )
            return TokenStatus(
                token=cached.token,
                is_expired=False,
                needs_refresh=False,
                expires_at=cached.expires_at,
                days_until_expiry=days_until(cached.expires_at, now),
            )

        try:
            introspection = await self._client.debug_token(token)
        except Exception as e:
            logfire.warn(
                "Token introspection failed, assuming refresh is needed",
                credential_id=credential.credential_id,
                token=mask_pii(token),
                error=str(e),
                error_type=type(e).__name__,
            )
            return TokenStatus(
                token=token,
                is_expired=False,
                needs_refresh=True,
                expires_at=0,
                days_until_expiry=0,
            )

        data = introspection.data
        expires_at = data.expires_at or 0
        threshold_seconds = credential.refresh_threshold_days * SECONDS_PER_DAY
        is_expired = data.is_valid is False
        needs_refresh = bool(expires_at) and (expires_at - now) < threshold_seconds

        self._cache.set(
            credential.credential_id,
            token=token,
            expires_at=expires_at,
            last_checked_at=now,
        )

        status = TokenStatus(
            token=token,
            is_expired=is_expired,
            needs_refresh=needs_refresh,
            expires_at=expires_at,
            days_until_expiry=days_until(expires_at, now) if expires_at else 0,
        )
        logfire.info(
            "Token status resolved",
            credential_id=credential.credential_id,
            is_expired=status.is_expired,
            needs_refresh=status.needs_refresh,
            days_until_expiry=status.days_until_expiry,
        )
        return status
