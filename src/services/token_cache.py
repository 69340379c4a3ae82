"""In-memory cache of last-known access tokens.

One entry per configured credential. The cache has no TTL of its own:
callers decide whether an entry is still usable. Entries are lost on
restart.
"""

import logfire

from src.models.token_models import CachedToken


class TokenCache:
    """Mapping from credential id to its last-known token and expiry.

    Constructed once per process (see the app lifespan) and shared by the
    status resolver and refresh engine.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CachedToken] = {}

    def get(self, credential_id: str) -> CachedToken | None:
        """Return the cached token for a credential, or None."""
        return self._entries.get(credential_id)

    def set(
        self,
        credential_id: str,
        token: str,
        expires_at: float,
        last_checked_at: float,
    ) -> CachedToken:
        """Create or overwrite the entry for a credential."""
        entry = CachedToken(
            token=token,
            expires_at=expires_at,
            last_checked_at=last_checked_at,
        )
        self._entries[credential_id] = entry
        return entry

    def clear(self, credential_id: str) -> bool:
        """Drop the entry for a credential.

        Returns:
            True if an entry was removed.
        """
        removed = self._entries.pop(credential_id, None) is not None
        logfire.info(
            "Token cache cleared",
            credential_id=credential_id,
            removed=removed,
        )
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, credential_id: object) -> bool:
        return credential_id in self._entries
