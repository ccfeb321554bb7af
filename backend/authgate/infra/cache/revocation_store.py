from __future__ import annotations

import logging

from authgate.services._shared.ports.cache import SharedCache
from authgate.services._shared.ports.denylist_store import TokenDenylistStore

log = logging.getLogger(__name__)

REVOKED_MARKER = "1"


class RevocationStore(TokenDenylistStore):
    """
    Denylist of revoked token ids backed by the shared cache.

    Each entry lives exactly as long as the token it guards could still be
    presented, so the denylist never outgrows the set of live tokens.
    """

    def __init__(self, cache: SharedCache) -> None:
        self.cache = cache

    @staticmethod
    def _k(jti: str) -> str:
        return f"revoked:{jti}"

    async def is_revoked(self, jti: str) -> bool:
        # Cache failures propagate: "unknown" must never read as "not revoked".
        return await self.cache.get(self._k(jti)) is not None

    async def revoke(self, jti: str, ttl: int) -> None:
        """
        Add ``jti`` to the denylist for ``ttl`` seconds.

        A non-positive ``ttl`` means the token has already expired; nothing
        is written since an expired token is rejected anyway.
        """
        if ttl <= 0:
            log.debug("revocation skipped for expired token jti=%s", jti)
            return
        # store a small marker with TTL; idempotent
        await self.cache.set(self._k(jti), REVOKED_MARKER, ttl)
