from __future__ import annotations

from typing import Protocol


class TokenDenylistStore(Protocol):
    """
    Abstraction for a denylist of revoked token ids (``jti``).

    Methods are expected to be idempotent. Backend failures MUST surface as
    :class:`~authgate.services._shared.errors.CacheUnavailableError`; a
    failed lookup must never be reported as "not revoked".
    """

    async def is_revoked(self, jti: str) -> bool: ...

    async def revoke(self, jti: str, ttl: int) -> None: ...
