from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class SharedCache(Protocol):
    """
    Key-value store with per-key TTL, atomic increment and atomic delete.

    TTLs are whole seconds. Implementations MUST raise
    :class:`~authgate.services._shared.errors.CacheUnavailableError` for any
    backend failure (connection, timeout, protocol) and never return a
    default value in its place.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when absent or expired."""

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""

    async def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    async def incr(self, key: str) -> int:
        """Atomically increment ``key`` (missing counts as 0) and return it."""

    async def expire(self, key: str, ttl: int) -> None:
        """(Re)arm the TTL of an existing key."""

    async def incr_with_ttl(self, key: str, ttl: int) -> int:
        """
        Increment ``key`` and arm its TTL as one atomic step.

        Prefer this over ``incr`` + ``expire``: a crash between the two
        leaves a counter that never expires.
        """

    async def ping(self) -> bool:
        """Return ``True`` when the backend answers."""

    async def aclose(self) -> None:
        """Release connections held by the adapter."""


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: datetime | None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemorySharedCache(SharedCache):
    """
    Process-local cache used in development and unit tests.

    Expiry is evaluated lazily against ``clock`` so tests can move time
    forward without sleeping. Every operation completes without awaiting
    anything else, which makes each one atomic under asyncio.

    :param clock: Callable returning the current aware UTC datetime.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._data: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()

    # ------------------------- helpers -------------------------

    def _live(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def _deadline(self, ttl: int) -> datetime:
        return self._clock() + timedelta(seconds=ttl)

    def ttl(self, key: str) -> int | None:
        """Remaining TTL in seconds (``None`` when absent or persistent)."""
        entry = self._live(key)
        if entry is None or entry.expires_at is None:
            return None
        return int((entry.expires_at - self._clock()).total_seconds())

    # -------------------------- API ----------------------------

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._data[key] = _Entry(value=str(value), expires_at=self._deadline(ttl))

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def incr(self, key: str) -> int:
        entry = self._live(key)
        if entry is None:
            self._data[key] = _Entry(value="1", expires_at=None)
            return 1
        entry.value = str(int(entry.value) + 1)
        return int(entry.value)

    async def expire(self, key: str, ttl: int) -> None:
        entry = self._live(key)
        if entry is not None:
            entry.expires_at = self._deadline(ttl)

    async def incr_with_ttl(self, key: str, ttl: int) -> int:
        async with self._lock:
            value = await self.incr(key)
            await self.expire(key, ttl)
            return value

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        # nothing to release
        return None
