"""Cache doubles that fail on demand."""

from __future__ import annotations

from collections.abc import Iterable

from authgate.services._shared.errors import CacheUnavailableError
from authgate.services._shared.ports.cache import InMemorySharedCache


class FlakyCache(InMemorySharedCache):
    """In-memory cache whose selected operations raise ``CacheUnavailableError``.

    ``fail_on`` names operations (``"get"``, ``"set"``, ``"incr_with_ttl"``...)
    that fail. ``fail_keys`` optionally narrows failures to keys starting
    with one of the given prefixes.
    """

    def __init__(self, clock=None, *, fail_on: Iterable[str] = (), fail_keys: Iterable[str] = ()):
        super().__init__(clock)
        self.fail_on = set(fail_on)
        self.fail_keys = tuple(fail_keys)
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if op not in self.fail_on:
            return
        if self.fail_keys and not key.startswith(self.fail_keys):
            return
        raise CacheUnavailableError(f"{op} failed")

    async def get(self, key):
        self._check("get", key)
        return await super().get(key)

    async def set(self, key, value, ttl):
        self._check("set", key)
        await super().set(key, value, ttl)

    async def delete(self, key):
        self._check("delete", key)
        await super().delete(key)

    async def incr_with_ttl(self, key, ttl):
        self._check("incr_with_ttl", key)
        return await super().incr_with_ttl(key, ttl)

    async def ping(self):
        if "ping" in self.fail_on:
            raise CacheUnavailableError("ping failed")
        return True
