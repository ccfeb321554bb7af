# authgate/infra/redis/redis_cache.py
from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar, cast

import redis.asyncio as aioredis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from authgate.services._shared.errors import CacheUnavailableError
from authgate.services._shared.ports.cache import SharedCache

P = ParamSpec("P")
R = TypeVar("R")


def _translate_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """
    Re-raise Redis and timeout failures as :class:`CacheUnavailableError`.

    ``asyncio.CancelledError`` is not an ``Exception`` and passes through.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except (RedisError, TimeoutError, OSError) as exc:
            raise CacheUnavailableError(f"cache operation {func.__name__} failed") from exc

    return wrapper


class RedisSharedCache(SharedCache):
    """
    :class:`SharedCache` adapter over ``redis.asyncio``.

    :param r: An asyncio Redis client created with ``decode_responses=True``.
    :param key_prefix: Optional namespace prepended to every key.
    """

    def __init__(self, r: aioredis.Redis, *, key_prefix: str = "") -> None:
        self.r = r
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "", **kwargs: Any) -> RedisSharedCache:
        """Build an adapter with its own connection pool."""
        client = aioredis.Redis.from_url(url, decode_responses=True, **kwargs)
        return cls(client, key_prefix=key_prefix)

    # -------------------- helpers --------------------

    def _k(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    # -------------------- API ------------------------

    @_translate_errors
    async def get(self, key: str) -> str | None:
        value = await self.r.get(self._k(key))
        if isinstance(value, bytes | bytearray):
            return value.decode()
        return cast(str | None, value)

    @_translate_errors
    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.r.set(self._k(key), value, ex=max(1, int(ttl)))

    @_translate_errors
    async def delete(self, key: str) -> None:
        await self.r.delete(self._k(key))

    @_translate_errors
    async def incr(self, key: str) -> int:
        return int(await self.r.incr(self._k(key)))

    @_translate_errors
    async def expire(self, key: str, ttl: int) -> None:
        await self.r.expire(self._k(key), max(1, int(ttl)))

    @_translate_errors
    async def incr_with_ttl(self, key: str, ttl: int) -> int:
        # MULTI/EXEC: the counter never exists without an expiry
        k = self._k(key)
        async with self.r.pipeline(transaction=True) as pipe:
            pipe.incr(k)
            pipe.expire(k, max(1, int(ttl)))
            value, _ = await pipe.execute()
        return int(value)

    @_translate_errors
    async def ping(self) -> bool:
        return bool(await self.r.ping())

    async def aclose(self) -> None:
        await self.r.aclose()
