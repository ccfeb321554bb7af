"""Unit tests for the in-memory SharedCache adapter."""

from __future__ import annotations

import pytest


@pytest.mark.asyncio
async def test_set_get_and_expiry(cache, clock):
    await cache.set("k", "v", 10)
    assert await cache.get("k") == "v"

    clock.advance(9)
    assert await cache.get("k") == "v"

    clock.advance(1)
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_delete_missing_key_is_noop(cache):
    await cache.delete("missing")
    assert await cache.get("missing") is None


@pytest.mark.asyncio
async def test_incr_with_ttl_counts_and_rearms(cache, clock):
    assert await cache.incr_with_ttl("c", 60) == 1
    clock.advance(50)
    assert await cache.incr_with_ttl("c", 60) == 2
    # window re-armed on the second increment
    clock.advance(50)
    assert await cache.get("c") == "2"
    assert cache.ttl("c") == 10

    clock.advance(10)
    assert await cache.get("c") is None
    assert await cache.incr_with_ttl("c", 60) == 1


@pytest.mark.asyncio
async def test_plain_incr_has_no_expiry_until_expire(cache, clock):
    assert await cache.incr("n") == 1
    assert cache.ttl("n") is None
    await cache.expire("n", 5)
    clock.advance(5)
    assert await cache.get("n") is None


@pytest.mark.asyncio
async def test_ping(cache):
    assert await cache.ping() is True
