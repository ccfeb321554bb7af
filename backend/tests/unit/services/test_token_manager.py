# tests/unit/services/test_token_manager.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio

from authgate.infra.cache.revocation_store import RevocationStore
from authgate.services._shared.errors import (
    CacheUnavailableError,
    MalformedTokenError,
    SigningError,
    SubjectNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    WrongTokenKindError,
)
from authgate.services.tokens.dto import TokenConfig, TokenKind
from authgate.services.tokens.manager import TokenManager, ttl_seconds
from tests.helpers.caches import FlakyCache
from tests.helpers.constants import SECRET


@pytest_asyncio.fixture()
async def user_id(users) -> str:
    user = await users.create_for_phone("13800000000")
    return user.user_id


# ------------------------------- Minting ---------------------------------- #


def test_generate_token_pair_claims(tokens, clock):
    pair = tokens.generate_token_pair("u-1")

    assert pair.access.subject == pair.refresh.subject == "u-1"
    assert pair.access.token_id != pair.refresh.token_id
    assert pair.access.kind is TokenKind.ACCESS
    assert pair.refresh.kind is TokenKind.REFRESH
    assert pair.access.issued_at == clock()
    assert pair.access.expires_at == clock() + timedelta(minutes=15)
    assert pair.refresh.expires_at == clock() + timedelta(days=7)


def test_generated_tokens_carry_wire_claims(tokens):
    pair = tokens.generate_token_pair("u-1")
    payload = jwt.decode(
        pair.access_token, SECRET, algorithms=["HS256"], options={"verify_exp": False}
    )
    assert payload["sub"] == "u-1"
    assert payload["token_type"] == "access"
    assert payload["jti"] == pair.access.token_id
    assert payload["exp"] - payload["iat"] == 15 * 60


def test_token_ids_are_unique_per_issuance(tokens):
    ids = set()
    for _ in range(20):
        pair = tokens.generate_token_pair("u-1")
        ids.update({pair.access.token_id, pair.refresh.token_id})
    assert len(ids) == 40


def test_generate_token_pair_writes_nothing(tokens, cache):
    tokens.generate_token_pair("u-1")
    assert cache._data == {}


def test_signing_failure_raises_signing_error(revocations, users, clock):
    manager = TokenManager(
        config=TokenConfig(secret=SECRET, algorithm="NOPE"),
        denylist=revocations,
        user_lookup=users,
        clock=clock,
    )
    with pytest.raises(SigningError):
        manager.generate_token_pair("u-1")


def test_default_clock_uses_wall_time(token_config, revocations, users, freeze_time):
    manager = TokenManager(config=token_config, denylist=revocations, user_lookup=users)
    with freeze_time("2024-03-01 12:00:00"):
        pair = manager.generate_token_pair("u-1")
    assert pair.access.issued_at == datetime(2024, 3, 1, 12, tzinfo=UTC)


# ------------------------------- Parsing ---------------------------------- #


def test_parse_round_trip(tokens):
    pair = tokens.generate_token_pair("u-1")
    claims = tokens.parse_token(pair.refresh_token, TokenKind.REFRESH)
    assert claims == pair.refresh


def test_parse_rejects_wrong_kind(tokens):
    pair = tokens.generate_token_pair("u-1")
    with pytest.raises(WrongTokenKindError):
        tokens.parse_token(pair.access_token, TokenKind.REFRESH)
    with pytest.raises(WrongTokenKindError):
        tokens.parse_token(pair.refresh_token, TokenKind.ACCESS)


def test_parse_accepts_kind_as_plain_string(tokens):
    pair = tokens.generate_token_pair("u-1")
    assert tokens.parse_token(pair.access_token, "access") == pair.access
    with pytest.raises(WrongTokenKindError):
        tokens.parse_token(pair.access_token, "refresh")


def test_parse_rejects_expired(tokens, clock):
    pair = tokens.generate_token_pair("u-1")
    clock.advance(minutes=15)
    # still valid exactly at expiry
    tokens.parse_token(pair.access_token, TokenKind.ACCESS)
    clock.advance(1)
    with pytest.raises(TokenExpiredError):
        tokens.parse_token(pair.access_token, TokenKind.ACCESS)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_parse_rejects_garbage(tokens, garbage):
    with pytest.raises(MalformedTokenError):
        tokens.parse_token(garbage, TokenKind.ACCESS)


def test_parse_rejects_foreign_signature(tokens, clock):
    now = int(clock().timestamp())
    forged = jwt.encode(
        {"sub": "u-1", "jti": "x", "iat": now, "exp": now + 60, "token_type": "access"},
        "another-secret-key-with-at-least-32-bytes!",
        algorithm="HS256",
    )
    with pytest.raises(MalformedTokenError):
        tokens.parse_token(forged, TokenKind.ACCESS)


def test_parse_rejects_other_algorithm(tokens, clock):
    now = int(clock().timestamp())
    token = jwt.encode(
        {"sub": "u-1", "jti": "x", "iat": now, "exp": now + 60, "token_type": "access"},
        SECRET,
        algorithm="HS512",
    )
    with pytest.raises(MalformedTokenError):
        tokens.parse_token(token, TokenKind.ACCESS)


def test_parse_rejects_missing_claims(tokens, clock):
    now = int(clock().timestamp())
    token = jwt.encode({"sub": "u-1", "iat": now, "exp": now + 60}, SECRET, algorithm="HS256")
    with pytest.raises(MalformedTokenError):
        tokens.parse_token(token, TokenKind.ACCESS)


# ------------------------------ Revocation -------------------------------- #


def test_ttl_seconds_rounds_up():
    assert ttl_seconds(timedelta(seconds=1.2)) == 2
    assert ttl_seconds(timedelta(seconds=0)) == 0
    assert ttl_seconds(30) == 30


@pytest.mark.asyncio
async def test_revoke_and_is_revoked(tokens):
    await tokens.revoke("jti-1", timedelta(minutes=1))
    assert await tokens.is_revoked("jti-1") is True
    assert await tokens.is_revoked("jti-2") is False


@pytest.mark.asyncio
async def test_authenticate_rejects_revoked_access_token(tokens):
    pair = tokens.generate_token_pair("u-1")
    assert (await tokens.authenticate(pair.access_token)).subject == "u-1"

    await tokens.revoke_claims(pair.access)
    with pytest.raises(TokenInvalidError):
        await tokens.authenticate(pair.access_token)


@pytest.mark.asyncio
async def test_authenticate_fails_closed_on_cache_error(token_config, users, clock):
    manager = TokenManager(
        config=token_config,
        denylist=RevocationStore(FlakyCache(clock, fail_on={"get"})),
        user_lookup=users,
        clock=clock,
    )
    pair = manager.generate_token_pair("u-1")
    with pytest.raises(CacheUnavailableError):
        await manager.authenticate(pair.access_token)


# ------------------------------- Refresh ---------------------------------- #


@pytest.mark.asyncio
async def test_refresh_rotates_and_blocks_reuse(tokens, user_id):
    pair1 = tokens.generate_token_pair(user_id)

    pair2 = await tokens.refresh_token(pair1.refresh_token)
    assert pair2.access.subject == user_id
    assert pair2.refresh.token_id != pair1.refresh.token_id
    assert await tokens.is_revoked(pair1.refresh.token_id) is True

    with pytest.raises(TokenInvalidError):
        await tokens.refresh_token(pair1.refresh_token)

    # the new refresh token stays usable
    await tokens.refresh_token(pair2.refresh_token)


@pytest.mark.asyncio
async def test_refresh_revocation_ttl_is_remaining_lifetime(tokens, cache, clock, user_id):
    pair = tokens.generate_token_pair(user_id)
    clock.advance(days=1)

    await tokens.refresh_token(pair.refresh_token)

    assert cache.ttl(f"revoked:{pair.refresh.token_id}") == int(timedelta(days=6).total_seconds())


@pytest.mark.asyncio
async def test_refresh_maps_parse_errors_to_token_invalid(tokens, clock, user_id):
    pair = tokens.generate_token_pair(user_id)

    with pytest.raises(TokenInvalidError):
        await tokens.refresh_token(pair.access_token)
    with pytest.raises(TokenInvalidError):
        await tokens.refresh_token("garbage")

    clock.advance(days=8)
    with pytest.raises(TokenInvalidError):
        await tokens.refresh_token(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_rejects_deleted_subject(tokens, users, user_id, cache):
    pair = tokens.generate_token_pair(user_id)
    users.remove(user_id)

    with pytest.raises(SubjectNotFoundError):
        await tokens.refresh_token(pair.refresh_token)
    # nothing revoked
    assert await tokens.is_revoked(pair.refresh.token_id) is False


@pytest.mark.asyncio
async def test_refresh_mints_nothing_when_revocation_write_fails(token_config, users, clock):
    user = await users.create_for_phone("13800000000")
    manager = TokenManager(
        config=token_config,
        denylist=RevocationStore(FlakyCache(clock, fail_on={"set"})),
        user_lookup=users,
        clock=clock,
    )
    pair = manager.generate_token_pair(user.user_id)
    minted: list[str] = []
    original = manager.generate_token_pair
    manager.generate_token_pair = lambda subject: minted.append(subject) or original(subject)

    with pytest.raises(CacheUnavailableError):
        await manager.refresh_token(pair.refresh_token)
    assert minted == []


@pytest.mark.asyncio
async def test_refresh_propagates_revocation_lookup_failure(token_config, users, clock, user_id):
    manager = TokenManager(
        config=token_config,
        denylist=RevocationStore(FlakyCache(clock, fail_on={"get"})),
        user_lookup=users,
        clock=clock,
    )
    pair = manager.generate_token_pair(user_id)
    with pytest.raises(CacheUnavailableError):
        await manager.refresh_token(pair.refresh_token)


# -------------------------------- Logout ---------------------------------- #


@pytest.mark.asyncio
async def test_logout_revokes_both_ids_for_full_lifetime(tokens, cache):
    await tokens.logout("a-1", "r-1")

    assert cache.ttl("revoked:a-1") == 15 * 60
    assert cache.ttl("revoked:r-1") == 7 * 24 * 3600


@pytest.mark.asyncio
async def test_logout_skips_empty_ids(tokens, cache):
    await tokens.logout(None, "")
    assert cache._data == {}


@pytest.mark.asyncio
async def test_logout_never_raises_on_cache_failure(token_config, users, clock, caplog):
    manager = TokenManager(
        config=token_config,
        denylist=RevocationStore(FlakyCache(clock, fail_on={"set"})),
        user_lookup=users,
        clock=clock,
    )
    with caplog.at_level("WARNING"):
        await manager.logout("a-1", "r-1")
    assert "token.logout_revoke_access_failed" in caplog.text
    assert "token.logout_revoke_refresh_failed" in caplog.text
