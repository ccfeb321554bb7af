# tests/unit/services/test_auth_service.py
from __future__ import annotations

import pytest

from authgate.services._shared.errors import (
    CodeInvalidError,
    SubjectNotFoundError,
    TokenInvalidError,
)
from authgate.services.auth.dto import LoginResult, LogoutIn, SmsLoginIn
from authgate.services.tokens.dto import TokenKind
from authgate.services.verification.dto import Purpose
from tests.helpers.constants import PHONE


async def _login(auth, gateway) -> LoginResult:
    await auth.send_code(Purpose.LOGIN, PHONE)
    return await auth.sms_login(SmsLoginIn(phone_number=PHONE, sms_code=gateway.last_code()))


# -------------------------------- Login ----------------------------------- #


@pytest.mark.asyncio
async def test_first_login_registers_the_user(auth, gateway, users):
    result = await _login(auth, gateway)

    assert result.is_new is True
    assert result.login_type == "register"
    assert result.user.phone_number == PHONE
    assert result.user.user_name == "user_0000"
    assert await users.exists(result.user.user_id)
    assert result.tokens.access.subject == result.user.user_id


@pytest.mark.asyncio
async def test_returning_user_logs_in(auth, gateway, users, clock):
    existing = await users.create_for_phone(PHONE)

    result = await _login(auth, gateway)

    assert result.is_new is False
    assert result.login_type == "login"
    assert result.user.user_id == existing.user_id


@pytest.mark.asyncio
async def test_login_with_wrong_code_creates_nothing(auth, gateway, users):
    await auth.send_code(Purpose.LOGIN, PHONE)
    wrong = "000000" if gateway.last_code() != "000000" else "111111"

    with pytest.raises(CodeInvalidError):
        await auth.sms_login(SmsLoginIn(phone_number=PHONE, sms_code=wrong))
    assert await users.find_by_phone(PHONE) is None


@pytest.mark.asyncio
async def test_login_requires_a_login_code(auth, gateway):
    await auth.send_code(Purpose.REGISTER, PHONE)

    with pytest.raises(CodeInvalidError):
        await auth.sms_login(SmsLoginIn(phone_number=PHONE, sms_code=gateway.last_code()))


# ------------------------------- Refresh ---------------------------------- #


@pytest.mark.asyncio
async def test_refresh_delegates_rotation(auth, gateway):
    result = await _login(auth, gateway)

    pair = await auth.refresh(result.tokens.refresh_token)
    assert pair.refresh.subject == result.user.user_id

    with pytest.raises(TokenInvalidError):
        await auth.refresh(result.tokens.refresh_token)


# -------------------------------- Logout ---------------------------------- #


@pytest.mark.asyncio
async def test_logout_revokes_presented_tokens(auth, gateway, tokens):
    result = await _login(auth, gateway)

    await auth.logout(
        LogoutIn(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        )
    )

    assert await tokens.is_revoked(result.tokens.access.token_id)
    assert await tokens.is_revoked(result.tokens.refresh.token_id)
    with pytest.raises(TokenInvalidError):
        await tokens.authenticate(result.tokens.access_token)


@pytest.mark.asyncio
async def test_logout_ignores_unparseable_and_swapped_tokens(auth, gateway, tokens, cache):
    result = await _login(auth, gateway)

    await auth.logout(LogoutIn(access_token="garbage", refresh_token=result.tokens.access_token))
    await auth.logout(LogoutIn())

    assert not [key for key in cache._data if key.startswith("revoked:")]
    assert (await tokens.authenticate(result.tokens.access_token)).kind is TokenKind.ACCESS


# ------------------------------ Current user ------------------------------ #


@pytest.mark.asyncio
async def test_get_user(auth, gateway, users):
    result = await _login(auth, gateway)
    assert await auth.get_user(result.user.user_id) == result.user

    users.remove(result.user.user_id)
    with pytest.raises(SubjectNotFoundError):
        await auth.get_user(result.user.user_id)
