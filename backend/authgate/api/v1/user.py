"""SMS login, token rotation and session endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from authgate.api.cookies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    clear_token_cookies,
    set_token_cookies,
)
from authgate.api.deps import (
    cookie_secure,
    json_response,
    require_auth,
    timing,
    with_services,
)
from authgate.core.errors import Unauthorized
from authgate.core.extensions import Services
from authgate.schemas import LoginResponseSchema, SendSmsSchema, SmsLoginSchema, UserSchema
from authgate.services.auth.dto import LogoutIn, SmsLoginIn
from authgate.services.tokens.dto import TokenClaims

bp = Blueprint("user", __name__)

send_sms_schema = SendSmsSchema()
sms_login_schema = SmsLoginSchema()
login_response_schema = LoginResponseSchema()
user_schema = UserSchema()


@bp.post("/sms")
@timing
@with_services
async def send_sms(services: Services):
    """Send a verification code for ``from`` (login, register, forget)."""

    data = send_sms_schema.load(request.get_json(silent=True) or {})
    await services.auth.send_code(data["purpose"], data["phone_number"])
    return json_response({"data": None})


@bp.post("/sms-login")
@timing
@with_services
async def sms_login(services: Services):
    """Log in (or register) with a verification code and set token cookies."""

    data = sms_login_schema.load(request.get_json(silent=True) or {})
    result = await services.auth.sms_login(
        SmsLoginIn(phone_number=data["phone_number"], sms_code=data["sms_code"])
    )
    response = json_response({"data": login_response_schema.dump(result)})
    set_token_cookies(response, result.tokens, request=request, secure=cookie_secure())
    return response


@bp.post("/refresh")
@timing
@with_services
async def refresh(services: Services):
    """Rotate the refresh token carried by the cookie."""

    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not token:
        raise Unauthorized("Refresh token not found")
    pair = await services.auth.refresh(token)
    response = json_response({"data": None})
    set_token_cookies(response, pair, request=request, secure=cookie_secure())
    return response


@bp.post("/logout")
@timing
@with_services
async def logout(services: Services):
    """Revoke whatever tokens still parse and clear the cookies. Always 200."""

    await services.auth.logout(
        LogoutIn(
            access_token=request.cookies.get(ACCESS_TOKEN_COOKIE),
            refresh_token=request.cookies.get(REFRESH_TOKEN_COOKIE),
        )
    )
    response = json_response({"data": None})
    clear_token_cookies(response, request=request, secure=cookie_secure())
    return response


@bp.get("/me")
@timing
@with_services
@require_auth
async def me(services: Services, claims: TokenClaims):
    """Return the authenticated user profile."""

    user = await services.auth.get_user(claims.subject)
    return json_response({"data": user_schema.dump(user)})
