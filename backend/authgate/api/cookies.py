"""Cookie transport for the access/refresh token pair."""

from __future__ import annotations

import ipaddress

from flask import Request, Response

from authgate.services.tokens.dto import TokenPair

ACCESS_TOKEN_COOKIE = "ap-access-token"
REFRESH_TOKEN_COOKIE = "ap-refresh-token"

# Public suffixes spanning two labels; the registrable domain keeps three.
MULTI_LEVEL_SUFFIXES = frozenset({"com.cn"})

_LOCAL_HOSTS = frozenset({"localhost"})


def cookie_domain(host: str) -> str | None:
    """
    Return the cookie ``Domain`` shared by every subdomain of ``host``.

    ``api.example.com`` -> ``example.com``; ``api.example.com.cn`` ->
    ``example.com.cn``. Local and IP hosts get ``None`` (host-only cookie).

    :param host: Request ``Host`` header, optionally with a port.
    """
    hostname = host.strip().lower()
    if hostname.startswith("["):
        return None
    hostname = hostname.rsplit(":", 1)[0] if ":" in hostname else hostname
    if not hostname or hostname in _LOCAL_HOSTS:
        return None
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        pass
    else:
        return None

    labels = hostname.rstrip(".").split(".")
    if len(labels) < 2:
        return None
    if len(labels) >= 3 and ".".join(labels[-2:]) in MULTI_LEVEL_SUFFIXES:
        return ".".join(labels[-3:])
    return ".".join(labels[-2:])


def set_token_cookies(
    response: Response,
    pair: TokenPair,
    *,
    request: Request,
    secure: bool,
) -> None:
    """Attach both tokens as HTTP-only, ``SameSite=Strict`` cookies."""
    domain = cookie_domain(request.host)
    for name, token, claims in (
        (ACCESS_TOKEN_COOKIE, pair.access_token, pair.access),
        (REFRESH_TOKEN_COOKIE, pair.refresh_token, pair.refresh),
    ):
        response.set_cookie(
            name,
            token,
            max_age=int((claims.expires_at - claims.issued_at).total_seconds()),
            path="/",
            domain=domain,
            secure=secure,
            httponly=True,
            samesite="Strict",
        )


def clear_token_cookies(response: Response, *, request: Request, secure: bool) -> None:
    """Expire both token cookies on the client."""
    domain = cookie_domain(request.host)
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            domain=domain,
            secure=secure,
            httponly=True,
            samesite="Strict",
        )
