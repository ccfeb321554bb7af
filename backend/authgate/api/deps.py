"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authgate.api.cookies import ACCESS_TOKEN_COOKIE
from authgate.core.errors import Unauthorized
from authgate.core.extensions import Services, get_container

F = TypeVar("F", bound=Callable[..., Any])

AsyncView = Callable[..., Awaitable[Any]]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def cookie_secure() -> bool:
    """Whether token cookies carry the ``Secure`` attribute."""

    return bool(current_app.config.get("COOKIE_SECURE", False))


def bearer_token() -> str | None:
    """Return the token from ``Authorization: Bearer <token>``, if any."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def access_token_from_request() -> str | None:
    """Access token from the cookie, falling back to the bearer header."""

    return request.cookies.get(ACCESS_TOKEN_COOKIE) or bearer_token()


def with_services(func: AsyncView) -> AsyncView:
    """Open a request-scoped service bundle and pass it as first argument."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any):
        async with get_container().session() as services:
            return await func(services, *args, **kwargs)

    return wrapper


def require_auth(func: AsyncView) -> AsyncView:
    """Authenticate the access token before the view runs.

    Must be applied beneath :func:`with_services`. The verified claims are
    passed after the services bundle and the subject is stored on
    ``g.subject_id`` for logging.
    """

    @functools.wraps(func)
    async def wrapper(services: Services, *args: Any, **kwargs: Any):
        token = access_token_from_request()
        if not token:
            raise Unauthorized("Not logged in")
        claims = await services.tokens.authenticate(token)
        g.subject_id = claims.subject
        return await func(services, claims, *args, **kwargs)

    return wrapper


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    def _log(start: float) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        current_app.logger.debug(
            "request.elapsed",
            extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
        )

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any):
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                _log(start)

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            _log(start)

    return wrapper  # type: ignore[return-value]
