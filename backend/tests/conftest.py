"""Pytest fixtures wiring services to in-memory doubles.

Every service gets the same :class:`FakeClock`, so tests move time forward
explicitly instead of sleeping.
"""

from __future__ import annotations

import os
from datetime import timedelta

import pytest

from authgate.factory import create_app
from authgate.infra.cache.code_store import CodeStore
from authgate.infra.cache.revocation_store import RevocationStore
from authgate.services._shared.ports.cache import InMemorySharedCache
from authgate.services._shared.ports.delivery_gateway import RecordingDeliveryGateway
from authgate.services._shared.ports.user_directory import InMemoryUserDirectory
from authgate.services.auth.service import AuthService
from authgate.services.tokens.dto import TokenConfig
from authgate.services.tokens.manager import TokenManager
from authgate.services.verification.service import VerificationCodeService
from tests.helpers.clock import FakeClock
from tests.helpers.constants import SECRET, TEMPLATES


@pytest.fixture()
def clock() -> FakeClock:
    """Frozen clock starting at 2024-01-01T00:00:00Z."""

    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> InMemorySharedCache:
    """Process-local cache honoring the fake clock for TTLs."""

    return InMemorySharedCache(clock)


@pytest.fixture()
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture()
def gateway() -> RecordingDeliveryGateway:
    """Gateway double recording every message."""

    return RecordingDeliveryGateway()


@pytest.fixture()
def token_config() -> TokenConfig:
    return TokenConfig(
        secret=SECRET,
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )


@pytest.fixture()
def revocations(cache: InMemorySharedCache) -> RevocationStore:
    return RevocationStore(cache)


@pytest.fixture()
def tokens(token_config, revocations, users, clock) -> TokenManager:
    """Token manager over the in-memory denylist and user directory."""

    return TokenManager(config=token_config, denylist=revocations, user_lookup=users, clock=clock)


@pytest.fixture()
def code_store(cache: InMemorySharedCache) -> CodeStore:
    return CodeStore(cache)


@pytest.fixture()
def verification(code_store, gateway, clock) -> VerificationCodeService:
    """Verification service with a template for every purpose."""

    return VerificationCodeService(
        store=code_store, gateway=gateway, templates=TEMPLATES, clock=clock
    )


@pytest.fixture()
def auth(verification, tokens, users, clock) -> AuthService:
    return AuthService(verification=verification, tokens=tokens, users=users, clock=clock)


# ------------------------------ Flask app --------------------------------- #


@pytest.fixture()
def app(users, gateway):
    """Flask app on the testing config, sharing the user and gateway doubles.

    Tokens are minted with the real clock here: the HTTP layer is exercised
    end-to-end and never needs time travel.
    """

    os.environ.setdefault("APP_ENV", "testing")
    application = create_app(
        "authgate.core.config.TestingConfig",
        instance_relative_config=False,
        user_directory=users,
        delivery_gateway=gateway,
    )
    application.logger.setLevel("WARNING")
    return application


@pytest.fixture()
def client(app):
    """Return a Flask test client."""

    return app.test_client()


@pytest.fixture()
def freeze_time():
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2024-01-01"):
    ...         ...
    """

    from freezegun import freeze_time as _freeze_time

    def _factory(target: str | None = None):
        return _freeze_time(target or "2024-01-01")

    return _factory
