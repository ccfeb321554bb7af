"""Service container wiring the cache, stores and services for the Flask app."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app

from authgate.core.config import is_production, sms_settings_from, token_config_from
from authgate.infra.cache.code_store import CodeStore
from authgate.infra.cache.revocation_store import RevocationStore
from authgate.infra.redis.redis_cache import RedisSharedCache
from authgate.infra.sms.registry import SmsSettings, build_delivery_gateway
from authgate.services._shared.base import Clock
from authgate.services._shared.ports.cache import InMemorySharedCache, SharedCache
from authgate.services._shared.ports.delivery_gateway import DeliveryGateway
from authgate.services._shared.ports.user_directory import (
    InMemoryUserDirectory,
    UserDirectory,
)
from authgate.services.auth.service import AuthService
from authgate.services.tokens.dto import TokenConfig
from authgate.services.tokens.manager import TokenManager
from authgate.services.verification.service import VerificationCodeService

EXTENSION_KEY = "authgate"

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Per-request bundle of wired services sharing one cache connection."""

    cache: SharedCache
    tokens: TokenManager
    verification: VerificationCodeService
    auth: AuthService


class ServiceContainer:
    """
    Long-lived application dependencies and a factory for request services.

    ``redis.asyncio`` clients are bound to the event loop that created them,
    and Flask runs every async view on its own loop. The container therefore
    keeps only loop-independent objects (settings, user directory, delivery
    gateway, the in-memory cache) and opens a cache connection per
    :meth:`session`. Each Redis session builds and tears down its own
    connection pool, so every request pays one TCP connect.

    :param token_config: Signing secret, algorithm and lifetimes.
    :param sms_settings: Provider selection and per-purpose templates.
    :param cache_backend: ``redis`` or ``memory``.
    :param redis_url: Connection URL for the ``redis`` backend.
    :param key_prefix: Namespace prepended to every cache key.
    :param user_directory: Account lookup/creation port. Defaults to a
        per-process :class:`InMemoryUserDirectory`, which
        :meth:`from_config` refuses in production.
    :param delivery_gateway: Outbound SMS port; built from ``sms_settings``
        when omitted.
    :param clock: Injectable "now" shared by every service.
    """

    def __init__(
        self,
        *,
        token_config: TokenConfig,
        sms_settings: SmsSettings,
        cache_backend: str = "redis",
        redis_url: str = "",
        key_prefix: str = "",
        user_directory: UserDirectory | None = None,
        delivery_gateway: DeliveryGateway | None = None,
        clock: Clock | None = None,
    ) -> None:
        if cache_backend not in ("redis", "memory"):
            raise ValueError(f"Unknown CACHE_BACKEND {cache_backend!r}")
        if cache_backend == "redis" and not redis_url:
            raise ValueError("REDIS_URL is required for the redis cache backend")
        self.token_config = token_config
        self.sms_settings = sms_settings
        self.cache_backend = cache_backend
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.clock = clock
        self.users: UserDirectory = user_directory or InMemoryUserDirectory()
        self.gateway: DeliveryGateway = delivery_gateway or build_delivery_gateway(sms_settings)
        self.memory_cache = InMemorySharedCache(clock) if cache_backend == "memory" else None

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> ServiceContainer:
        """Build the container from a Flask config mapping.

        :raises RuntimeError: A production config without an injected
            ``user_directory``; accounts would differ between workers.
        """
        if is_production(config) and overrides.get("user_directory") is None:
            raise RuntimeError("A shared user_directory must be injected in production")
        kwargs: dict[str, Any] = {
            "token_config": token_config_from(config),
            "sms_settings": sms_settings_from(config),
            "cache_backend": str(config.get("CACHE_BACKEND", "redis")).lower(),
            "redis_url": str(config.get("REDIS_URL", "")),
            "key_prefix": str(config.get("CACHE_KEY_PREFIX", "")),
        }
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)

    def open_cache(self) -> SharedCache:
        """Return the shared in-memory cache or a fresh Redis connection."""
        if self.memory_cache is not None:
            return self.memory_cache
        return RedisSharedCache.from_url(self.redis_url, key_prefix=self.key_prefix)

    def build(self, cache: SharedCache) -> Services:
        """Wire every service on top of ``cache``."""
        tokens = TokenManager(
            config=self.token_config,
            denylist=RevocationStore(cache),
            user_lookup=self.users,
            clock=self.clock,
        )
        verification = VerificationCodeService(
            store=CodeStore(cache),
            gateway=self.gateway,
            templates=self.sms_settings.templates,
            clock=self.clock,
        )
        auth = AuthService(
            verification=verification,
            tokens=tokens,
            users=self.users,
            clock=self.clock,
        )
        return Services(cache=cache, tokens=tokens, verification=verification, auth=auth)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Services]:
        """Yield wired services and release the cache connection afterwards."""
        cache = self.open_cache()
        try:
            yield self.build(cache)
        finally:
            if cache is not self.memory_cache:
                await cache.aclose()


def init_app(app: Flask, **overrides: Any) -> ServiceContainer:
    """Create the :class:`ServiceContainer` and store it on ``app.extensions``.

    Parameters
    ----------
    app: flask.Flask
        Application whose config drives the wiring.
    overrides:
        Optional ``user_directory``, ``delivery_gateway`` or ``clock``
        replacing the configured defaults (tests, embedding apps).
    """
    container = ServiceContainer.from_config(app.config, **overrides)
    app.extensions[EXTENSION_KEY] = container
    log.info(
        "services.ready cache=%s sms_provider=%s",
        container.cache_backend,
        container.sms_settings.provider,
    )
    return container


def get_container(app: Flask | None = None) -> ServiceContainer:
    """Return the container registered on ``app`` (or the current app)."""
    target = app or current_app
    container = target.extensions.get(EXTENSION_KEY)
    if container is None:
        raise RuntimeError("Service container is not initialized. Call init_app() first.")
    return container  # type: ignore[no-any-return]
