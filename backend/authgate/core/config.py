"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

from authgate.infra.sms.registry import SmsSettings
from authgate.services.tokens.dto import TokenConfig
from authgate.services.verification.dto import Purpose

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

PLACEHOLDER_JWT_SECRET: Final[str] = "CHANGE_ME_JWT"

# Loads .env in development (no-op when absent)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    JWT_SECRET_KEY: str
        HMAC key used to sign tokens. Must be overridden in production.
    JWT_ALGORITHM: str
        Pinned signing algorithm; tokens declaring any other are rejected.
    JWT_ACCESS_EXPIRES_MINUTES / JWT_REFRESH_EXPIRES_MINUTES: int
        Token lifetimes (defaults 15 minutes and 7 days).
    COOKIE_SECURE: bool
        Marks token cookies as HTTPS-only.
    CACHE_BACKEND: str
        ``redis`` or ``memory`` (process-local, development/tests only).
    REDIS_URL: str
        Connection URL for the shared cache.
    CACHE_KEY_PREFIX: str
        Namespace prepended to every cache key.
    SMS_*: str
        Outbound SMS provider selection, credentials and template ids.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Tokens
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", PLACEHOLDER_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_EXPIRES_MINUTES = env_int("JWT_ACCESS_EXPIRES_MINUTES", 15)
    JWT_REFRESH_EXPIRES_MINUTES = env_int("JWT_REFRESH_EXPIRES_MINUTES", 7 * 24 * 60)
    COOKIE_SECURE = env_bool("COOKIE_SECURE", False)

    # Cache
    CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = os.getenv("CACHE_KEY_PREFIX", "")

    # SMS
    SMS_PROVIDER = os.getenv("SMS_PROVIDER", "console")
    SMS_ENDPOINT = os.getenv("SMS_ENDPOINT", "")
    SMS_ACCESS_KEY = os.getenv("SMS_ACCESS_KEY", "")
    SMS_SECRET_KEY = os.getenv("SMS_SECRET_KEY", "")
    SMS_ACCOUNT = os.getenv("SMS_ACCOUNT", "")
    SMS_SIGN_NAME = os.getenv("SMS_SIGN_NAME", "")
    SMS_TIMEOUT_SECONDS = float(os.getenv("SMS_TIMEOUT_SECONDS", "5"))
    SMS_TEMPLATE_LOGIN = os.getenv("SMS_TEMPLATE_LOGIN", "")
    SMS_TEMPLATE_REGISTER = os.getenv("SMS_TEMPLATE_REGISTER", "")
    SMS_TEMPLATE_FORGET = os.getenv("SMS_TEMPLATE_FORGET", "")

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default; the console SMS provider logs codes
    instead of sending them.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses the in-memory cache so no Redis server is needed.
    - Configures a template for every purpose.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-secret-key-with-at-least-32-bytes"
    CACHE_BACKEND = "memory"
    SMS_PROVIDER = "console"
    SMS_TEMPLATE_LOGIN = "TPL_LOGIN"
    SMS_TEMPLATE_REGISTER = "TPL_REGISTER"
    SMS_TEMPLATE_FORGET = "TPL_FORGET"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug disabled and forces secure cookies.
    """

    DEBUG = False
    COOKIE_SECURE = env_bool("COOKIE_SECURE", True)
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def token_config_from(config: Mapping[str, Any]) -> TokenConfig:
    """Build the :class:`TokenConfig` from a Flask config mapping."""
    return TokenConfig(
        secret=str(config["JWT_SECRET_KEY"]),
        algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
        access_expires=timedelta(minutes=int(config.get("JWT_ACCESS_EXPIRES_MINUTES", 15))),
        refresh_expires=timedelta(
            minutes=int(config.get("JWT_REFRESH_EXPIRES_MINUTES", 7 * 24 * 60))
        ),
    )


def sms_settings_from(config: Mapping[str, Any]) -> SmsSettings:
    """Build :class:`SmsSettings`; purposes without a template id are omitted."""
    templates = {
        Purpose.LOGIN: config.get("SMS_TEMPLATE_LOGIN", ""),
        Purpose.REGISTER: config.get("SMS_TEMPLATE_REGISTER", ""),
        Purpose.FORGET: config.get("SMS_TEMPLATE_FORGET", ""),
    }
    return SmsSettings(
        provider=str(config.get("SMS_PROVIDER", "console")),
        endpoint=str(config.get("SMS_ENDPOINT", "")),
        access_key=str(config.get("SMS_ACCESS_KEY", "")),
        secret_key=str(config.get("SMS_SECRET_KEY", "")),
        account=str(config.get("SMS_ACCOUNT", "")),
        sign_name=str(config.get("SMS_SIGN_NAME", "")),
        timeout=float(config.get("SMS_TIMEOUT_SECONDS", 5.0)),
        templates={purpose: tpl for purpose, tpl in templates.items() if tpl},
    )


def is_production(config: Mapping[str, Any]) -> bool:
    """Return ``True`` unless the app runs in debug or testing mode."""
    return not (config.get("DEBUG") or config.get("TESTING"))


def validate_config(config: Mapping[str, Any]) -> None:
    """Refuse unsafe settings outside development and testing.

    Raises
    ------
    RuntimeError
        If a production app still uses the placeholder JWT secret, the
        process-local cache or the console SMS provider.
    """
    if not is_production(config):
        return
    if config.get("JWT_SECRET_KEY") in (None, "", PLACEHOLDER_JWT_SECRET):
        raise RuntimeError("JWT_SECRET_KEY must be set in production")
    if str(config.get("CACHE_BACKEND", "")).lower() == "memory":
        raise RuntimeError("CACHE_BACKEND=memory is not shared across workers")
    if str(config.get("SMS_PROVIDER", "")).lower() == "console":
        raise RuntimeError("SMS_PROVIDER=console writes codes to the log")
