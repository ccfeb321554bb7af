"""Delivery gateway registry: one implementation per provider name."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TypeVar

from authgate.services._shared.ports.delivery_gateway import DeliveryGateway
from authgate.services.verification.dto import Purpose


@dataclass(frozen=True, slots=True)
class SmsSettings:
    """
    Outbound SMS configuration.

    :param provider: Registered provider name (``console``, ``http``).
    :param endpoint: Provider URL (HTTP provider only).
    :param access_key: Provider credential id.
    :param secret_key: Provider credential secret.
    :param account: Provider account (some vendors require it).
    :param sign_name: Approved signature printed on messages.
    :param timeout: Per-request timeout in seconds.
    :param templates: Template id per purpose.
    """

    provider: str = "console"
    endpoint: str = ""
    access_key: str = ""
    secret_key: str = ""
    account: str = ""
    sign_name: str = ""
    timeout: float = 5.0
    templates: Mapping[Purpose, str] = field(default_factory=dict)


GatewayBuilder = Callable[[SmsSettings], DeliveryGateway]
B = TypeVar("B", bound=GatewayBuilder)

_REGISTRY: dict[str, GatewayBuilder] = {}


def register_gateway(name: str) -> Callable[[B], B]:
    """Register ``builder`` under ``name`` (decorator)."""

    def decorator(builder: B) -> B:
        _REGISTRY[name] = builder
        return builder

    return decorator


def available_providers() -> list[str]:
    return sorted(_REGISTRY)


def build_delivery_gateway(settings: SmsSettings) -> DeliveryGateway:
    """
    Instantiate the gateway named by ``settings.provider``.

    :raises ValueError: If no provider is registered under that name.
    """
    # Importing the provider modules registers them.
    from authgate.infra.sms import console_gateway, http_gateway  # noqa: F401

    builder = _REGISTRY.get(settings.provider)
    if builder is None:
        raise ValueError(
            f"Unknown SMS provider {settings.provider!r}; "
            f"expected one of {', '.join(available_providers())}"
        )
    return builder(settings)
