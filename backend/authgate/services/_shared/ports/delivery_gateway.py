from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from authgate.services._shared.errors import GatewayError


class DeliveryGateway(Protocol):
    """Port for the outbound SMS gateway."""

    async def send(self, phone: str, template_id: str, params: Mapping[str, str]) -> str:
        """
        Deliver a templated message.

        :returns: Provider message id.
        :raises GatewayError: When the provider rejects or cannot be reached.
        """
        ...


@dataclass(frozen=True, slots=True)
class SentMessage:
    """One message captured by :class:`RecordingDeliveryGateway`."""

    phone: str
    template_id: str
    params: dict[str, str]


@dataclass(slots=True)
class RecordingDeliveryGateway(DeliveryGateway):
    """
    Deterministic gateway used in unit tests.

    Records every message; ``fail`` makes the next sends raise.
    """

    sent: list[SentMessage] = field(default_factory=list)
    fail: bool = False

    async def send(self, phone: str, template_id: str, params: Mapping[str, str]) -> str:
        if self.fail:
            raise GatewayError("delivery disabled")
        self.sent.append(SentMessage(phone=phone, template_id=template_id, params=dict(params)))
        return f"msg-{len(self.sent)}"

    def last_code(self) -> str:
        """Return the ``code`` parameter of the most recent message."""
        return self.sent[-1].params["code"]
