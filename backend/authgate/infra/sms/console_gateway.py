from __future__ import annotations

import logging
from collections.abc import Mapping
from uuid import uuid4

from authgate.infra.sms.registry import SmsSettings, register_gateway
from authgate.services._shared.base import mask_phone
from authgate.services._shared.ports.delivery_gateway import DeliveryGateway

log = logging.getLogger(__name__)


class ConsoleDeliveryGateway(DeliveryGateway):
    """
    Development gateway: writes the message to the log instead of sending it.

    The phone is masked; the code stays readable so a developer can log in.
    Production configs refuse this provider.
    """

    def __init__(self, sign_name: str = "") -> None:
        self.sign_name = sign_name

    async def send(self, phone: str, template_id: str, params: Mapping[str, str]) -> str:
        message_id = uuid4().hex
        log.warning(
            "sms.console phone=%s template=%s sign=%s params=%s message_id=%s",
            mask_phone(phone),
            template_id,
            self.sign_name,
            dict(params),
            message_id,
        )
        return message_id


@register_gateway("console")
def _build(settings: SmsSettings) -> DeliveryGateway:
    return ConsoleDeliveryGateway(sign_name=settings.sign_name)
