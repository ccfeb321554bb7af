# authgate/infra/sms/http_gateway.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from authgate.infra.sms.registry import SmsSettings, register_gateway
from authgate.services._shared.errors import GatewayError
from authgate.services._shared.ports.delivery_gateway import DeliveryGateway

log = logging.getLogger(__name__)


class HttpDeliveryGateway(DeliveryGateway):
    """
    Generic JSON-over-HTTP SMS gateway.

    Posts ``{account, sign_name, template_id, phone, params}`` to
    ``endpoint`` with a bearer credential and expects a 2xx JSON body
    carrying ``message_id``.

    A client is opened per call: asyncio HTTP clients are bound to the event
    loop that created them.

    :param endpoint: Provider URL.
    :param access_key: Credential id, sent as ``X-Access-Key``.
    :param secret_key: Credential secret, sent as bearer token.
    :param account: Provider account name.
    :param sign_name: Approved message signature.
    :param timeout: Request timeout in seconds.
    :param transport: Optional custom transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        endpoint: str,
        access_key: str = "",
        secret_key: str = "",
        account: str = "",
        sign_name: str = "",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("SMS_ENDPOINT is required for the http provider")
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.account = account
        self.sign_name = sign_name
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.secret_key:
            headers["Authorization"] = f"Bearer {self.secret_key}"
        if self.access_key:
            headers["X-Access-Key"] = self.access_key
        return headers

    async def send(self, phone: str, template_id: str, params: Mapping[str, str]) -> str:
        body: dict[str, Any] = {
            "account": self.account,
            "sign_name": self.sign_name,
            "template_id": template_id,
            "phone": phone,
            "params": dict(params),
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(self.endpoint, json=body, headers=self._headers())
            except httpx.HTTPError as e:
                raise GatewayError(f"Failed to contact SMS provider: {type(e).__name__}") from e

        if response.status_code // 100 != 2:
            raise GatewayError(f"SMS provider rejected message: status={response.status_code}")

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise GatewayError("SMS provider returned a non-JSON body") from e

        message_id = payload.get("message_id") if isinstance(payload, dict) else None
        if not message_id:
            raise GatewayError("SMS provider response has no message_id")
        log.debug("sms.http_sent status=%s message_id=%s", response.status_code, message_id)
        return str(message_id)


@register_gateway("http")
def _build(settings: SmsSettings) -> DeliveryGateway:
    return HttpDeliveryGateway(
        endpoint=settings.endpoint,
        access_key=settings.access_key,
        secret_key=settings.secret_key,
        account=settings.account,
        sign_name=settings.sign_name,
        timeout=settings.timeout,
    )
