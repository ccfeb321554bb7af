# authgate/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from authgate.services._shared.errors import ServiceError

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current aware UTC datetime."""
    return datetime.now(UTC)


def mask_phone(phone: str) -> str:
    """
    Mask a phone number for log output.

    Keeps the first three and last four digits: ``138****0000``.
    """
    if len(phone) <= 7:
        return "*" * len(phone)
    return f"{phone[:3]}{'*' * (len(phone) - 7)}{phone[-4:]}"


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a per-service logger and an injectable clock.
    * Run *best-effort* side actions whose failure must be logged but must
      never fail the primary operation.
    * Keep services thin and orchestration-only: no Flask, no Redis client.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param clock: Returns "now" as an aware UTC datetime.
        :type clock: Callable[[], datetime] | None
        """
        self.clock: Clock = clock or utcnow
        self.log = logging.getLogger(type(self).__module__)

    def now_utc(self) -> datetime:
        """Return "now" from the injected clock."""
        return self.clock()

    async def best_effort(
        self,
        action: Callable[[], Awaitable[Any]],
        event: str,
        **context: Any,
    ) -> bool:
        """
        Await ``action`` and log (never raise) a :class:`ServiceError`.

        :param action: Zero-argument coroutine factory.
        :param event: Short event name used as the log message.
        :param context: Extra, non-sensitive log fields.
        :returns: ``True`` when the action succeeded.
        """
        try:
            await action()
        except ServiceError as exc:
            self.log.warning(
                "%s: code=%s context=%s",
                event,
                exc.code,
                context,
                exc_info=True,
            )
            return False
        return True
