# authgate/services/verification/service.py
from __future__ import annotations

import hmac
import secrets
from collections.abc import Mapping

from authgate.infra.cache.code_store import CodeStore
from authgate.services._shared.base import BaseService, Clock, mask_phone
from authgate.services._shared.errors import (
    CodeInvalidError,
    DailyLimitExceededError,
    DeliveryFailedError,
    GatewayError,
    TemplateNotFoundError,
    TooFrequentError,
    VerifyTooManyError,
)
from authgate.services._shared.ports.delivery_gateway import DeliveryGateway
from authgate.services.verification.dto import (
    Purpose,
    VerificationPolicy,
    ensure_phone,
)


def generate_code(length: int = 6) -> str:
    """Return a cryptographically random, zero-padded numeric code."""
    return f"{secrets.randbelow(10**length):0{length}d}"


class VerificationCodeService(BaseService):
    """
    Issue, rate-limit and verify one-time codes per (purpose, phone).

    State per (purpose, phone)::

        Idle -> CodeIssued -> {Verified, Expired, FailureLockout}

    ``CodeIssued`` and ``FailureLockout`` are both TTL-bound and revert on
    their own; a successful send clears the lockout.

    Concurrency
    -----------
    The rate limit is a read-then-increment sequence with no lock: two
    concurrent sends for the same phone can both pass the check before
    either increments. This is an accepted soft limit.
    """

    def __init__(
        self,
        *,
        store: CodeStore,
        gateway: DeliveryGateway,
        templates: Mapping[Purpose, str],
        policy: VerificationPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        :param store: Cache-backed code and counter storage.
        :param gateway: Outbound SMS delivery.
        :param templates: Delivery template id per purpose.
        :param policy: Limits; defaults match production values.
        """
        super().__init__(clock=clock)
        self.store = store
        self.gateway = gateway
        self.templates = dict(templates)
        self.policy = policy or store.policy

    # ------------------------------------------------------------------ #
    # Send
    # ------------------------------------------------------------------ #

    async def send_code(self, purpose: Purpose | str, phone: str) -> None:
        """
        Generate, store and deliver a new code.

        :raises TemplateNotFoundError: No template for ``purpose``.
        :raises TooFrequentError: A code was sent within the minute window.
        :raises DailyLimitExceededError: The day quota is exhausted.
        :raises DeliveryFailedError: The gateway rejected the message.
        :raises CacheUnavailableError: Counters or code could not be read/stored.
        """
        purpose = Purpose.parse(purpose)
        phone = ensure_phone(phone)

        # Template first: no state is touched for an unconfigured purpose.
        template_id = self.templates.get(purpose)
        if not template_id:
            raise TemplateNotFoundError()

        counts = await self.store.get_send_counts(purpose, phone)
        if counts.minute >= self.policy.max_per_minute:
            raise TooFrequentError()
        if counts.day >= self.policy.max_per_day:
            raise DailyLimitExceededError()

        code = generate_code(self.policy.code_length)
        await self.store.store_code(purpose, phone, code)

        try:
            message_id = await self.gateway.send(phone, template_id, {"code": code})
        except GatewayError as exc:
            self.log.error(
                "sms.send_failed purpose=%s phone=%s",
                purpose.value,
                mask_phone(phone),
                exc_info=True,
            )
            # An undelivered code must not stay verifiable.
            await self.best_effort(
                lambda: self.store.delete_code(purpose, phone),
                "sms.delete_code_on_send_fail_failed",
                purpose=purpose.value,
            )
            raise DeliveryFailedError() from exc

        self.log.info(
            "sms.sent purpose=%s phone=%s message_id=%s",
            purpose.value,
            mask_phone(phone),
            message_id,
        )

        await self.best_effort(
            lambda: self.store.incr_send_counts(purpose, phone),
            "sms.record_send_failed",
            purpose=purpose.value,
        )
        # A fresh code makes earlier wrong guesses irrelevant.
        await self.best_effort(
            lambda: self.store.reset_verify_fail_count(purpose, phone),
            "sms.reset_verify_fail_count_failed",
            purpose=purpose.value,
        )

    # ------------------------------------------------------------------ #
    # Verify
    # ------------------------------------------------------------------ #

    async def verify_code(self, purpose: Purpose | str, phone: str, candidate: str) -> None:
        """
        Check ``candidate`` against the stored code and consume it.

        Missing, expired and wrong codes all raise the same
        :class:`CodeInvalidError` so callers cannot tell them apart.

        :raises VerifyTooManyError: The failure counter reached the limit.
        :raises CodeInvalidError: No matching code.
        :raises CacheUnavailableError: The counter or code could not be read.
        """
        purpose = Purpose.parse(purpose)
        phone = ensure_phone(phone)

        fail_count = await self.store.get_verify_fail_count(purpose, phone)
        if fail_count >= self.policy.max_verify_failures:
            raise VerifyTooManyError()

        stored = await self.store.get_code(purpose, phone)
        if stored is None:
            raise CodeInvalidError()

        if not hmac.compare_digest(stored.encode(), str(candidate).encode()):
            await self.best_effort(
                lambda: self.store.incr_verify_fail_count(purpose, phone),
                "sms.incr_verify_fail_count_failed",
                purpose=purpose.value,
            )
            raise CodeInvalidError()

        await self.best_effort(
            lambda: self.store.delete_code(purpose, phone),
            "sms.delete_code_failed",
            purpose=purpose.value,
        )
        await self.best_effort(
            lambda: self.store.reset_verify_fail_count(purpose, phone),
            "sms.reset_verify_fail_count_failed",
            purpose=purpose.value,
        )
