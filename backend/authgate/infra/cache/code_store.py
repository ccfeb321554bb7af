"""Cache-backed storage for verification codes and their counters."""

from __future__ import annotations

from authgate.services._shared.ports.cache import SharedCache
from authgate.services.verification.dto import Purpose, SendCounts, VerificationPolicy


def _as_int(value: str | None) -> int:
    return int(value) if value is not None else 0


class CodeStore:
    """
    Keeps one code, two send counters and one failure counter per
    (purpose, phone).

    Keys always include both parts so codes and counters never leak
    across purposes::

        code:{purpose}:{phone}
        sendcount:minute:{purpose}:{phone}
        sendcount:day:{purpose}:{phone}
        verifyfail:{purpose}:{phone}
    """

    def __init__(self, cache: SharedCache, policy: VerificationPolicy | None = None) -> None:
        self.cache = cache
        self.policy = policy or VerificationPolicy()

    # -------------------- keys -----------------------

    @staticmethod
    def code_key(purpose: Purpose, phone: str) -> str:
        return f"code:{purpose.value}:{phone}"

    @staticmethod
    def minute_key(purpose: Purpose, phone: str) -> str:
        return f"sendcount:minute:{purpose.value}:{phone}"

    @staticmethod
    def day_key(purpose: Purpose, phone: str) -> str:
        return f"sendcount:day:{purpose.value}:{phone}"

    @staticmethod
    def verify_fail_key(purpose: Purpose, phone: str) -> str:
        return f"verifyfail:{purpose.value}:{phone}"

    # -------------------- codes ----------------------

    async def store_code(self, purpose: Purpose, phone: str, code: str) -> None:
        await self.cache.set(self.code_key(purpose, phone), code, self.policy.code_ttl)

    async def get_code(self, purpose: Purpose, phone: str) -> str | None:
        return await self.cache.get(self.code_key(purpose, phone))

    async def delete_code(self, purpose: Purpose, phone: str) -> None:
        await self.cache.delete(self.code_key(purpose, phone))

    # -------------------- send counters --------------

    async def get_send_counts(self, purpose: Purpose, phone: str) -> SendCounts:
        minute = await self.cache.get(self.minute_key(purpose, phone))
        day = await self.cache.get(self.day_key(purpose, phone))
        return SendCounts(minute=_as_int(minute), day=_as_int(day))

    async def incr_send_counts(self, purpose: Purpose, phone: str) -> SendCounts:
        # Each window is re-armed on every increment (rolling windows).
        minute = await self.cache.incr_with_ttl(
            self.minute_key(purpose, phone), self.policy.minute_window
        )
        day = await self.cache.incr_with_ttl(self.day_key(purpose, phone), self.policy.day_window)
        return SendCounts(minute=minute, day=day)

    # -------------------- failure counter ------------

    async def get_verify_fail_count(self, purpose: Purpose, phone: str) -> int:
        return _as_int(await self.cache.get(self.verify_fail_key(purpose, phone)))

    async def incr_verify_fail_count(self, purpose: Purpose, phone: str) -> int:
        return await self.cache.incr_with_ttl(
            self.verify_fail_key(purpose, phone), self.policy.verify_fail_ttl
        )

    async def reset_verify_fail_count(self, purpose: Purpose, phone: str) -> None:
        await self.cache.delete(self.verify_fail_key(purpose, phone))
