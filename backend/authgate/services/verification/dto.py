# authgate/services/verification/dto.py
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from authgate.services._shared.errors import InvalidInputError

# Digits with an optional leading "+", 6 to 15 digits (E.164 upper bound).
PHONE_PATTERN = re.compile(r"^\+?[0-9]{6,15}$")


class Purpose(StrEnum):
    """What a verification code is for; part of every cache key."""

    LOGIN = "login"
    REGISTER = "register"
    FORGET = "forget"

    @classmethod
    def parse(cls, value: Purpose | str) -> Purpose:
        """
        Coerce ``value`` into a :class:`Purpose`.

        :raises InvalidInputError: If the value is not a known purpose.
        """
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown verification purpose: {value!r}") from exc


def ensure_phone(phone: str) -> str:
    """
    Validate a phone number before it becomes part of a cache key.

    :raises InvalidInputError: If the number is empty or malformed.
    """
    if not isinstance(phone, str) or not PHONE_PATTERN.match(phone):
        raise InvalidInputError("Invalid phone number")
    return phone


@dataclass(frozen=True, slots=True)
class VerificationPolicy:
    """
    Limits applied by the verification code service.

    :param code_length: Number of digits in a code.
    :param code_ttl: Seconds a code stays verifiable.
    :param max_per_minute: Sends allowed per minute window.
    :param max_per_day: Sends allowed per (rolling) day window.
    :param max_verify_failures: Consecutive wrong guesses before lockout.
    :param verify_fail_ttl: Seconds the failure counter survives.
    :param minute_window: Length of the minute window in seconds.
    :param day_window: Length of the day window in seconds.
    """

    code_length: int = 6
    code_ttl: int = 300
    max_per_minute: int = 1
    max_per_day: int = 6
    max_verify_failures: int = 5
    verify_fail_ttl: int = 3600
    minute_window: int = 60
    day_window: int = 86400


@dataclass(frozen=True, slots=True)
class SendCounts:
    """Current send counters for one (purpose, phone)."""

    minute: int
    day: int
