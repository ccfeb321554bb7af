from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

DEFAULT_STATUS = "real_name_unverified"


@dataclass(frozen=True, slots=True)
class User:
    """
    Read-model for an account known to the user directory.

    :ivar user_id: Opaque subject identifier placed in tokens.
    :ivar phone_number: Phone used for SMS login.
    :ivar user_name: Display name.
    :ivar status: Account status label.
    :ivar created_at: Creation time (UTC).
    """

    user_id: str
    phone_number: str
    user_name: str
    status: str
    created_at: datetime


class UserLookup(Protocol):
    """Minimal lookup the token manager needs during refresh."""

    async def exists(self, user_id: str) -> bool: ...


class UserDirectory(UserLookup, Protocol):
    """User persistence as seen by the SMS login flow."""

    async def get(self, user_id: str) -> User | None: ...

    async def find_by_phone(self, phone: str) -> User | None: ...

    async def create_for_phone(self, phone: str) -> User: ...


def default_user_name(phone: str) -> str:
    """Build the display name given to auto-registered users."""
    return f"user_{phone[-4:]}"


class InMemoryUserDirectory(UserDirectory):
    """Simple in-memory user directory (development and tests)."""

    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}
        self._by_phone: dict[str, str] = {}

    async def exists(self, user_id: str) -> bool:
        return user_id in self._by_id

    async def get(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def find_by_phone(self, phone: str) -> User | None:
        user_id = self._by_phone.get(phone)
        return self._by_id.get(user_id) if user_id else None

    async def create_for_phone(self, phone: str) -> User:
        existing = await self.find_by_phone(phone)
        if existing is not None:
            return existing
        user = User(
            user_id=uuid4().hex,
            phone_number=phone,
            user_name=default_user_name(phone),
            status=DEFAULT_STATUS,
            created_at=datetime.now(UTC),
        )
        self._by_id[user.user_id] = user
        self._by_phone[phone] = user.user_id
        return user

    def remove(self, user_id: str) -> None:
        """Forget a user (simulates account deletion in tests)."""
        user = self._by_id.pop(user_id, None)
        if user is not None:
            self._by_phone.pop(user.phone_number, None)
