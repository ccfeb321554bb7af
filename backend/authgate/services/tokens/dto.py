# authgate/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any


class TokenKind(StrEnum):
    """Tag distinguishing access from refresh tokens."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Claims carried by a signed token.

    :ivar subject: Opaque subject (user) identifier.
    :ivar kind: Access or refresh.
    :ivar token_id: Unique id per issuance (``jti``).
    :ivar issued_at: Issue time (UTC).
    :ivar expires_at: Expiry time (UTC).
    """

    subject: str
    kind: TokenKind
    token_id: str
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> dict[str, Any]:
        """Render the registered JWT claim names."""
        return {
            "sub": self.subject,
            "token_type": self.kind.value,
            "jti": self.token_id,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TokenClaims:
        """
        Build claims from a decoded payload.

        :raises KeyError: When a claim is missing.
        :raises ValueError: When a claim has an unusable value.
        """
        subject = payload["sub"]
        token_id = payload["jti"]
        if not isinstance(subject, str) or not subject:
            raise ValueError("sub must be a non-empty string")
        if not isinstance(token_id, str) or not token_id:
            raise ValueError("jti must be a non-empty string")
        return cls(
            subject=subject,
            kind=TokenKind(payload["token_type"]),
            token_id=token_id,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )

    def remaining(self, now: datetime) -> timedelta:
        """Time left before expiry (negative once expired)."""
        return self.expires_at - now


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Access and refresh tokens minted together.

    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT.
    :param access: Claims of the access token.
    :param refresh: Claims of the refresh token.
    """

    access_token: str
    refresh_token: str
    access: TokenClaims
    refresh: TokenClaims


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Token emission configuration.

    :param secret: Signing key.
    :param algorithm: Pinned signing algorithm; tokens using any other are rejected.
    :param access_expires: Access token lifetime.
    :param refresh_expires: Refresh token lifetime.
    """

    secret: str
    algorithm: str = "HS256"
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)

    def lifetime(self, kind: TokenKind) -> timedelta:
        return self.access_expires if kind is TokenKind.ACCESS else self.refresh_expires
