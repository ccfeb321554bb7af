# authgate/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

from authgate.services._shared.ports.user_directory import User
from authgate.services.tokens.dto import TokenPair

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SmsLoginIn:
    """
    Input DTO for SMS-code login.

    :param phone_number: Phone the code was sent to.
    :type phone_number: str
    :param sms_code: Code typed by the user.
    :type sms_code: str
    """

    phone_number: str
    sms_code: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    Either token may be missing, expired or garbage; only tokens that parse
    contribute an id to revoke.

    :param access_token: Encoded access JWT, if presented.
    :type access_token: str | None
    :param refresh_token: Encoded refresh JWT, if presented.
    :type refresh_token: str | None
    """

    access_token: str | None = None
    refresh_token: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginResult:
    """
    Outcome of a successful SMS login.

    :param user: The authenticated (possibly just created) user.
    :param tokens: Freshly minted token pair.
    :param is_new: ``True`` when the account was created by this login.
    """

    user: User
    tokens: TokenPair
    is_new: bool

    @property
    def login_type(self) -> str:
        return "register" if self.is_new else "login"
