"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or
Redis. They serve as stable contracts between the stores, the services
and the HTTP boundary.

Two families exist:

- :class:`ClientError` -- caused by the caller (bad input, rate limits,
  invalid tokens). Never retried by this package.
- :class:`InfrastructureError` -- caused by a collaborator (cache,
  delivery gateway, signing). Callers may retry or circuit-break.

Every error carries a stable, machine-readable ``code``. The translation
to HTTP responses (RFC 7807) is handled by ``authgate/core/errors.py``.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - ``code`` is stable and safe to expose to clients.
    - ``message`` is a short, human-readable summary without internals.
    """

    code: str = "service_error"
    default_message: str = "Service error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientError(ServiceError):
    """Raised when the request itself cannot be honored."""

    code = "bad_request"
    default_message = "Bad request"


class InfrastructureError(ServiceError):
    """Raised when a collaborator (cache, gateway, signer) fails."""

    code = "internal_error"
    default_message = "Internal error"


# --------------------------------------------------------------------------- #
# Client errors
# --------------------------------------------------------------------------- #


class InvalidInputError(ClientError):
    """Raised when an argument fails basic validation (purpose, phone)."""

    code = "validation_error"
    default_message = "Invalid input"


class TooFrequentError(ClientError):
    """A code was already sent for this purpose/phone within the last minute."""

    code = "sms_too_frequent"
    default_message = "At most one code per minute may be requested"


class DailyLimitExceededError(ClientError):
    """The daily send quota for this purpose/phone is exhausted."""

    code = "sms_daily_limit"
    default_message = "Daily verification code limit reached"


class CodeInvalidError(ClientError):
    """
    The verification code is wrong, missing or expired.

    The three cases are deliberately indistinguishable.
    """

    code = "sms_code_invalid"
    default_message = "Verification code is invalid or expired"


class VerifyTooManyError(ClientError):
    """Too many consecutive failed verifications; a new code is required."""

    code = "sms_verify_too_many"
    default_message = "Too many failed attempts, request a new code"


class TemplateNotFoundError(ClientError):
    """No delivery template is configured for the requested purpose."""

    code = "sms_template_not_found"
    default_message = "No message template configured for this purpose"


class TokenError(ClientError):
    """Base class for token parsing/validation failures."""

    code = "token_invalid"
    default_message = "Token is invalid"


class TokenInvalidError(TokenError):
    """The token cannot be accepted (revoked, or unusable for refresh)."""


class MalformedTokenError(TokenInvalidError):
    """The token cannot be decoded or its signature does not verify."""

    default_message = "Token is malformed"


class TokenExpiredError(TokenError):
    """The token's expiry is in the past."""

    code = "token_expired"
    default_message = "Token has expired"


class WrongTokenKindError(TokenError):
    """The token is valid but of the other kind (access vs refresh)."""

    code = "token_wrong_kind"
    default_message = "Unexpected token kind"


class SubjectNotFoundError(ClientError):
    """The token subject (user) no longer exists."""

    code = "user_not_found"
    default_message = "User not found"


# --------------------------------------------------------------------------- #
# Infrastructure errors
# --------------------------------------------------------------------------- #


class CacheUnavailableError(InfrastructureError):
    """The shared cache could not be reached or returned an error."""

    code = "cache_unavailable"
    default_message = "Cache unavailable"


class DeliveryFailedError(InfrastructureError):
    """The delivery gateway did not accept the message."""

    code = "sms_send_failed"
    default_message = "Failed to send verification code"


class SigningError(InfrastructureError):
    """A token could not be signed."""

    code = "signing_error"
    default_message = "Failed to sign token"


class GatewayError(Exception):
    """
    Raised by delivery gateway adapters.

    Adapters raise this (not :class:`DeliveryFailedError`) so the service
    decides how a failed delivery is surfaced.
    """
