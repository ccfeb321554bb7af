"""Service layer public API.

This package exposes the essential building blocks for the service layer so
that callers can import from :mod:`authgate.services` without knowing the
internal structure.

Re-exports
----------
- Base primitives (from ``authgate.services._shared.base``)
    * :class:`BaseService`

- Token manager (from ``authgate.services.tokens``)
    * :class:`TokenManager`
    * DTOs: :class:`TokenKind`, :class:`TokenClaims`, :class:`TokenPair`,
      :class:`TokenConfig`

- Verification code service (from ``authgate.services.verification``)
    * :class:`VerificationCodeService`
    * DTOs: :class:`Purpose`, :class:`VerificationPolicy`, :class:`SendCounts`

- Auth flow (from ``authgate.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`SmsLoginIn`, :class:`LogoutIn`, :class:`LoginResult`
"""

from __future__ import annotations

# Base primitives
from ._shared.base import BaseService

# Auth flow + DTOs
from .auth.dto import LoginResult, LogoutIn, SmsLoginIn
from .auth.service import AuthService

# Token manager + DTOs
from .tokens.dto import TokenClaims, TokenConfig, TokenKind, TokenPair
from .tokens.manager import TokenManager

# Verification code service + DTOs
from .verification.dto import Purpose, SendCounts, VerificationPolicy
from .verification.service import VerificationCodeService

__all__ = [
    # Base
    "BaseService",
    # Tokens
    "TokenManager",
    "TokenKind",
    "TokenClaims",
    "TokenPair",
    "TokenConfig",
    # Verification
    "VerificationCodeService",
    "Purpose",
    "VerificationPolicy",
    "SendCounts",
    # Auth
    "AuthService",
    "SmsLoginIn",
    "LogoutIn",
    "LoginResult",
]
