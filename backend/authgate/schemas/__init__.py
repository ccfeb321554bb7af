"""Convenience exports for application schemas."""

from __future__ import annotations

from .user import LoginResponseSchema, SendSmsSchema, SmsLoginSchema, UserSchema

__all__ = [
    "LoginResponseSchema",
    "SendSmsSchema",
    "SmsLoginSchema",
    "UserSchema",
]
