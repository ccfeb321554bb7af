"""User authentication schemas (SMS code login, profile)."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from authgate.services.verification.dto import PHONE_PATTERN, Purpose

_phone = validate.Regexp(PHONE_PATTERN, error="Invalid phone number")


class SendSmsSchema(Schema):
    """Input payload for requesting a verification code."""

    phone_number = fields.String(required=True, validate=_phone)
    purpose = fields.String(
        required=True,
        data_key="from",
        validate=validate.OneOf([p.value for p in Purpose]),
    )


class SmsLoginSchema(Schema):
    """Input payload for logging in with a verification code."""

    phone_number = fields.String(required=True, validate=_phone)
    sms_code = fields.String(
        required=True,
        validate=validate.Regexp(r"^[0-9]{6}$", error="Code must be 6 digits"),
    )


class UserSchema(Schema):
    """Public representation of an account."""

    id = fields.String(attribute="user_id", required=True)
    phone_number = fields.String(required=True)
    user_name = fields.String(required=True)
    status = fields.String(required=True)
    created_at = fields.DateTime(required=True)


class LoginResponseSchema(Schema):
    """Login result: the user, flattened, plus whether it was just created."""

    id = fields.String(attribute="user.user_id")
    phone_number = fields.String(attribute="user.phone_number")
    user_name = fields.String(attribute="user.user_name")
    type = fields.String(attribute="login_type")
