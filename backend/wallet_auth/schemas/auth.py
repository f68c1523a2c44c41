"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate

from wallet_auth.models.account import NAME_MAX_LENGTH

EMAIL_MAX_LENGTH = 254
SECRET_MAX_LENGTH = 128


class RegisterSchema(Schema):
    """Input payload for self-registration."""

    email = fields.Email(required=True, validate=validate.Length(max=EMAIL_MAX_LENGTH))
    # Minimum length is a service policy (PASSWORD_MIN_LENGTH), reported as 422.
    password = fields.String(required=True, validate=validate.Length(max=SECRET_MAX_LENGTH))
    first_name = fields.String(load_default="", validate=validate.Length(max=NAME_MAX_LENGTH))
    last_name = fields.String(load_default="", validate=validate.Length(max=NAME_MAX_LENGTH))


class LoginSchema(Schema):
    """Input payload for login; at least the email is required."""

    email = fields.Email(required=True, validate=validate.Length(max=EMAIL_MAX_LENGTH))
    password = fields.String(load_default=None, validate=validate.Length(max=SECRET_MAX_LENGTH))
    provider_token = fields.String(load_default=None)


class ProviderTokenSchema(Schema):
    """Input payload carrying only a legacy provider token."""

    provider_token = fields.String(required=True, validate=validate.Length(min=1))


class RefreshSchema(Schema):
    """Optional body fallback for clients that cannot send the cookie."""

    refresh_token = fields.String(load_default=None)


class AccountSchema(Schema):
    """Public account representation."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    first_name = fields.String()
    last_name = fields.String()
    account_number = fields.String()
    role = fields.String()
    is_legacy_linked = fields.Boolean()
    migrated_at = fields.DateTime(allow_none=True)


class AuthenticatedSchema(Schema):
    """Response payload for a started or rotated session."""

    account = fields.Nested(AccountSchema, required=True)
    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    refresh_expires_at = fields.DateTime(required=True)


class NeedsMigrationSchema(Schema):
    """Response payload when the legacy identity still needs a local password."""

    subject_id = fields.String(required=True)
    email = fields.Email(required=True)


def validate_password_confirmation(data: dict, field: str = "password") -> None:
    """Raise when ``confirm_password`` is present and differs from ``field``."""
    confirm = data.get("confirm_password")
    if confirm is not None and confirm != data.get(field):
        raise ValidationError("Passwords do not match.", field_name="confirm_password")
