"""Schemas for the legacy-account migration endpoints."""

from __future__ import annotations

from marshmallow import Schema, fields, validate, validates_schema

from .auth import SECRET_MAX_LENGTH, AccountSchema, validate_password_confirmation


class CheckStatusSchema(Schema):
    provider_token = fields.String(required=True, validate=validate.Length(min=1))


class SetupPasswordSchema(Schema):
    """Provider token plus the first local password (optionally confirmed)."""

    provider_token = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, validate=validate.Length(max=SECRET_MAX_LENGTH))
    confirm_password = fields.String(load_default=None)

    @validates_schema
    def _passwords_match(self, data, **kwargs):
        validate_password_confirmation(data)


class MigrationStatusSchema(Schema):
    """Response payload of a status check."""

    needs_migration = fields.Boolean(required=True)
    blocked = fields.Boolean()
    reason = fields.Function(lambda obj: obj.reason.value if obj.reason else None)
    subject_id = fields.String()
    email = fields.Email()
    account = fields.Nested(AccountSchema, allow_none=True)
