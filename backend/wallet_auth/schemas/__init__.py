"""Convenience exports for request/response schemas."""

from __future__ import annotations

from .auth import (
    AccountSchema,
    AuthenticatedSchema,
    LoginSchema,
    NeedsMigrationSchema,
    ProviderTokenSchema,
    RefreshSchema,
    RegisterSchema,
)
from .migration import CheckStatusSchema, MigrationStatusSchema, SetupPasswordSchema

__all__ = [
    "AccountSchema",
    "AuthenticatedSchema",
    "LoginSchema",
    "NeedsMigrationSchema",
    "ProviderTokenSchema",
    "RefreshSchema",
    "RegisterSchema",
    "CheckStatusSchema",
    "MigrationStatusSchema",
    "SetupPasswordSchema",
]
