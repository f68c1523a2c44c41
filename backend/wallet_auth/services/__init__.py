"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`wallet_auth.services` without knowing internal structure.

Re-exports
----------
- Base primitives (from ``wallet_auth.services._shared.base``)
    * :class:`BaseService`

- Components
    * :class:`CredentialVerifier` (local secrets, legacy provider tokens)
    * :class:`TokenIssuer` + :class:`AccessClaims`
    * :class:`MigrationReconciler` + :class:`MigrationStatus`, :class:`Correspondence`
    * :class:`AuthService` + credential and result DTOs
"""

from __future__ import annotations

from ._shared.base import BaseService
from ._shared.dto import AccountPublicOut
from .auth.dto import (
    AuthenticatedOut,
    Credential,
    LocalCredential,
    LoginIn,
    NeedsMigrationOut,
    ProviderToken,
    RegisterIn,
)
from .auth.service import AuthService
from .credentials.service import CredentialVerifier
from .migration.dto import Correspondence, MigrationStatus
from .migration.service import MigrationReconciler
from .tokens.dto import AccessClaims
from .tokens.service import TokenIssuer

__all__ = [
    # Base
    "BaseService",
    "AccountPublicOut",
    # Components
    "CredentialVerifier",
    "TokenIssuer",
    "AccessClaims",
    "MigrationReconciler",
    "MigrationStatus",
    "Correspondence",
    # Use-cases
    "AuthService",
    "AuthenticatedOut",
    "NeedsMigrationOut",
    "Credential",
    "LocalCredential",
    "ProviderToken",
    "LoginIn",
    "RegisterIn",
]
