"""
wallet_auth.services._shared.ports
==================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token management and the legacy identity bridge.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`, the abstraction for JWT signing and decoding.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and its value types; ships
    :class:`~.InMemoryRefreshTokenStore`.

- :mod:`legacy_provider`:
    Defines :class:`~.ProviderTokenVerifier` and :class:`~.LegacyProfileSource`.

Concrete adapters (database, Redis, JWKS, HTTP) live under ``wallet_auth.infra``.
"""

from __future__ import annotations

from .legacy_provider import (
    InMemoryLegacyProfileSource,
    InMemoryProviderTokenVerifier,
    LegacyProfile,
    LegacyProviderError,
    LegacyProfileSource,
    ProviderIdentity,
    ProviderTokenVerifier,
)
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    IssuedRefreshToken,
    RefreshSessionView,
    RefreshStatus,
    RefreshTokenStore,
    RefreshValidation,
    RequestMetadata,
    Rotation,
    RotationResult,
    hash_refresh_secret,
)
from .token_provider import TokenProvider

__all__ = [
    "TokenProvider",
    "RefreshTokenStore",
    "RefreshStatus",
    "RotationResult",
    "Rotation",
    "RefreshValidation",
    "RefreshSessionView",
    "IssuedRefreshToken",
    "RequestMetadata",
    "InMemoryRefreshTokenStore",
    "hash_refresh_secret",
    "ProviderIdentity",
    "LegacyProfile",
    "LegacyProviderError",
    "ProviderTokenVerifier",
    "LegacyProfileSource",
    "InMemoryProviderTokenVerifier",
    "InMemoryLegacyProfileSource",
]
