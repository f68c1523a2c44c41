"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories,
domain components, and application services.

The translation to HTTP responses (RFC 7807) is handled by
``wallet_auth/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Account").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


class AuthFailure(StrEnum):
    """Closed set of reasons an authentication use-case can be rejected."""

    NOT_FOUND = "not_found"
    BAD_CREDENTIALS = "bad_credentials"
    PROVIDER_TOKEN_REQUIRED = "provider_token_required"
    INVALID_PROVIDER_TOKEN = "invalid_provider_token"
    EMAIL_MISMATCH = "email_mismatch"
    IDENTITY_MISMATCH = "identity_mismatch"
    ALREADY_MIGRATED = "already_migrated"
    WEAK_SECRET = "weak_secret"
    SESSION_INVALIDATED = "session_invalidated"
    INVALID_SESSION = "invalid_session"


class AuthenticationError(ServiceError):
    """
    Raised when an authentication or migration step is rejected.

    :param failure: Reason for the rejection.
    :type failure: AuthFailure
    :param detail: Optional internal explanation (logged, never returned).
    :type detail: str | None
    """

    def __init__(self, failure: AuthFailure, detail: str | None = None) -> None:
        self.failure = failure
        self.detail = detail
        super().__init__(detail or failure.value)


class InvalidAccessTokenError(ServiceError):
    """Raised when an access token fails signature, expiry or claim checks."""
