# wallet_auth/services/_shared/base.py
from __future__ import annotations

from wallet_auth.core import errors as api_errors
from wallet_auth.services._shared.errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    InvalidAccessTokenError,
    NotFoundError,
    ServiceError,
)
from wallet_auth.services._shared.ports.legacy_provider import LegacyProviderError
from wallet_auth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

#: Shared wording so that unknown emails and wrong secrets look identical.
INVALID_LOGIN_MESSAGE = "Invalid email or password"

_UNAUTHORIZED_MESSAGES: dict[AuthFailure, str] = {
    AuthFailure.NOT_FOUND: INVALID_LOGIN_MESSAGE,
    AuthFailure.BAD_CREDENTIALS: INVALID_LOGIN_MESSAGE,
    AuthFailure.PROVIDER_TOKEN_REQUIRED: "Legacy provider token required",
    AuthFailure.INVALID_PROVIDER_TOKEN: "Invalid legacy provider token",
    AuthFailure.SESSION_INVALIDATED: "Session invalidated; please sign in again",
    AuthFailure.INVALID_SESSION: "Invalid or expired session",
}
_FORBIDDEN_MESSAGES: dict[AuthFailure, str] = {
    AuthFailure.EMAIL_MISMATCH: "Email does not match the legacy account",
    AuthFailure.IDENTITY_MISMATCH: "Legacy identity does not match the account",
}


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param enforce_db_readonly: Apply `SET TRANSACTION READ ONLY` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AuthenticationError):
            return _translate_auth_failure(exc.failure)

        if isinstance(exc, InvalidAccessTokenError):
            return api_errors.Unauthorized("Invalid or expired access token", code="invalid_token")

        if isinstance(exc, LegacyProviderError):
            return api_errors.APIError(
                message="Legacy identity provider unavailable",
                status_code=503,
                code="service_unavailable",
            )

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        # Any other ServiceError subclass -> 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc


def _translate_auth_failure(failure: AuthFailure) -> api_errors.APIError:
    """Return the HTTP error for an :class:`AuthFailure` (401/403/409/422)."""
    if failure in _UNAUTHORIZED_MESSAGES:
        # NOT_FOUND and BAD_CREDENTIALS must be indistinguishable to clients.
        code = failure.value
        if failure in (AuthFailure.NOT_FOUND, AuthFailure.BAD_CREDENTIALS):
            code = "invalid_credentials"
        return api_errors.Unauthorized(_UNAUTHORIZED_MESSAGES[failure], code=code)
    if failure in _FORBIDDEN_MESSAGES:
        return api_errors.Forbidden(_FORBIDDEN_MESSAGES[failure], code=failure.value)
    if failure is AuthFailure.ALREADY_MIGRATED:
        return api_errors.Conflict("Account already migrated", code=failure.value)
    if failure is AuthFailure.WEAK_SECRET:
        return api_errors.UnprocessableEntity("Password does not meet policy", code=failure.value)
    raise AssertionError(f"Unhandled auth failure: {failure!r}")
