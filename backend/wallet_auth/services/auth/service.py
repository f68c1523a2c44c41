# wallet_auth/services/auth/service.py
"""
AuthService
===========

Use-case layer of the authentication core: register, login, legacy login,
refresh, logout and the migration setup step. It composes the credential
verifier, the migration reconciler, the access-token issuer and the refresh
credential store; it never returns a secret hash.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import assert_never

from sqlalchemy.exc import IntegrityError

from wallet_auth.models.account import (
    DEFAULT_ROLE,
    NAME_MAX_LENGTH,
    Account,
    new_account_id,
    normalize_email,
)
from wallet_auth.models.base import utcnow
from wallet_auth.repositories.account import AccountRepository
from wallet_auth.services._shared.base import BaseService
from wallet_auth.services._shared.dto import AccountPublicOut, to_account_public
from wallet_auth.services._shared.errors import (
    AuthenticationError,
    AuthFailure,
    ConflictError,
    NotFoundError,
)
from wallet_auth.services._shared.ports.legacy_provider import (
    LegacyProfileSource,
    ProviderIdentity,
)
from wallet_auth.services._shared.ports.refresh_token_store import (
    RefreshStatus,
    RefreshTokenStore,
    RequestMetadata,
    RotationResult,
)
from wallet_auth.services.auth.dto import (
    AuthenticatedOut,
    Credential,
    LocalCredential,
    LoginIn,
    NeedsMigrationOut,
    ProviderToken,
    RegisterIn,
)
from wallet_auth.services.credentials.service import CredentialVerifier
from wallet_auth.services.migration.dto import MigrationStatus
from wallet_auth.services.migration.service import MigrationReconciler
from wallet_auth.services.tokens.dto import AccessClaims
from wallet_auth.services.tokens.service import TokenIssuer

logger = logging.getLogger(__name__)

_ACCOUNT_NUMBER_RE = re.compile(r"^\d{12}$")


def _split_credentials(
    credentials: tuple[Credential, ...],
) -> tuple[LocalCredential | None, ProviderToken | None]:
    """Sort presented credentials by kind (the first of each kind wins)."""
    local: LocalCredential | None = None
    provider: ProviderToken | None = None
    for credential in credentials:
        if isinstance(credential, LocalCredential):
            local = local or credential
        elif isinstance(credential, ProviderToken):
            provider = provider or credential
        else:
            assert_never(credential)
    return local, provider


class AuthService(BaseService):
    """
    Authentication lifecycle service.

    :param credentials: Secret hashing and provider-token verification.
    :param reconciler: Legacy identity correspondence and migration.
    :param token_issuer: Access-token issuer.
    :param refresh_store: Refresh credential store (atomic rotation).
    :param profiles: Legacy profile source used by auto-provisioning.
    :param password_min_length: Minimum length of locally-set secrets.
    :param auto_provision: Whether legacy login may create accounts.
    :param clock: Source of "now" (UTC).
    """

    def __init__(
        self,
        *,
        credentials: CredentialVerifier,
        reconciler: MigrationReconciler,
        token_issuer: TokenIssuer,
        refresh_store: RefreshTokenStore,
        profiles: LegacyProfileSource | None = None,
        password_min_length: int = 8,
        auto_provision: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self.credentials = credentials
        self.reconciler = reconciler
        self.tokens = token_issuer
        self.refresh_store = refresh_store
        self.profiles = profiles
        self.password_min_length = password_min_length
        self.auto_provision = auto_provision
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(
        self, dto: RegisterIn, metadata: RequestMetadata | None = None
    ) -> AuthenticatedOut:
        """
        Create a locally-authenticable account and start a session.

        :raises AuthenticationError: ``WEAK_SECRET``.
        :raises ConflictError: If the email is already registered.
        """
        email = normalize_email(dto.email)
        if len(dto.secret or "") < self.password_min_length:
            raise AuthenticationError(AuthFailure.WEAK_SECRET)
        secret_hash = self.credentials.hash_secret(dto.secret)

        try:
            with self.rw_uow() as uow:
                repo: AccountRepository = uow.accounts
                if repo.exists_by_email(email):
                    raise ConflictError("Account", "email already in use")
                account = Account(
                    id=new_account_id(),
                    email_address=email,
                    secret_hash=secret_hash,
                    first_name=dto.first_name,
                    last_name=dto.last_name,
                    account_number=repo.generate_unique_account_number(),
                    role=DEFAULT_ROLE,
                    last_signed_in=self.clock(),
                )
                repo.add(account)
                out = to_account_public(account)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration of the same email
            raise ConflictError("Account", "email already in use") from exc

        logger.info("Account registered", extra={"event": "register", "account_id": out.id})
        return self._start_session(out, metadata)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(
        self, dto: LoginIn, metadata: RequestMetadata | None = None
    ) -> AuthenticatedOut | NeedsMigrationOut:
        """
        Evaluate the login decision table.

        1. No account and no credential at all: ``NOT_FOUND``.
        2. Locally authenticable account: the local secret decides
           (``BAD_CREDENTIALS`` when missing or wrong).
        3. Otherwise a provider token is required
           (``PROVIDER_TOKEN_REQUIRED``); it must verify, carry the login
           email (``EMAIL_MISMATCH``) and correspond to the local record.
           A match yields :class:`NeedsMigrationOut`.

        :raises AuthenticationError: With the failing reason.
        """
        email = normalize_email(dto.email)
        local, provider = _split_credentials(dto.credentials)

        with self.ro_uow() as uow:
            account = uow.accounts.get_by_email(email)
            account_id = account.id if account is not None else None
            secret_hash = account.secret_hash if account is not None else None

        if account_id is None and local is None and provider is None:
            raise AuthenticationError(AuthFailure.NOT_FOUND)

        if account_id is not None and secret_hash is not None:
            if local is None or not self.credentials.verify_secret(local.secret, secret_hash):
                logger.info(
                    "Login rejected",
                    extra={"event": "login", "account_id": account_id, "reason": "bad_credentials"},
                )
                raise AuthenticationError(AuthFailure.BAD_CREDENTIALS)
            out = self._record_sign_in(account_id)
            logger.info("Login succeeded", extra={"event": "login", "account_id": out.id})
            return self._start_session(out, metadata)

        if provider is None:
            raise AuthenticationError(AuthFailure.PROVIDER_TOKEN_REQUIRED)

        identity = self.credentials.verify_provider_token(provider.token)
        if identity.email != email:
            raise AuthenticationError(AuthFailure.EMAIL_MISMATCH)

        with self.ro_uow() as uow:
            candidate = self.reconciler.resolve(identity, uow.accounts)
            verdict = self.reconciler.validate_correspondence(identity, candidate)
        if not verdict.matches:
            logger.info(
                "Legacy login rejected",
                extra={"event": "login", "reason": str(verdict.reason)},
            )
            raise AuthenticationError(verdict.reason or AuthFailure.NOT_FOUND)

        logger.info("Login needs migration", extra={"event": "login", "reason": "needs_migration"})
        return NeedsMigrationOut(subject_id=identity.subject_id, email=identity.email)

    # ------------------------------------------------------------------ #
    # Legacy login (auto-provisioning)
    # ------------------------------------------------------------------ #

    def legacy_login(
        self, provider_token: str, metadata: RequestMetadata | None = None
    ) -> AuthenticatedOut:
        """
        Authenticate directly with a legacy provider token.

        A corresponding account is linked (if needed) and signed in. When no
        account exists and ``auto_provision`` is on, one is created from the
        legacy profile.

        :raises AuthenticationError: ``INVALID_PROVIDER_TOKEN``, a
            correspondence failure, or ``NOT_FOUND`` when provisioning is off
            or the legacy profile is missing.
        """
        identity = self.credentials.verify_provider_token(provider_token)

        with self.ro_uow() as uow:
            account = self.reconciler.resolve(identity, uow.accounts)
            verdict = self.reconciler.validate_correspondence(identity, account)
            account_id = account.id if account is not None else None

        if account_id is None:
            if not self.auto_provision:
                raise AuthenticationError(AuthFailure.NOT_FOUND)
            out = self._provision(identity)
        elif not verdict.matches:
            raise AuthenticationError(verdict.reason or AuthFailure.IDENTITY_MISMATCH)
        else:
            out = self._link_and_sign_in(account_id, identity)

        logger.info("Legacy login succeeded", extra={"event": "legacy_login", "account_id": out.id})
        return self._start_session(out, metadata)

    # ------------------------------------------------------------------ #
    # Migration
    # ------------------------------------------------------------------ #

    def migration_status(self, provider_token: str) -> MigrationStatus:
        """Delegate to :meth:`MigrationReconciler.check_status`."""
        return self.reconciler.check_status(provider_token)

    def setup_password(
        self,
        provider_token: str,
        new_secret: str,
        metadata: RequestMetadata | None = None,
    ) -> AuthenticatedOut:
        """Run the one-shot migration and start a session for the account."""
        migrated = self.reconciler.migrate(provider_token, new_secret)
        out = self._record_sign_in(migrated.id)
        return self._start_session(out, metadata)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, secret: str | None, metadata: RequestMetadata | None = None) -> AuthenticatedOut:
        """
        Rotate a refresh credential and emit a new access token.

        Security
        --------
        - Presenting a revoked credential (already rotated or logged out) is
          treated as a leak: every credential of the account is revoked and
          ``SESSION_INVALIDATED`` is raised.
        - A rotation lost to a concurrent request is handled the same way.
        - Expired or unknown credentials raise ``INVALID_SESSION``.
        """
        if not secret:
            raise AuthenticationError(AuthFailure.INVALID_SESSION)

        validation = self.refresh_store.validate(secret)
        if validation.status is RefreshStatus.REVOKED and validation.account_id is not None:
            self._breach_response(validation.account_id)
            raise AuthenticationError(AuthFailure.SESSION_INVALIDATED)
        if not validation.is_active or validation.account_id is None:
            raise AuthenticationError(AuthFailure.INVALID_SESSION)

        with self.ro_uow() as uow:
            account = uow.accounts.get(validation.account_id)
            out = to_account_public(account) if account is not None else None
        if out is None:
            self.refresh_store.revoke(validation.token_hash, metadata)
            raise AuthenticationError(AuthFailure.INVALID_SESSION)

        rotation = self.refresh_store.rotate(validation.token_hash, out.id, metadata)
        if rotation.result is RotationResult.REVOKED:
            self._breach_response(out.id)
            raise AuthenticationError(AuthFailure.SESSION_INVALIDATED)
        if rotation.result is not RotationResult.OK or rotation.issued is None:
            raise AuthenticationError(AuthFailure.INVALID_SESSION)

        logger.info("Refresh credential rotated", extra={"event": "refresh", "account_id": out.id})
        return AuthenticatedOut(
            account=out,
            access_token=self.tokens.issue(self._claims_for(out)),
            refresh_secret=rotation.issued.secret,
            refresh_expires_at=rotation.issued.expires_at,
        )

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, secret: str | None, metadata: RequestMetadata | None = None) -> None:
        """Revoke the presented refresh credential. Unknown or dead secrets are a no-op."""
        if not secret:
            return
        revoked = self.refresh_store.revoke(self.refresh_store.hash_secret(secret), metadata)
        logger.info("Logout", extra={"event": "logout", "revoked": revoked})

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_account(self, account_id: str) -> AccountPublicOut:
        """
        Return the public view of an account.

        :raises NotFoundError: If the account does not exist.
        """
        with self.ro_uow() as uow:
            account = uow.accounts.get(account_id)
            if account is None:
                raise NotFoundError("Account", account_id)
            return to_account_public(account)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _claims_for(account: AccountPublicOut) -> AccessClaims:
        return AccessClaims(
            account_id=account.id,
            email=account.email,
            role=account.role,
            account_number=account.account_number,
        )

    def _start_session(
        self, account: AccountPublicOut, metadata: RequestMetadata | None
    ) -> AuthenticatedOut:
        access = self.tokens.issue(self._claims_for(account))
        issued = self.refresh_store.issue(account.id, metadata)
        return AuthenticatedOut(
            account=account,
            access_token=access,
            refresh_secret=issued.secret,
            refresh_expires_at=issued.expires_at,
        )

    def _breach_response(self, account_id: str) -> None:
        count = self.refresh_store.revoke_all_for_account(account_id)
        logger.warning(
            "Refresh credential replay detected; all sessions revoked",
            extra={"event": "refresh_replay", "account_id": account_id, "revoked": count},
        )

    def _record_sign_in(self, account_id: str) -> AccountPublicOut:
        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            account = repo.get(account_id)
            if account is None:
                raise AuthenticationError(AuthFailure.NOT_FOUND)
            repo.touch_last_signed_in(account, self.clock())
            return to_account_public(account)

    def _link_and_sign_in(self, account_id: str, identity: ProviderIdentity) -> AccountPublicOut:
        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            account = repo.get(account_id)
            if account is None:
                raise AuthenticationError(AuthFailure.NOT_FOUND)
            repo.link_provider(account, identity.subject_id)
            repo.touch_last_signed_in(account, self.clock())
            return to_account_public(account)

    def _provision(self, identity: ProviderIdentity) -> AccountPublicOut:
        """
        Create an account for a legacy identity from its legacy profile.

        A concurrent provision of the same identity surfaces as an
        ``IntegrityError``; the winner's row is then re-read and used.
        """
        profile = self.profiles.fetch(identity.subject_id) if self.profiles is not None else None
        if profile is None:
            logger.info(
                "Legacy profile missing",
                extra={"event": "auto_provision", "reason": "profile_not_found"},
            )
            raise AuthenticationError(AuthFailure.NOT_FOUND)

        now = self.clock()
        try:
            with self.rw_uow() as uow:
                repo: AccountRepository = uow.accounts
                number = profile.account_number
                if (
                    not number
                    or not _ACCOUNT_NUMBER_RE.match(number)
                    or repo.exists(account_number=number)
                ):
                    number = repo.generate_unique_account_number()
                account = Account(
                    id=identity.subject_id,
                    email_address=identity.email,
                    linked_provider_id=identity.subject_id,
                    migrated_at=now,
                    first_name=profile.first_name[:NAME_MAX_LENGTH],
                    last_name=profile.last_name[:NAME_MAX_LENGTH],
                    account_number=number,
                    role=DEFAULT_ROLE,
                    last_signed_in=now,
                )
                repo.add(account)
                out = to_account_public(account)
        except IntegrityError:
            with self.ro_uow() as uow:
                winner = self.reconciler.resolve(identity, uow.accounts)
                verdict = self.reconciler.validate_correspondence(identity, winner)
                winner_id = winner.id if winner is not None else None
            if winner_id is None or not verdict.matches:
                raise ConflictError("Account", "legacy identity already provisioned") from None
            logger.info(
                "Concurrent provision detected; using existing account",
                extra={"event": "auto_provision", "account_id": winner_id},
            )
            return self._link_and_sign_in(winner_id, identity)

        logger.info("Account auto-provisioned", extra={"event": "auto_provision", "account_id": out.id})
        return out
