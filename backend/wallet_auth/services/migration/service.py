# wallet_auth/services/migration/service.py
"""
MigrationReconciler
===================

Reconciles identities attested by the legacy provider with local accounts:

- One correspondence check shared by status checks, login, migration and
  legacy login.
- One-shot establishment of the local secret (conditional write).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from wallet_auth.models.account import Account, normalize_email
from wallet_auth.models.base import utcnow
from wallet_auth.repositories.account import AccountRepository
from wallet_auth.services._shared.base import BaseService
from wallet_auth.services._shared.dto import AccountPublicOut, to_account_public
from wallet_auth.services._shared.errors import AuthenticationError, AuthFailure
from wallet_auth.services._shared.ports.legacy_provider import ProviderIdentity
from wallet_auth.services.credentials.service import CredentialVerifier
from wallet_auth.services.migration.dto import Correspondence, MigrationStatus

logger = logging.getLogger(__name__)


class MigrationReconciler(BaseService):
    """
    Decide whether a legacy identity has a consistent local account.

    :param credentials: Secret hashing and provider-token verification.
    :param password_min_length: Minimum length of a locally-set secret.
    :param clock: Source of "now" (UTC).
    """

    def __init__(
        self,
        *,
        credentials: CredentialVerifier,
        password_min_length: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__()
        self.credentials = credentials
        self.password_min_length = password_min_length
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Correspondence
    # ------------------------------------------------------------------ #

    @staticmethod
    def validate_correspondence(
        identity: ProviderIdentity, account: Account | None
    ) -> Correspondence:
        """
        Check that ``identity`` and ``account`` describe the same principal.

        :returns: ``NOT_FOUND`` when there is no account, ``EMAIL_MISMATCH``
            when the normalized emails differ, ``IDENTITY_MISMATCH`` when the
            account is linked to another subject; otherwise a match.
        """
        if account is None:
            return Correspondence(AuthFailure.NOT_FOUND)
        if normalize_email(account.email_address) != normalize_email(identity.email):
            return Correspondence(AuthFailure.EMAIL_MISMATCH)
        if account.is_legacy_linked and account.linked_provider_id != identity.subject_id:
            return Correspondence(AuthFailure.IDENTITY_MISMATCH)
        return Correspondence()

    @staticmethod
    def resolve(identity: ProviderIdentity, accounts: AccountRepository) -> Account | None:
        """Find the local account for ``identity``: by provider id, then by email."""
        account = accounts.get_by_provider_id(identity.subject_id)
        if account is None:
            account = accounts.get_by_email(identity.email)
        return account

    # ------------------------------------------------------------------ #
    # Use-cases
    # ------------------------------------------------------------------ #

    def check_status(self, provider_token: str) -> MigrationStatus:
        """
        Report whether the legacy principal behind ``provider_token`` must migrate.

        A missing or inconsistent account is reported as ``blocked`` with its
        reason; it is never folded into ``needs_migration=False``.

        :raises AuthenticationError: ``INVALID_PROVIDER_TOKEN``.
        """
        identity = self.credentials.verify_provider_token(provider_token)
        with self.ro_uow() as uow:
            account = self.resolve(identity, uow.accounts)
            verdict = self.validate_correspondence(identity, account)
            if not verdict.matches or account is None:
                logger.info(
                    "Migration status blocked",
                    extra={"event": "migration_status", "reason": str(verdict.reason)},
                )
                return MigrationStatus(
                    needs_migration=False,
                    blocked=True,
                    reason=verdict.reason,
                    subject_id=identity.subject_id,
                    email=identity.email,
                )
            return MigrationStatus(
                needs_migration=not account.is_locally_authenticable,
                subject_id=identity.subject_id,
                email=identity.email,
                account=to_account_public(account),
            )

    def migrate(self, provider_token: str, new_secret: str) -> AccountPublicOut:
        """
        Establish the first local secret of a legacy-origin account.

        :raises AuthenticationError: ``INVALID_PROVIDER_TOKEN``, a
            correspondence failure, ``ALREADY_MIGRATED`` or ``WEAK_SECRET``.
        """
        identity = self.credentials.verify_provider_token(provider_token)

        with self.rw_uow() as uow:
            repo: AccountRepository = uow.accounts
            account = self.resolve(identity, repo)
            verdict = self.validate_correspondence(identity, account)
            if not verdict.matches or account is None:
                raise AuthenticationError(verdict.reason or AuthFailure.NOT_FOUND)
            if account.is_locally_authenticable:
                raise AuthenticationError(AuthFailure.ALREADY_MIGRATED)
            if len(new_secret or "") < self.password_min_length:
                raise AuthenticationError(AuthFailure.WEAK_SECRET)

            now = self.clock()
            won = repo.set_initial_secret(
                account.id, self.credentials.hash_secret(new_secret), migrated_at=now
            )
            if not won:
                # A concurrent migration set the secret first.
                raise AuthenticationError(AuthFailure.ALREADY_MIGRATED)
            repo.link_provider(account, identity.subject_id)
            out = to_account_public(account)

        logger.info("Account migrated", extra={"event": "migration", "account_id": out.id})
        return out
