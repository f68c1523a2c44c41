"""Refresh-credential repository backing the SQL refresh-token store."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select, update

from wallet_auth.models.refresh_credential import RefreshCredential
from wallet_auth.repositories.base import BaseRepository


class RefreshCredentialRepository(BaseRepository[RefreshCredential]):
    """Persistence-only access to :class:`RefreshCredential` rows.

    Every mutating helper is a single conditional statement so that
    concurrent callers observe compare-and-set semantics.
    """

    model = RefreshCredential

    def _pk_attr(self):
        return RefreshCredential.token_hash

    def _filterable_fields(self):
        return {"account_id": RefreshCredential.account_id}

    # ---------------------------- Reads ----------------------------

    def get_current(self, token_hash: str) -> RefreshCredential | None:
        """Load a credential, overwriting any stale identity-map copy."""
        stmt = (
            select(RefreshCredential)
            .where(RefreshCredential.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return cast(RefreshCredential | None, self.session.execute(stmt).scalars().first())

    def list_for_account(self, account_id: str, *, active_at: datetime | None = None):
        """Return the account's credentials, newest first.

        :param account_id: Owner identifier.
        :param active_at: When given, only unrevoked rows expiring after it.
        :returns: List of :class:`RefreshCredential`.
        """
        stmt = select(RefreshCredential).where(RefreshCredential.account_id == account_id)
        if active_at is not None:
            stmt = stmt.where(
                RefreshCredential.revoked_at.is_(None),
                RefreshCredential.expires_at > active_at,
            )
        stmt = stmt.order_by(RefreshCredential.issued_at.desc())
        return list(self.session.execute(stmt).scalars().all())

    # ---------------------------- Conditional writes ----------------------------

    def revoke_if_active(
        self,
        token_hash: str,
        *,
        now: datetime,
        account_id: str | None = None,
        replaced_by_hash: str | None = None,
        revoked_by_ip: str | None = None,
    ) -> bool:
        """Revoke a credential only if it is still unrevoked and unexpired.

        :returns: ``True`` when exactly this call performed the revocation.
        :rtype: bool
        """
        conditions = [
            RefreshCredential.token_hash == token_hash,
            RefreshCredential.revoked_at.is_(None),
            RefreshCredential.expires_at > now,
        ]
        if account_id is not None:
            conditions.append(RefreshCredential.account_id == account_id)
        stmt = (
            update(RefreshCredential)
            .where(*conditions)
            .values(
                revoked_at=now,
                replaced_by_hash=replaced_by_hash,
                revoked_by_ip=revoked_by_ip,
            )
            .execution_options(synchronize_session=False)
        )
        return cast(int, self.session.execute(stmt).rowcount) == 1

    def revoke_unrevoked(
        self, token_hash: str, *, now: datetime, revoked_by_ip: str | None = None
    ) -> bool:
        """Revoke a credential regardless of expiry (idempotent)."""
        stmt = (
            update(RefreshCredential)
            .where(
                RefreshCredential.token_hash == token_hash,
                RefreshCredential.revoked_at.is_(None),
            )
            .values(revoked_at=now, revoked_by_ip=revoked_by_ip)
            .execution_options(synchronize_session=False)
        )
        return cast(int, self.session.execute(stmt).rowcount) == 1

    def revoke_all_for_account(self, account_id: str, *, now: datetime) -> int:
        """Revoke every unrevoked credential of an account.

        :returns: Number of rows revoked by this call.
        """
        stmt = (
            update(RefreshCredential)
            .where(
                RefreshCredential.account_id == account_id,
                RefreshCredential.revoked_at.is_(None),
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return cast(int, self.session.execute(stmt).rowcount)

    def delete_expired(self, *, now: datetime) -> int:
        """Delete rows whose expiry is in the past; return the count."""
        stmt = (
            delete(RefreshCredential)
            .where(RefreshCredential.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return cast(int, self.session.execute(stmt).rowcount)
