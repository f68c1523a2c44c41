# comments in English; reST docstrings
from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import timedelta

from wallet_auth.models.base import as_utc
from wallet_auth.models.refresh_credential import RefreshCredential
from wallet_auth.services._shared.ports.refresh_token_store import (
    REFRESH_SECRET_BYTES,
    Clock,
    IssuedRefreshToken,
    RefreshSessionView,
    RefreshStatus,
    RefreshTokenStore,
    RefreshValidation,
    RequestMetadata,
    Rotation,
    RotationResult,
    classify,
    system_clock,
)
from wallet_auth.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

_ROTATION_FAILURES = {
    RefreshStatus.NOT_FOUND: RotationResult.NOT_FOUND,
    RefreshStatus.EXPIRED: RotationResult.EXPIRED,
    RefreshStatus.REVOKED: RotationResult.REVOKED,
}


def _to_view(row: RefreshCredential) -> RefreshSessionView:
    return RefreshSessionView(
        token_hash=row.token_hash,
        account_id=row.account_id,
        issued_at=as_utc(row.issued_at),  # type: ignore[arg-type]
        expires_at=as_utc(row.expires_at),  # type: ignore[arg-type]
        revoked_at=as_utc(row.revoked_at),
        replaced_by_hash=row.replaced_by_hash,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        revoked_by_ip=row.revoked_by_ip,
    )


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh credential store (default backend).

    Every write runs in its own :class:`SQLAlchemyUnitOfWork`. Rotation is a
    conditional ``UPDATE ... WHERE revoked_at IS NULL AND expires_at > now``
    followed by the insert of the successor in the same transaction, so two
    concurrent rotations of one credential cannot both succeed.

    :param ttl: Lifetime of issued credentials.
    :param clock: Source of "now" (UTC).
    :param uow_factory: Read-write Unit of Work factory.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(days=30),
        clock: Clock = system_clock,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._uow_factory = uow_factory

    def _mint(self, account_id, metadata, now) -> tuple[IssuedRefreshToken, RefreshCredential]:
        secret = secrets.token_hex(REFRESH_SECRET_BYTES)
        issued = IssuedRefreshToken(
            secret=secret,
            token_hash=self.hash_secret(secret),
            expires_at=now + self.ttl,
        )
        row = RefreshCredential(
            token_hash=issued.token_hash,
            account_id=account_id,
            issued_at=now,
            expires_at=issued.expires_at,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
        )
        return issued, row

    # -------------------- API ------------------------

    def issue(self, account_id, metadata=None):
        now = self._clock()
        issued, row = self._mint(account_id, metadata or RequestMetadata(), now)
        with self._uow_factory() as uow:
            uow.refresh_credentials.add(row)
        return issued

    def rotate(self, old_hash, account_id, metadata=None):
        metadata = metadata or RequestMetadata()
        now = self._clock()
        issued, row = self._mint(account_id, metadata, now)

        with self._uow_factory() as uow:
            repo = uow.refresh_credentials
            swapped = repo.revoke_if_active(
                old_hash,
                now=now,
                account_id=account_id,
                replaced_by_hash=issued.token_hash,
                revoked_by_ip=metadata.ip_address,
            )
            if not swapped:
                # Precondition failed: report why and write nothing.
                current = repo.get_current(old_hash)
                if current is None or current.account_id != account_id:
                    return Rotation(RotationResult.NOT_FOUND)
                status = classify(
                    expires_at=as_utc(current.expires_at),
                    revoked_at=as_utc(current.revoked_at),
                    now=now,
                )
                return Rotation(_ROTATION_FAILURES.get(status, RotationResult.REVOKED))
            repo.add(row)
        return Rotation(RotationResult.OK, issued)

    def revoke(self, token_hash, metadata=None):
        metadata = metadata or RequestMetadata()
        with self._uow_factory() as uow:
            return uow.refresh_credentials.revoke_unrevoked(
                token_hash, now=self._clock(), revoked_by_ip=metadata.ip_address
            )

    def revoke_all_for_account(self, account_id):
        with self._uow_factory() as uow:
            return uow.refresh_credentials.revoke_all_for_account(account_id, now=self._clock())

    def validate(self, secret):
        token_hash = self.hash_secret(secret)
        view = self.get(token_hash)
        if view is None:
            return RefreshValidation(RefreshStatus.NOT_FOUND, token_hash)
        return RefreshValidation(view.status(self._clock()), token_hash, view.account_id)

    def get(self, token_hash):
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            row = uow.refresh_credentials.get_current(token_hash)
            return _to_view(row) if row is not None else None

    def list_account_sessions(self, account_id):
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            rows = uow.refresh_credentials.list_for_account(account_id, active_at=self._clock())
            return [_to_view(row) for row in rows]

    def cleanup_expired(self):
        with self._uow_factory() as uow:
            return uow.refresh_credentials.delete_expired(now=self._clock())
