# wallet_auth/services/migration/dto.py
from __future__ import annotations

from dataclasses import dataclass

from wallet_auth.services._shared.dto import AccountPublicOut
from wallet_auth.services._shared.errors import AuthFailure


@dataclass(frozen=True, slots=True)
class Correspondence:
    """
    Verdict of matching a legacy identity against a local account.

    :param reason: ``None`` on match; otherwise ``NOT_FOUND``,
        ``EMAIL_MISMATCH`` or ``IDENTITY_MISMATCH``.
    :type reason: AuthFailure | None
    """

    reason: AuthFailure | None = None

    @property
    def matches(self) -> bool:
        return self.reason is None


@dataclass(frozen=True, slots=True)
class MigrationStatus:
    """
    Result of a migration status check.

    :param needs_migration: ``True`` when the account must set a local secret.
    :type needs_migration: bool
    :param blocked: ``True`` when correspondence failed; ``reason`` says why.
    :type blocked: bool
    :param reason: Failure reason when ``blocked``.
    :type reason: AuthFailure | None
    :param subject_id: Legacy subject id attested by the provider.
    :type subject_id: str
    :param email: Email attested by the provider.
    :type email: str
    :param account: Public view of the matched account, if any.
    :type account: AccountPublicOut | None
    """

    needs_migration: bool
    subject_id: str
    email: str
    blocked: bool = False
    reason: AuthFailure | None = None
    account: AccountPublicOut | None = None
