# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from wallet_auth.models.base import as_utc


@dataclass(frozen=True, slots=True)
class AccountPublicOut:
    """
    Public-safe account view. Never carries the secret hash.

    :param id: Account identifier.
    :type id: str
    :param email: Normalized email address.
    :type email: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    :param account_number: Public wallet number.
    :type account_number: str
    :param role: Coarse privilege label.
    :type role: str
    :param is_legacy_linked: Whether a legacy provider subject is linked.
    :type is_legacy_linked: bool
    :param migrated_at: Migration timestamp, if any.
    :type migrated_at: datetime | None
    """

    id: str
    email: str
    first_name: str
    last_name: str
    account_number: str
    role: str
    is_legacy_linked: bool
    migrated_at: datetime | None = None


def to_account_public(account) -> AccountPublicOut:
    """
    Map ORM ``Account`` to :class:`AccountPublicOut`.

    :param account: ORM account instance.
    :type account: :class:`wallet_auth.models.account.Account`
    :rtype: :class:`AccountPublicOut`
    """
    return AccountPublicOut(
        id=account.id,
        email=account.email_address,
        first_name=account.first_name,
        last_name=account.last_name,
        account_number=account.account_number,
        role=account.role,
        is_legacy_linked=account.is_legacy_linked,
        migrated_at=as_utc(account.migrated_at),
    )
