"""Account repository: lookups and the one-shot local-secret write."""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import cast

from sqlalchemy import func, select, update

from wallet_auth.models.account import Account, normalize_email
from wallet_auth.repositories.base import BaseRepository

ACCOUNT_NUMBER_PREFIX = "0000"
ACCOUNT_NUMBER_RANDOM_DIGITS = 8
ACCOUNT_NUMBER_MAX_ATTEMPTS = 10

class AccountRepository(BaseRepository[Account]):
    """Persistence-only repository for :class:`Account`.

    It NEVER hashes secrets or issues tokens; services pass already-hashed
    values in.
    """

    model = Account

    # ---------------------------- Whitelist ----------------------------

    def _filterable_fields(self):
        """Whitelist fields safe for equality filters."""
        return {
            "email_address": Account.email_address,
            "linked_provider_id": Account.linked_provider_id,
            "account_number": Account.account_number,
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> Account | None:
        """Fetch an account by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: Account instance or ``None`` when not found.
        :rtype: Account | None
        """
        stmt = select(Account).where(Account.email_address == normalize_email(email))
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def get_by_provider_id(self, provider_id: str) -> Account | None:
        """Fetch the account linked to a legacy provider subject id."""
        stmt = select(Account).where(Account.linked_provider_id == provider_id)
        return cast(Account | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when an account with the provided email exists."""
        stmt = select(Account.id).where(Account.email_address == normalize_email(email))
        return bool(self.session.execute(stmt).first())

    # ---------------------------- Secret / link ops ----------------------------

    def set_initial_secret(
        self,
        account_id: str,
        secret_hash: str,
        *,
        migrated_at: datetime,
    ) -> bool:
        """Store the first local secret for an account.

        A single conditional ``UPDATE`` guarded by ``secret_hash IS NULL``
        makes the write one-shot even under concurrent requests.

        :param account_id: Target account identifier.
        :type account_id: str
        :param secret_hash: Already-hashed secret.
        :type secret_hash: str
        :param migrated_at: Migration date, kept if one is already recorded.
        :type migrated_at: datetime
        :returns: ``True`` if this call set the secret, ``False`` when a secret
            already existed (or the account is gone).
        :rtype: bool
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.secret_hash.is_(None))
            .values(
                secret_hash=secret_hash,
                migrated_at=func.coalesce(Account.migrated_at, migrated_at),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        # Bring the identity-map copy in line with the row we just wrote.
        instance = self.session.get(Account, account_id)
        if instance is not None:
            self.session.refresh(instance)
        return True

    def link_provider(self, account: Account, provider_id: str) -> Account:
        """Bind ``account`` to a provider subject if it is not bound yet.

        :raises ValueError: If a different subject is already linked.
        """
        if account.linked_provider_id is None:
            account.linked_provider_id = provider_id
            self.flush()
        elif account.linked_provider_id != provider_id:
            raise ValueError("linked_provider_id is immutable once set.")
        return account

    def touch_last_signed_in(self, account: Account, when: datetime) -> None:
        """Record a successful sign-in."""
        account.last_signed_in = when
        self.flush()

    # ---------------------------- Account numbers ----------------------------

    def generate_unique_account_number(self) -> str:
        """Return a fresh ``0000`` + 8 random digits number not yet in use.

        :raises RuntimeError: If no free number was found after a few tries.
        """
        for _ in range(ACCOUNT_NUMBER_MAX_ATTEMPTS):
            digits = "".join(
                str(secrets.randbelow(10)) for _ in range(ACCOUNT_NUMBER_RANDOM_DIGITS)
            )
            candidate = f"{ACCOUNT_NUMBER_PREFIX}{digits}"
            if not self.exists(account_number=candidate):
                return candidate
        raise RuntimeError("Could not allocate a unique account number.")
