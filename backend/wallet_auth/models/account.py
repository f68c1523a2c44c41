"""Account model: the local identity that credentials resolve to."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from wallet_auth.core.extensions import db

from .base import ReprMixin, TimestampMixin

NAME_MAX_LENGTH = 80
DEFAULT_ROLE = "user"


def new_account_id() -> str:
    """Return a random identifier for accounts created locally."""
    return uuid4().hex


def normalize_email(value: str | None) -> str:
    """Trim and lowercase an email address (``""`` for missing values)."""
    return (value or "").strip().lower()


class Account(ReprMixin, TimestampMixin, db.Model):
    """
    Wallet account as seen by the authentication core.

    Fields
    ------
    id : str
        Opaque identity. Equals the legacy subject id for accounts
        provisioned from the legacy provider.
    email_address : str
        Login email. Stored normalized (lowercase, trimmed); unique.
    secret_hash : str | None
        One-way hash of the locally-set secret. ``None`` means the account
        cannot authenticate locally yet.
    linked_provider_id : str | None
        Legacy provider subject id. Write-once.
    migrated_at : datetime | None
        When the account first obtained local credentials (or was linked).
    account_number : str
        Public 12-digit wallet number.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_account_id)
    email_address: Mapped[str] = mapped_column(String(254), nullable=False)
    secret_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    linked_provider_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    migrated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    first_name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False, default="")
    account_number: Mapped[str] = mapped_column(String(12), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_ROLE)
    last_signed_in: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("email_address", name="uq_accounts_email_address"),
        UniqueConstraint("linked_provider_id", name="uq_accounts_linked_provider_id"),
        UniqueConstraint("account_number", name="uq_accounts_account_number"),
    )

    # -------------------- Predicates --------------------
    @property
    def is_locally_authenticable(self) -> bool:
        """``True`` when a local secret has been established."""
        return self.secret_hash is not None

    @property
    def is_legacy_linked(self) -> bool:
        """``True`` when the account is bound to a legacy provider subject."""
        return self.linked_provider_id is not None

    # -------------------- Validators --------------------
    @validates("email_address")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = normalize_email(value)
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("linked_provider_id")
    def _freeze_provider_link(self, key: str, value: str | None) -> str | None:
        """
        Allow setting the provider link once; reject later changes.

        :raises ValueError: If a different link is already stored.
        """
        current = self.linked_provider_id
        if current is not None and value != current:
            raise ValueError("linked_provider_id is immutable once set.")
        return value
