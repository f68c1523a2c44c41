"""Persisted refresh credential (hash only, never the bearer secret)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wallet_auth.core.extensions import db

from .base import ReprMixin

USER_AGENT_MAX_LENGTH = 255


class RefreshCredential(ReprMixin, db.Model):
    """
    Long-lived refresh credential row.

    ``revoked_at`` is terminal: once set, only the expiry sweep touches the
    row again (by deleting it). ``replaced_by_hash`` links a rotated
    credential to its successor.
    """

    __tablename__ = "refresh_credentials"
    __repr_attr__ = "account_id"

    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    replaced_by_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(USER_AGENT_MAX_LENGTH), nullable=True)
    revoked_by_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_refresh_credentials_account_id", "account_id"),
        Index("ix_refresh_credentials_expires_at", "expires_at"),
    )
