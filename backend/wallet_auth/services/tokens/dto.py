# wallet_auth/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Identity claims carried by an access token.

    :param account_id: Account identifier (``sub``).
    :type account_id: str
    :param email: Account email.
    :type email: str
    :param role: Coarse privilege label.
    :type role: str
    :param account_number: Public wallet number.
    :type account_number: str
    :param issued_at: ``iat``; filled in on verification.
    :type issued_at: datetime | None
    :param expires_at: ``exp``; filled in on verification.
    :type expires_at: datetime | None
    :param token_id: ``jti``; filled in on verification.
    :type token_id: str | None
    """

    account_id: str
    email: str
    role: str = "user"
    account_number: str = ""
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    token_id: str | None = None

    def identity_only(self) -> AccessClaims:
        """Return a copy without the per-token registered claims."""
        return replace(self, issued_at=None, expires_at=None, token_id=None)
