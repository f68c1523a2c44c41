# wallet_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from wallet_auth.services._shared.dto import AccountPublicOut

# ---------------------------- Credentials --------------------------------- #


@dataclass(frozen=True, slots=True)
class LocalCredential:
    """
    Locally-set secret (password).

    :param secret: Raw secret to verify.
    :type secret: str
    """

    secret: str


@dataclass(frozen=True, slots=True)
class ProviderToken:
    """
    Token issued by the legacy identity provider.

    :param token: Opaque provider token.
    :type token: str
    """

    token: str


#: Every way a caller can prove who they are.
Credential = LocalCredential | ProviderToken


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Login email (normalized by the service).
    :type email: str
    :param credentials: Presented credentials, at most one of each kind.
    :type credentials: tuple[Credential, ...]
    """

    email: str
    credentials: tuple[Credential, ...] = ()

    @classmethod
    def from_fields(
        cls, email: str, secret: str | None = None, provider_token: str | None = None
    ) -> LoginIn:
        """Build the input from optional transport fields (blank values are dropped)."""
        creds: list[Credential] = []
        if secret:
            creds.append(LocalCredential(secret))
        if provider_token:
            creds.append(ProviderToken(provider_token))
        return cls(email=email, credentials=tuple(creds))


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-registration.

    :param email: Login email.
    :type email: str
    :param secret: Raw secret; hashed before persistence.
    :type secret: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    """

    email: str
    secret: str
    first_name: str = ""
    last_name: str = ""


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthenticatedOut:
    """
    Successful authentication.

    :param account: Public account view.
    :type account: AccountPublicOut
    :param access_token: Signed access JWT.
    :type access_token: str
    :param refresh_secret: Opaque refresh secret (transport puts it in a cookie).
    :type refresh_secret: str
    :param refresh_expires_at: Refresh credential expiry (UTC).
    :type refresh_expires_at: datetime
    """

    account: AccountPublicOut
    access_token: str
    refresh_secret: str
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class NeedsMigrationOut:
    """
    Login accepted the legacy identity but no local secret exists yet.

    No tokens are issued; the caller must run the setup-password step.
    """

    subject_id: str
    email: str
