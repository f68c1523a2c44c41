"""Ports towards the legacy identity provider being phased out."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from wallet_auth.services._shared.errors import ServiceError


@dataclass(frozen=True, slots=True)
class ProviderIdentity:
    """
    Identity attested by the legacy provider.

    :ivar subject_id: Provider-side subject identifier.
    :ivar email: Email claimed by the provider (normalized by the verifier).
    """

    subject_id: str
    email: str


@dataclass(frozen=True, slots=True)
class LegacyProfile:
    """Profile fields copied into a provisioned account.

    Privileges are never taken from legacy data; provisioned accounts get the
    default role.
    """

    first_name: str = ""
    last_name: str = ""
    account_number: str | None = None


class ProviderTokenVerifier(Protocol):
    """Token-verification oracle of the legacy provider."""

    def verify(self, token: str) -> ProviderIdentity:
        """Return the attested identity or raise on any failure."""
        ...


class LegacyProfileSource(Protocol):
    """Read access to legacy profile records."""

    def fetch(self, subject_id: str) -> LegacyProfile | None:
        """Return the stored profile, or ``None`` when the subject has none."""
        ...


class InMemoryProviderTokenVerifier(ProviderTokenVerifier):
    """Maps opaque tokens to identities; unknown tokens fail like a bad signature."""

    def __init__(self, identities: dict[str, ProviderIdentity] | None = None) -> None:
        self.identities: dict[str, ProviderIdentity] = dict(identities or {})

    def register(self, token: str, subject_id: str, email: str) -> None:
        self.identities[token] = ProviderIdentity(subject_id=subject_id, email=email)

    def verify(self, token: str) -> ProviderIdentity:
        try:
            return self.identities[token]
        except KeyError:
            raise ValueError("unknown provider token") from None


class InMemoryLegacyProfileSource(LegacyProfileSource):
    def __init__(self, profiles: dict[str, LegacyProfile] | None = None) -> None:
        self.profiles: dict[str, LegacyProfile] = dict(profiles or {})

    def fetch(self, subject_id: str) -> LegacyProfile | None:
        return self.profiles.get(subject_id)


class LegacyProviderError(ServiceError):
    """The legacy provider could not be reached or answered garbage."""
