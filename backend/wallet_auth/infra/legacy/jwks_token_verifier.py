# wallet_auth/infra/legacy/jwks_token_verifier.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import jwt
from jwt import PyJWKClient

from wallet_auth.services._shared.ports.legacy_provider import (
    ProviderIdentity,
    ProviderTokenVerifier,
)


@dataclass(slots=True)
class JWKSProviderTokenVerifier(ProviderTokenVerifier):
    """
    Verify legacy identity tokens (RS256 ID tokens) against a published JWKS.

    Works with any issuer exposing a JWKS endpoint, including Firebase
    ``securetoken`` ID tokens (``aud`` = project id,
    ``iss`` = ``https://securetoken.google.com/<project>``).

    :param jwks_url: Key set location.
    :param audience: Expected ``aud``; skipped when ``None``.
    :param issuer: Expected ``iss``; skipped when ``None``.
    :param timeout: Seconds allowed for fetching the key set.
    :param jwk_client: Pre-built key resolver (defaults to :class:`jwt.PyJWKClient`).
    """

    jwks_url: str
    audience: str | None = None
    issuer: str | None = None
    timeout: float = 5.0
    algorithms: tuple[str, ...] = ("RS256",)
    jwk_client: Any = field(default=None)

    def __post_init__(self) -> None:
        if self.jwk_client is None:
            self.jwk_client = PyJWKClient(self.jwks_url, cache_keys=True, timeout=self.timeout)

    def verify(self, token: str) -> ProviderIdentity:
        """
        Decode and verify ``token``.

        :raises jwt.PyJWTError: On bad signature, expiry, issuer or audience.
        :raises jwt.PyJWKClientError: When the key set cannot be fetched.
        """
        signing_key = self.jwk_client.get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=list(self.algorithms),
            audience=self.audience,
            issuer=self.issuer,
            options={
                "require": ["exp", "iat", "sub"],
                "verify_aud": self.audience is not None,
            },
        )
        return ProviderIdentity(
            subject_id=str(claims.get("sub") or ""),
            email=str(claims.get("email") or ""),
        )
