# wallet_auth/services/credentials/service.py
"""Local secret hashing and legacy provider token verification."""

from __future__ import annotations

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from wallet_auth.core.config import HASH_COST_DEFAULT, clamp_hash_cost
from wallet_auth.models.account import normalize_email
from wallet_auth.services._shared.errors import AuthenticationError, AuthFailure
from wallet_auth.services._shared.ports.legacy_provider import (
    ProviderIdentity,
    ProviderTokenVerifier,
)

logger = logging.getLogger(__name__)

# scrypt block size and parallelism; the cost parameter only moves N.
_SCRYPT_R = 8
_SCRYPT_P = 1


class CredentialVerifier:
    """
    Validate local secrets and legacy provider tokens.

    :param provider_verifier: Oracle for legacy provider tokens.
    :type provider_verifier: ProviderTokenVerifier
    :param hash_cost: log2 of the scrypt ``N`` parameter (clamped to a safe range).
    :type hash_cost: int
    """

    def __init__(
        self,
        *,
        provider_verifier: ProviderTokenVerifier,
        hash_cost: int = HASH_COST_DEFAULT,
    ) -> None:
        self.provider_verifier = provider_verifier
        self.hash_cost = clamp_hash_cost(hash_cost)

    @property
    def hash_method(self) -> str:
        return f"scrypt:{2**self.hash_cost}:{_SCRYPT_R}:{_SCRYPT_P}"

    # ------------------------------------------------------------------ #
    # Local secrets
    # ------------------------------------------------------------------ #

    def hash_secret(self, plaintext: str) -> str:
        """Return a salted one-way hash of ``plaintext``."""
        return generate_password_hash(plaintext, method=self.hash_method)

    def verify_secret(self, plaintext: str, secret_hash: str | None) -> bool:
        """
        Compare ``plaintext`` against ``secret_hash`` in constant time.

        Hashes written by another scheme (e.g. imported bcrypt strings) are
        reported as a mismatch instead of raising.

        :returns: ``True`` only on a positive match.
        :rtype: bool
        """
        if not plaintext or not secret_hash:
            return False
        try:
            return check_password_hash(secret_hash, plaintext)
        except ValueError:
            logger.warning("Unsupported secret hash format", extra={"event": "secret_hash_unsupported"})
            return False

    # ------------------------------------------------------------------ #
    # Legacy provider
    # ------------------------------------------------------------------ #

    def verify_provider_token(self, token: str) -> ProviderIdentity:
        """
        Verify a legacy provider token and return the attested identity.

        Any failure of the oracle (bad token, network error, timeout, missing
        claims) is reported as ``INVALID_PROVIDER_TOKEN``.

        :raises AuthenticationError: On every verification failure.
        """
        if not token:
            raise AuthenticationError(AuthFailure.INVALID_PROVIDER_TOKEN, "empty provider token")
        try:
            identity = self.provider_verifier.verify(token)
        except Exception as exc:
            logger.warning(
                "Provider token rejected",
                extra={"event": "provider_token_rejected", "reason": type(exc).__name__},
            )
            raise AuthenticationError(AuthFailure.INVALID_PROVIDER_TOKEN, str(exc)) from exc

        email = normalize_email(identity.email)
        if not identity.subject_id or not email:
            logger.warning(
                "Provider token without subject or email",
                extra={"event": "provider_token_rejected", "reason": "missing_claims"},
            )
            raise AuthenticationError(AuthFailure.INVALID_PROVIDER_TOKEN, "missing claims")
        return ProviderIdentity(subject_id=identity.subject_id, email=email)
