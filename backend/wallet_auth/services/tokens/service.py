# wallet_auth/services/tokens/service.py
"""Mint and verify short-lived access tokens."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from wallet_auth.services._shared.errors import InvalidAccessTokenError
from wallet_auth.services._shared.ports.token_provider import TokenProvider
from wallet_auth.services.tokens.dto import AccessClaims

# Token type identifier used by flask-jwt-extended
ACCESS_TOKEN_TYPE = "access"


class TokenIssuer:
    """
    Access-token issuer over a pluggable :class:`TokenProvider`.

    The provider adds ``jti``, ``iat``, ``exp`` and, when configured, the
    issuer and audience claims. Verification never touches a store.

    :param provider: JWT adapter.
    :param access_ttl: Lifetime of issued tokens.
    """

    def __init__(self, *, provider: TokenProvider, access_ttl: timedelta) -> None:
        self.provider = provider
        self.access_ttl = access_ttl

    def issue(self, claims: AccessClaims) -> str:
        """Sign ``claims`` into a compact JWT."""
        return self.provider.create_access_token(
            identity=claims.account_id,
            additional_claims={
                "email": claims.email,
                "role": claims.role,
                "account_number": claims.account_number,
            },
            expires_delta=self.access_ttl,
        )

    def verify(self, token: str) -> AccessClaims:
        """
        Verify signature, expiry and configured issuer/audience.

        :raises InvalidAccessTokenError: If the token is invalid, expired or
            not an access token.
        """
        try:
            payload = self.provider.decode(token)
        except Exception as exc:
            raise InvalidAccessTokenError(str(exc)) from exc

        return self.claims_from_payload(payload)

    def claims_from_payload(self, payload: dict[str, Any]) -> AccessClaims:
        """Map a decoded access-token payload to :class:`AccessClaims`."""
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidAccessTokenError("not an access token")
        try:
            return AccessClaims(
                account_id=str(payload["sub"]),
                email=str(payload["email"]),
                role=str(payload.get("role", "user")),
                account_number=str(payload.get("account_number", "")),
                issued_at=_from_epoch(payload.get("iat")),
                expires_at=_from_epoch(payload.get("exp")),
                token_id=payload.get("jti"),
            )
        except KeyError as exc:
            raise InvalidAccessTokenError(f"missing claim {exc}") from exc


def _from_epoch(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)
