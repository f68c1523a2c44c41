# wallet_auth/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from wallet_auth.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Signing key, algorithm, issuer and audience come from the app config
    (``JWT_SECRET_KEY``, ``JWT_ENCODE_ISSUER``/``JWT_DECODE_ISSUER``,
    ``JWT_ENCODE_AUDIENCE``/``JWT_DECODE_AUDIENCE``).

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        # Flask-JWT-Extended adds jti, iat, nbf, exp and type=access; a None
        # expires_delta falls back to JWT_ACCESS_TOKEN_EXPIRES.
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                identity=identity,
                additional_claims=dict(additional_claims or {}),
                expires_delta=expires_delta,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        return cast(dict[str, Any], decode_token(token))
