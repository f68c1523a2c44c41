"""Construct the authentication components once per application."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from flask import Flask, current_app

from wallet_auth.core.config import (
    DEFAULT_JWT_SECRET,
    MIN_RECOMMENDED_SECRET_LENGTH,
    clamp_hash_cost,
)
from wallet_auth.services._shared.ports.legacy_provider import (
    LegacyProfileSource,
    ProviderTokenVerifier,
)
from wallet_auth.services._shared.ports.refresh_token_store import RefreshTokenStore
from wallet_auth.services.auth.service import AuthService
from wallet_auth.services.credentials.service import CredentialVerifier
from wallet_auth.services.migration.service import MigrationReconciler
from wallet_auth.services.tokens.service import TokenIssuer

log = logging.getLogger(__name__)

EXTENSION_KEY = "wallet_auth"


@dataclass(frozen=True, slots=True)
class AuthComponents:
    """Explicitly constructed collaborators shared by request handlers."""

    credentials: CredentialVerifier
    tokens: TokenIssuer
    refresh_store: RefreshTokenStore
    reconciler: MigrationReconciler
    auth: AuthService


def warn_on_weak_jwt_secret(secret: str | None) -> None:
    """Log a warning when the signing secret is the default or too short."""
    if not secret or secret == DEFAULT_JWT_SECRET:
        log.warning("JWT_SECRET_KEY is not set or uses the default value. Set a strong secret.")
    elif len(secret) < MIN_RECOMMENDED_SECRET_LENGTH:
        log.warning(
            "JWT_SECRET_KEY is shorter than %s characters. Use a longer secret.",
            MIN_RECOMMENDED_SECRET_LENGTH,
        )


def build_refresh_store(app: Flask) -> RefreshTokenStore:
    """Return the refresh store selected by ``REFRESH_TOKEN_BACKEND``.

    :raises RuntimeError: For unknown backends or ``redis`` without ``REDIS_URL``.
    """
    ttl = timedelta(days=int(app.config.get("REFRESH_TOKEN_TTL_DAYS", 30)))
    backend = str(app.config.get("REFRESH_TOKEN_BACKEND", "sql")).lower()
    if backend == "sql":
        from wallet_auth.infra.sql import SQLAlchemyRefreshTokenStore

        return SQLAlchemyRefreshTokenStore(ttl=ttl)
    if backend == "redis":
        from wallet_auth.core.extensions import get_redis
        from wallet_auth.infra.redis import RedisRefreshTokenStore

        return RedisRefreshTokenStore(get_redis(), ttl=ttl)
    raise RuntimeError(f"Unknown REFRESH_TOKEN_BACKEND: {backend!r}")


def build_provider_verifier(app: Flask) -> ProviderTokenVerifier:
    from wallet_auth.infra.legacy import JWKSProviderTokenVerifier

    return JWKSProviderTokenVerifier(
        jwks_url=app.config["LEGACY_PROVIDER_JWKS_URL"],
        audience=app.config.get("LEGACY_PROVIDER_AUDIENCE"),
        issuer=app.config.get("LEGACY_PROVIDER_ISSUER"),
        timeout=float(app.config.get("LEGACY_PROVIDER_TIMEOUT_SECONDS", 5)),
    )


def build_profile_source(app: Flask) -> LegacyProfileSource | None:
    url = app.config.get("LEGACY_PROFILE_URL")
    if not url:
        return None
    from wallet_auth.infra.legacy import HttpLegacyProfileSource

    return HttpLegacyProfileSource(
        url_template=url,
        timeout=float(app.config.get("LEGACY_PROVIDER_TIMEOUT_SECONDS", 5)),
    )


def build_auth_components(
    app: Flask,
    *,
    provider_verifier: ProviderTokenVerifier | None = None,
    profiles: LegacyProfileSource | None = None,
    refresh_store: RefreshTokenStore | None = None,
) -> AuthComponents:
    """Wire every collaborator from the app config.

    Keyword overrides replace the configured adapters (used by tests and
    alternative deployments).
    """
    from wallet_auth.infra.jwt import JWTTokenProvider

    warn_on_weak_jwt_secret(app.config.get("JWT_SECRET_KEY"))

    credentials = CredentialVerifier(
        provider_verifier=provider_verifier or build_provider_verifier(app),
        hash_cost=clamp_hash_cost(int(app.config.get("PASSWORD_HASH_COST", 15))),
    )
    tokens = TokenIssuer(
        provider=JWTTokenProvider(),
        access_ttl=app.config.get("JWT_ACCESS_TOKEN_EXPIRES", timedelta(minutes=15)),
    )
    store = refresh_store or build_refresh_store(app)
    min_length = int(app.config.get("PASSWORD_MIN_LENGTH", 8))
    reconciler = MigrationReconciler(credentials=credentials, password_min_length=min_length)
    auth = AuthService(
        credentials=credentials,
        reconciler=reconciler,
        token_issuer=tokens,
        refresh_store=store,
        profiles=profiles if profiles is not None else build_profile_source(app),
        password_min_length=min_length,
        auto_provision=bool(app.config.get("LEGACY_AUTO_PROVISION", True)),
    )
    return AuthComponents(
        credentials=credentials,
        tokens=tokens,
        refresh_store=store,
        reconciler=reconciler,
        auth=auth,
    )


def init_app(app: Flask, **overrides) -> AuthComponents:
    """Build the components and store them on ``app.extensions``."""
    components = build_auth_components(app, **overrides)
    app.extensions[EXTENSION_KEY] = components
    return components


def get_components() -> AuthComponents:
    """Return the components of the current application."""
    return current_app.extensions[EXTENSION_KEY]
