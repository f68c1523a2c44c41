"""Shared API helpers: responses, timing, bearer auth and the refresh cookie."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from wallet_auth.core.wiring import get_components
from wallet_auth.models.refresh_credential import USER_AGENT_MAX_LENGTH
from wallet_auth.services._shared.errors import ServiceError
from wallet_auth.services._shared.ports.refresh_token_store import RequestMetadata
from wallet_auth.services.tokens.dto import AccessClaims

F = TypeVar("F", bound=Callable[..., Any])


def request_metadata() -> RequestMetadata:
    """Client IP and user agent recorded alongside refresh credentials."""

    return RequestMetadata(
        ip_address=request.remote_addr,
        user_agent=(request.headers.get("User-Agent") or "")[:USER_AGENT_MAX_LENGTH] or None,
    )


def require_auth(func: F) -> F:
    """Require a valid ``Authorization: Bearer`` access token.

    Failures are rendered by the JWT loaders in :mod:`wallet_auth.core.errors`.
    The verified :class:`AccessClaims` are exposed as ``g.claims``.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        components = get_components()
        try:
            g.claims = components.tokens.claims_from_payload(get_jwt())
        except ServiceError as exc:
            raise components.auth.translate_exceptions(exc) from exc
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_claims() -> AccessClaims:
    """Claims of the access token verified by :func:`require_auth`."""

    return g.claims


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


# ---------------------------- Refresh cookie ----------------------------


def read_refresh_secret(body: dict[str, Any] | None = None) -> str | None:
    """Return the refresh secret from the cookie, else from the JSON body."""

    name = current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token")
    secret = request.cookies.get(name)
    if not secret and body:
        secret = body.get("refresh_token")
    return secret or None


def _cookie_options() -> dict[str, Any]:
    secure = bool(current_app.config.get("REFRESH_COOKIE_SECURE", False))
    return {
        "path": current_app.config.get("REFRESH_COOKIE_PATH", "/api/v1/auth"),
        "httponly": True,
        "secure": secure,
        "samesite": "Strict" if secure else "Lax",
    }


def set_refresh_cookie(response: Response, secret: str, expires_at: datetime) -> Response:
    """Attach the refresh secret as an HTTP-only cookie expiring with it."""

    response.set_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"),
        secret,
        expires=expires_at,
        **_cookie_options(),
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    """Expire the refresh cookie on the client."""

    response.delete_cookie(
        current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"),
        **_cookie_options(),
    )
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
