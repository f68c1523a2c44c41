"""CORS policy for the API, allowing the refresh cookie on trusted origins."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

#: Headers browsers may send cross-origin to the auth endpoints.
ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-ID"]


def init_app(app: Flask) -> None:
    """Register CORS for ``/api/*`` from ``CORS_ORIGINS``.

    The refresh secret travels in a cookie, so credentials are only enabled
    for an explicit origin list. A blank value or ``"*"`` opens the API to any
    origin without credentials; cookie-based refresh then only works
    same-origin.
    """
    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "").split(",") if o.strip()]
    if not origins or origins == ["*"]:
        CORS(app, resources={r"/api/*": {"origins": "*"}}, allow_headers=ALLOWED_HEADERS)
        return

    CORS(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=["X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
