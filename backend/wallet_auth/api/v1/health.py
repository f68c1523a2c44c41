"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from wallet_auth.api.deps import json_response, timing
from wallet_auth.core.extensions import db, redis_client_or_none

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database and (when configured) Redis reachability."""

    checks = {"db": "ok"}
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        checks["db"] = "fail"

    client = redis_client_or_none()
    if client is not None:
        try:
            client.ping()
            checks["redis"] = "ok"
        except RedisError:
            current_app.logger.exception("healthcheck.redis_error")
            checks["redis"] = "fail"

    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    payload = {
        "status": status,
        **checks,
        "refresh_backend": current_app.config.get("REFRESH_TOKEN_BACKEND", "sql"),
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if status == "ok" else 503)
