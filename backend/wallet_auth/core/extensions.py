"""Flask extension instances shared by the authentication app."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Constraint names must be stable for Alembic batch migrations on SQLite
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
redis_client: redis.Redis | None = None


def _connect_redis(url: str, timeout: float) -> redis.Redis:
    """Open a client and fail fast when the server is unreachable."""
    client = redis.Redis.from_url(url, socket_timeout=timeout, socket_connect_timeout=timeout)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind SQLAlchemy, Alembic and JWT; connect Redis when ``REDIS_URL`` is set.

    The :mod:`wallet_auth.models` package is imported here so the metadata
    holds both tables before migrations run.
    """
    db.init_app(app)

    from wallet_auth import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        redis_client = None
        app.extensions.pop("redis_client", None)
        return

    redis_client = _connect_redis(redis_url, float(app.config.get("REDIS_TIMEOUT_SECONDS", 2.0)))
    app.extensions["redis_client"] = redis_client


def get_redis() -> redis.Redis:
    """Return the connected Redis client (refresh-token store backend)."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL first.")
    return redis_client


def redis_client_or_none() -> redis.Redis | None:
    """Return the Redis client, or ``None`` when ``REDIS_URL`` is unset."""
    return redis_client
