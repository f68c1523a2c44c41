"""API blueprint package aggregating versioned endpoints."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def register_blueprint_group(
    app: Flask,
    *,
    base_prefix: str,
    entries: Iterable[tuple[Blueprint, str]],
) -> None:
    """Register related blueprints beneath a common prefix.

    Parameters
    ----------
    app:
        Application instance receiving the blueprints.
    base_prefix:
        Version root such as ``"/api/v1"``.
    entries:
        ``(blueprint, relative_prefix)`` pairs; an empty relative prefix
        mounts the blueprint at the version root.
    """

    root = base_prefix.rstrip("/")
    for bp, rel_prefix in entries:
        segment = rel_prefix.strip("/")
        prefix = f"{root}/{segment}" if segment else root
        app.register_blueprint(bp, url_prefix=prefix if prefix.startswith("/") else f"/{prefix}")


def init_app(app: Flask) -> None:
    """Mount API v1 under ``API_BASE_PREFIX`` (``/api`` by default)."""

    from wallet_auth.api.v1 import API_VERSION, REGISTRY

    api_base = app.config.get("API_BASE_PREFIX", "/api")
    register_blueprint_group(app, base_prefix=f"{api_base}/{API_VERSION}", entries=REGISTRY)


__all__ = ["init_app", "register_blueprint_group"]
