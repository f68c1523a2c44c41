"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .auth import auth_cli


def init_app(app: Flask) -> None:
    """Register the ``flask auth`` command group on ``app.cli``."""
    app.cli.add_command(auth_cli)
