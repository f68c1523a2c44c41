"""Flask CLI commands for refresh-credential housekeeping."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from wallet_auth.core.wiring import get_components

LOGGER = logging.getLogger(__name__)


@click.group("auth")
def auth_cli() -> None:
    """Authentication maintenance commands."""


@auth_cli.command("cleanup-refresh-tokens")
@with_appcontext
def cleanup_refresh_tokens_command() -> None:
    """Delete refresh credentials whose expiry has passed."""
    removed = get_components().refresh_store.cleanup_expired()
    LOGGER.info("Expired refresh credentials removed", extra={"event": "cleanup", "removed": removed})
    click.echo(f"Removed {removed} expired refresh credential(s).")
