"""Application factory wiring Flask extensions, components and blueprints."""

from __future__ import annotations

from typing import Any

from flask import Flask

from wallet_auth.core.config import BaseConfig, get_config
from wallet_auth.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
    **component_overrides: Any,
) -> Flask:
    """Build and configure the Flask application.

    ``component_overrides`` are forwarded to
    :func:`wallet_auth.core.wiring.build_auth_components` (e.g. a stub
    ``provider_verifier`` in tests).
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from wallet_auth.core import proxy

    proxy.init_app(app)

    from wallet_auth.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from wallet_auth.core import cors

    cors.init_app(app)

    from wallet_auth.core import wiring

    wiring.init_app(app, **component_overrides)

    from wallet_auth.api import init_app as init_api

    init_api(app)

    from wallet_auth.core import errors

    errors.init_app(app)

    from wallet_auth import cli as app_cli

    app_cli.init_app(app)

    return app
