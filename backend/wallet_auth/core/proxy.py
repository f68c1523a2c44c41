"""Trust ``X-Forwarded-*`` headers so client IPs recorded on sessions are real."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app in :class:`ProxyFix` unless ``USE_PROXYFIX`` is off.

    ``PROXY_HOPS`` (default 1) is the number of reverse proxies in front of
    the app; refresh credentials store ``request.remote_addr`` as seen after
    this middleware.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
