"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    The request throttle keys clients by ``request.remote_addr``; behind a
    reverse proxy that address is only the real client once ``X-Forwarded-For``
    has been resolved here.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (defaults to ``True``) and
    ``PROXY_TRUSTED_HOPS`` (defaults to ``1``).
    """
    if app.config.get("USE_PROXYFIX", True):
        hops = int(app.config.get("PROXY_TRUSTED_HOPS", 1))
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops)
