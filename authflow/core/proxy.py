"""Reverse-proxy awareness for cookie-issuing deployments."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from ``PROXY_HOPS`` proxies.

    Session cookies are flagged ``Secure``; behind a TLS-terminating proxy
    the app only sees ``https`` once ``X-Forwarded-Proto`` is honoured.
    ``USE_PROXYFIX = False`` (tests, direct exposure) skips the middleware.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXY_HOPS", 1))
    app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
        app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops
    )
