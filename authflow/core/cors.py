"""CORS policy for a cookie-authenticated browser client."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

# Headers the browser client may send / read on cross-origin calls
ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-Request-ID"]
EXPOSED_HEADERS = ["X-Request-ID"]


def _origins(raw: str) -> list[str]:
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


def init_app(app: Flask) -> None:
    """Allow the configured ``CORS_ORIGINS`` to call ``/api/*`` with cookies.

    Credentials (the ``accessToken``/``refreshToken`` cookies) require an
    explicit origin list. An empty or ``"*"`` setting opens the API to every
    origin without credentials, so only bearer-token clients work there.
    """
    origins = _origins(app.config.get("CORS_ORIGINS", ""))
    with_credentials = bool(origins) and origins != ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": origins if with_credentials else "*"}},
        supports_credentials=with_credentials,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=EXPOSED_HEADERS,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
