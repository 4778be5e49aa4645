"""Application factory for the account/session API."""

from __future__ import annotations

from flask import Flask

from authflow.api import deps
from authflow.core import cors, errors, extensions, proxy
from authflow.core.config import BaseConfig, get_config
from authflow.core.logger import configure_logging, init_app as init_logging
from authflow.services._shared.ports import MediaStore, TokenCodec


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    token_codec: TokenCodec | None = None,
    media_store: MediaStore | None = None,
) -> Flask:
    """Build the Flask app.

    :param config: Config object or import path; defaults to the class
        selected by ``APP_ENV``.
    :param token_codec: Overrides the PyJWT codec built from config.
    :param media_store: Overrides the Cloudinary adapter built from config.
    """
    app = Flask(__name__)
    app.config.from_object(get_config() if config is None else config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    proxy.init_app(app)
    extensions.init_app(app)
    init_logging(app)
    cors.init_app(app)

    if token_codec is not None:
        app.extensions[deps.TOKEN_CODEC_KEY] = token_codec
    if media_store is not None:
        app.extensions[deps.MEDIA_STORE_KEY] = media_store

    from authflow.api import init_app as init_api

    init_api(app)
    errors.init_app(app)
    return app
