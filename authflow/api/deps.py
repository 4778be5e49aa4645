"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import os
import time
import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from flask import Flask, Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from authflow.core.logger import ensure_request_id
from authflow.infra.cloudinary.cloudinary_media_store import CloudinaryMediaStore
from authflow.infra.jwt.pyjwt_token_codec import PyJWTTokenCodec
from authflow.services._shared.base import ServiceContext
from authflow.services._shared.ports import MediaStore, TokenCodec, TokenCodecConfig
from authflow.services.auth.dto import RegistrationPolicy
from authflow.services.auth.service import AuthService
from authflow.services.media.intake import MediaIntake

F = TypeVar("F", bound=Callable[..., Any])

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

# app.extensions keys for swappable service dependencies
TOKEN_CODEC_KEY = "authflow.token_codec"
MEDIA_STORE_KEY = "authflow.media_store"


# ------------------------------ Responses ------------------------------ #


def api_response(data: Any, message: str = "Success", *, status: int = 200) -> Response:
    """Return the success envelope ``{statusCode, data, message, success}``."""

    response = jsonify(
        {
            "statusCode": status,
            "data": data,
            "message": message,
            "success": status < 400,
        }
    )
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


# ------------------------------ Auth guard ------------------------------ #


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token (cookie or bearer)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_account_id() -> int:
    """Return the verified ``sub`` claim as an integer account id."""

    return int(get_jwt_identity())


def service_context() -> ServiceContext:
    """Build the request-scoped service context."""

    return ServiceContext(request_id=ensure_request_id())


# ------------------------------ Cookies ------------------------------ #


def _cookie_options() -> dict[str, Any]:
    return {
        "httponly": True,
        "secure": bool(current_app.config.get("AUTH_COOKIE_SECURE", True)),
        "samesite": current_app.config.get("AUTH_COOKIE_SAMESITE"),
        "path": "/",
    }


def set_session_cookies(response: Response, *, access_token: str, refresh_token: str) -> None:
    """Attach both session cookies, each expiring with its token."""

    options = _cookie_options()
    access_age = timedelta(minutes=int(current_app.config["ACCESS_TOKEN_EXPIRY"]))
    refresh_age = timedelta(days=int(current_app.config["REFRESH_TOKEN_EXPIRY"]))
    response.set_cookie(ACCESS_COOKIE, access_token, max_age=access_age, **options)
    response.set_cookie(REFRESH_COOKIE, refresh_token, max_age=refresh_age, **options)


def clear_session_cookies(response: Response) -> None:
    """Expire both session cookies using the flags they were set with."""

    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


# ------------------------------ Uploads ------------------------------ #


def stage_upload(storage: FileStorage | None) -> str | None:
    """Save a multipart file under ``UPLOAD_FOLDER`` and return its path.

    Empty parts (no filename) count as absent. The staged file belongs to
    the service from here on; it removes it whatever the outcome.
    """

    if storage is None or not storage.filename:
        return None
    folder = current_app.config.get("UPLOAD_FOLDER", "./public/temp")
    os.makedirs(folder, exist_ok=True)
    name = secure_filename(storage.filename) or "upload"
    path = os.path.join(folder, f"{uuid.uuid4().hex}-{name}")
    storage.save(path)
    return path


# ------------------------------ Services ------------------------------ #


def build_token_codec(app: Flask) -> TokenCodec:
    """Build the PyJWT codec from the app's token settings."""

    cfg = app.config
    return PyJWTTokenCodec(
        TokenCodecConfig(
            access_secret=cfg["ACCESS_TOKEN_SECRET"],
            access_expires=timedelta(minutes=int(cfg["ACCESS_TOKEN_EXPIRY"])),
            refresh_secret=cfg["REFRESH_TOKEN_SECRET"],
            refresh_expires=timedelta(days=int(cfg["REFRESH_TOKEN_EXPIRY"])),
        )
    )


def build_media_store(app: Flask) -> MediaStore:
    """Build the Cloudinary adapter from the app's media settings."""

    cfg = app.config
    return CloudinaryMediaStore(
        cloud_name=cfg.get("CLOUDINARY_CLOUD_NAME", ""),
        api_key=cfg.get("CLOUDINARY_API_KEY", ""),
        api_secret=cfg.get("CLOUDINARY_API_SECRET", ""),
        folder=cfg.get("CLOUDINARY_FOLDER"),
        timeout=float(cfg.get("MEDIA_UPLOAD_TIMEOUT", 30)),
    )


def init_app(app: Flask) -> None:
    """Create the per-app service dependencies unless already provided."""

    app.extensions.setdefault(TOKEN_CODEC_KEY, build_token_codec(app))
    app.extensions.setdefault(MEDIA_STORE_KEY, build_media_store(app))


def build_auth_service() -> AuthService:
    """Return an :class:`AuthService` wired with the current app's dependencies."""

    cfg = current_app.config
    return AuthService(
        token_codec=current_app.extensions[TOKEN_CODEC_KEY],
        media=MediaIntake(current_app.extensions[MEDIA_STORE_KEY]),
        policy=RegistrationPolicy(
            cover_image_required=bool(cfg.get("COVER_IMAGE_REQUIRED", False)),
            cover_image_fallback=str(cfg.get("COVER_IMAGE_FALLBACK", "")),
        ),
        ctx=service_context(),
    )
