"""Liveness/readiness probe."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authflow.api.deps import api_response, timing
from authflow.core.extensions import db

bp = Blueprint("health", __name__)
log = logging.getLogger(__name__)


def _database_ok() -> bool:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        log.exception("health.db_unreachable")
        db.session.rollback()
        return False
    return True


@bp.get("/health")
@timing
def healthcheck():
    """Report process liveness, database reachability and media-store setup."""

    cfg = current_app.config
    db_ok = _database_ok()
    media_ok = all(
        cfg.get(key)
        for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
    )
    payload = {
        "status": "ok" if db_ok else "degraded",
        "db": "ok" if db_ok else "fail",
        "media": "configured" if media_ok else "missing",
        "version": cfg.get("APP_VERSION", "dev"),
    }
    return api_response(payload, "OK" if db_ok else "Degraded", status=200 if db_ok else 503)
