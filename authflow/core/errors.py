"""Centralized JSON error handling rendering the API failure envelope.

Every failure leaves the API as::

    {"statusCode": 401, "data": null, "message": "...", "success": false,
     "errors": [...], "requestId": "..."}

Stored hashes, tokens and tracebacks never reach the body.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authflow.core.logger import ensure_request_id

log = logging.getLogger(__name__)


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_envelope(
    *,
    status: int,
    code: str,
    message: str,
    errors: list[Any] | None = None,
) -> dict[str, Any]:
    """
    Build the failure envelope.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param errors: Optional safe, structured details.
    :returns: Envelope dictionary.
    :rtype: dict
    """
    return {
        "statusCode": int(status),
        "data": None,
        "message": message,
        "success": False,
        "code": code,
        "errors": errors or [],
        "requestId": ensure_request_id(),
    }


def error_response(envelope: dict[str, Any]) -> tuple[Response, int]:
    """Return a Flask JSON response for ``envelope`` with its status code."""
    return jsonify(envelope), int(envelope["statusCode"])


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier, typically snake_case. Defaults to
        ``"bad_request"``.
    errors : list[Any] | None, optional
        Optional structured payload (e.g., field messages) included in the
        response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        errors: list[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.errors = errors or []

    def to_envelope(self) -> dict[str, Any]:
        """Serialize error metadata into the failure envelope."""
        return _as_envelope(
            status=self.status_code,
            code=self.code,
            message=self.message,
            errors=self.errors,
        )


# Domain conveniences
class BadRequest(APIError):
    """400 for malformed or missing input."""

    def __init__(self, message: str = "Bad request") -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_REQUEST, code="validation_error")


class Unauthorized(APIError):
    """401 when authentication fails."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class NotFound(APIError):
    """404 when resources are missing."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class Conflict(APIError):
    """409 for uniqueness/constraint collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class InternalServerError(APIError):
    """500 for failures the caller cannot fix by changing the request."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
        )


def _log_api_error(err: APIError, request_id: str) -> None:
    level = log.error if err.status_code >= 500 else log.warning
    level(
        "APIError: code=%s status=%s msg=%s request_id=%s",
        err.code,
        err.status_code,
        err.message,
        request_id,
    )


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Service-layer errors are translated by
      :meth:`authflow.services._shared.base.BaseService.translate_exceptions`.
    - Access-token failures raised by ``flask-jwt-extended`` render as 401.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """
    from authflow.core.extensions import jwt
    from authflow.services._shared.base import BaseService
    from authflow.services._shared.errors import ServiceError

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        envelope = err.to_envelope()
        _log_api_error(err, envelope["requestId"])
        return error_response(envelope)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        translated = BaseService.translate_exceptions(err)
        if not isinstance(translated, APIError):  # pragma: no cover - every ServiceError maps
            raise err
        envelope = translated.to_envelope()
        _log_api_error(translated, envelope["requestId"])
        return error_response(envelope)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        envelope = _as_envelope(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: code=%s status=%s detail=%s request_id=%s",
            error_code,
            status,
            message,
            envelope["requestId"],
        )
        return error_response(envelope)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        messages = err.normalized_messages()
        envelope = _as_envelope(
            status=HTTPStatus.BAD_REQUEST,
            code="validation_error",
            message="Validation failed",
            errors=[{"field": field, "messages": msgs} for field, msgs in messages.items()],
        )
        log.warning("ValidationError: request_id=%s", envelope["requestId"])
        return error_response(envelope)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Do not leak raw DB error to clients
        envelope = _as_envelope(
            status=HTTPStatus.CONFLICT,
            code="conflict",
            message="Resource conflict",
        )
        log.error("IntegrityError: request_id=%s", envelope["requestId"], exc_info=True)
        return error_response(envelope)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        envelope = _as_envelope(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError: request_id=%s", envelope["requestId"], exc_info=True)
        return error_response(envelope)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Unexpected server-side error; never leak internal details
        envelope = _as_envelope(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception: request_id=%s", envelope["requestId"], exc_info=True)
        return error_response(envelope)

    # --- flask-jwt-extended request guard ---------------------------------

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return error_response(Unauthorized("Unauthorized request").to_envelope())

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return error_response(Unauthorized("Invalid access token").to_envelope())

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return error_response(Unauthorized("Access token expired").to_envelope())
