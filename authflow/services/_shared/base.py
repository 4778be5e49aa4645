# authflow/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from authflow.core import errors as api_errors
from authflow.services._shared.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from authflow.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# Service failure -> HTTP error, checked in order
_TRANSLATIONS: tuple[tuple[type[ServiceError], type[api_errors.APIError]], ...] = (
    (ValidationError, api_errors.BadRequest),
    (UnauthorizedError, api_errors.Unauthorized),
    (NotFoundError, api_errors.NotFound),
    (ConflictError, api_errors.Conflict),
    (InternalError, api_errors.InternalServerError),
)


@dataclass(slots=True)
class ServiceContext:
    """
    Request-scoped data a service may log or authorize against.

    :param actor_id: Authenticated account identifier, when known.
    :param request_id: Correlation id for logging.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Services orchestrate repositories inside units of work and raise
    :mod:`~authflow.services._shared.errors` types; they never touch Flask
    request objects or the global session directly.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Open a read-write unit of work."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """Open a read-only unit of work."""
        return SQLAlchemyReadOnlyUnitOfWork()

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map a service failure to its HTTP counterpart.

        :param exc: Exception raised within a service.
        :returns: The matching :class:`~authflow.core.errors.APIError`; other
            :class:`ServiceError` subclasses become a generic 400 and
            non-service exceptions are returned untouched.
        """
        for service_type, api_type in _TRANSLATIONS:
            if isinstance(exc, service_type):
                return api_type(str(exc))
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")
        return exc
