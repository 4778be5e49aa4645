"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They form the closed set of failure kinds every
authentication operation surfaces to its caller:

============================  ======  =============================
Exception                     HTTP    Meaning
============================  ======  =============================
:class:`ValidationError`      400     malformed or missing input
:class:`UnauthorizedError`    401     bad credentials or token
:class:`NotFoundError`        404     account absent
:class:`ConflictError`        409     username/email already taken
:class:`InternalError`        500     unexpected persistence/token failure
============================  ======  =============================

The translation to HTTP responses is handled by ``authflow/core/errors.py``
via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint. SQLite only
        reports column names, so ``users.email`` style messages match too.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    # uq_<table>_<column> -> "<table>.<column>"
    parts = constraint_name.lower().split("_", 2)
    return len(parts) == 3 and f"{parts[1]}.{parts[2]}" in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The API layer translates them to ``APIError``.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class ValidationError(ServiceError):
    """Raised when required input is missing or blank."""

    def __init__(self, message: str = "All fields are required") -> None:
        super().__init__(message)


class UnauthorizedError(ServiceError):
    """Raised for bad credentials and missing, invalid, expired or replayed tokens."""

    def __init__(self, message: str = "Unauthorized request") -> None:
        super().__init__(message)


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param message: Human-readable explanation.
    :type message: str
    """

    entity: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return self.detail


class InternalError(ServiceError):
    """
    Raised when an operation nominally ran but could not complete or be confirmed.

    The original cause is chained via ``raise ... from``; it is logged, never
    shown to clients.
    """

    def __init__(self, message: str = "Something went wrong") -> None:
        super().__init__(message)
