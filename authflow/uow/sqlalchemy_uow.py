"""
Units of work bound to the Flask-scoped SQLAlchemy session.
"""

from __future__ import annotations

from contextlib import suppress
from typing import Self

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from authflow.core.extensions import db
from authflow.repositories import UserRepository
from authflow.uow.base import UnitOfWork


class _SessionScope(UnitOfWork):
    """Expose the account repository over the current scoped session."""

    def __init__(self) -> None:
        self.session: scoped_session[Session] = db.session
        self.users = UserRepository(session=self.session)

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyUnitOfWork(_SessionScope):
    """
    Read-write scope: commit on success, roll back on error.

    The session begins lazily on the first statement.
    """

    def commit(self) -> None:
        self.session.commit()


class SQLAlchemyReadOnlyUnitOfWork(_SessionScope):
    """
    Read-only scope over the same session.

    A ``before_flush`` guard rejects pending inserts, updates and deletes,
    and ``commit()`` always raises. On exit the scope rolls back only a
    transaction it started itself; when it joins one already running (an
    outer test fixture, an earlier flush in the same request) it leaves it
    alone.

    Notes
    -----
    Core ``UPDATE`` statements bypass the ORM flush and are therefore not
    intercepted; read-only callers must only use lookup methods.
    """

    def __init__(self) -> None:
        super().__init__()
        self._owns_transaction = False
        self._guarded = False

    def __enter__(self) -> Self:
        self._owns_transaction = not self.session().in_transaction()
        event.listen(self.session, "before_flush", self._block_writes)
        self._guarded = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_transaction:
                self.rollback()
        finally:
            self._owns_transaction = False
            if self._guarded:
                with suppress(Exception):
                    event.remove(self.session, "before_flush", self._block_writes)
                self._guarded = False

    @staticmethod
    def _block_writes(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")
