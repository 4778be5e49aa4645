"""Repository base: session resolution and primary-key access.

Repositories never open, commit or roll back transactions; the unit of work
that owns the session does.
"""

from __future__ import annotations

from typing import Generic, TypeVar, cast

from sqlalchemy.orm import Session

from authflow.core.extensions import db

M = TypeVar("M")  # mapped model


class BaseRepository(Generic[M]):
    """Persistence helpers for one mapped model.

    Subclasses set ``model``. The session is the one injected by the unit of
    work, falling back to the Flask-scoped session.
    """

    model: type[M]

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    def add(self, instance: M) -> M:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.session.flush()
        return instance

    def get(self, entity_id: int) -> M | None:
        """Return the row with primary key ``entity_id``, or ``None``."""
        return self.session.get(self.model, entity_id)
