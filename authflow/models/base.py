"""Column mixins for account tables (SQLAlchemy 2.0 typed mappings)."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


class PKMixin:
    """Integer surrogate key ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class TimestampMixin:
    """Database-maintained ``created_at``/``updated_at``.

    ``updated_at`` carries ``onupdate`` so it also moves on Core ``UPDATE``
    statements, including the refresh-token slot writes.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class ReprMixin:
    """``<Model id=.. attr=..>`` limited to ``__repr_attrs__``.

    Only whitelisted attributes are rendered, so hashes and tokens can never
    end up in logs through ``repr``.
    """

    __repr_attrs__: ClassVar[tuple[str, ...]] = ()

    def __repr__(self) -> str:
        parts = [f"id={getattr(self, 'id', None)}"]
        parts += [f"{name}={getattr(self, name, None)!r}" for name in self.__repr_attrs__]
        return f"<{self.__class__.__name__} {' '.join(parts)}>"
