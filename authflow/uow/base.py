"""
Unit-of-work contract shared by the read-write and read-only scopes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Self

from authflow.repositories.user import UserRepository


class UnitOfWork(ABC):
    """
    One transactional boundary per service call.

    ``with`` blocks commit when they exit cleanly and roll back when an
    exception escapes; a failed commit is rolled back and re-raised.
    Subclasses supply ``commit``/``rollback`` and may override the hooks.
    """

    users: UserRepository

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
