"""Transactional scopes used by the service layer."""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = ["UnitOfWork", "SQLAlchemyReadOnlyUnitOfWork", "SQLAlchemyUnitOfWork"]
