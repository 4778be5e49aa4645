"""Persistence-only repositories shared by the Unit of Work."""

from authflow.repositories.base import BaseRepository
from authflow.repositories.user import UserRepository

__all__ = ["BaseRepository", "UserRepository"]
