"""Convenience exports for application schemas."""

from __future__ import annotations

from .account import AccountSchema
from .auth import LoginSchema, RefreshSchema, RegisterSchema, TokenPairSchema

__all__ = [
    "AccountSchema",
    "LoginSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenPairSchema",
]
