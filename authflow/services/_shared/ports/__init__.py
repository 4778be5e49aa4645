"""
authflow.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts for
token signing and media storage.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`, its injected :class:`~.TokenCodecConfig`
    and the :class:`~.TokenInvalid` / :class:`~.TokenExpired` failures.

- :mod:`media_store`:
    Defines :class:`~.MediaStore` and :class:`~.UploadResult`, the contract
    of the third-party asset store used during registration.

Concrete adapters (PyJWT, Cloudinary) live under ``authflow.infra``; the
in-memory doubles next to each port serve unit tests.
"""

from __future__ import annotations

from .media_store import InMemoryMediaStore, MediaStore, MediaStoreError, UploadResult
from .token_codec import (
    StubTokenCodec,
    TokenCodec,
    TokenCodecConfig,
    TokenError,
    TokenExpired,
    TokenInvalid,
)

__all__ = [
    "TokenCodec",
    "TokenCodecConfig",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "StubTokenCodec",
    "MediaStore",
    "MediaStoreError",
    "UploadResult",
    "InMemoryMediaStore",
]
