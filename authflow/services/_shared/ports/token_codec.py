from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol


class TokenError(Exception):
    """Base class for token decoding failures."""


class TokenInvalid(TokenError):
    """Bad signature, malformed input, wrong token type or unusable subject."""


class TokenExpired(TokenError):
    """The token's ``exp`` claim has lapsed."""


@dataclass(frozen=True, slots=True)
class TokenCodecConfig:
    """
    Signing configuration injected into a :class:`TokenCodec`.

    :param access_secret: Key signing access tokens.
    :param access_expires: Access token lifetime (minutes scale).
    :param refresh_secret: Key signing refresh tokens; must differ from ``access_secret``.
    :param refresh_expires: Refresh token lifetime (days scale).
    :param algorithm: JWS algorithm.
    :param leeway: Clock skew tolerated when checking ``exp``/``nbf``.
    """

    access_secret: str
    access_expires: timedelta
    refresh_secret: str
    refresh_expires: timedelta
    algorithm: str = "HS256"
    leeway: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Token signing secrets must be non-empty.")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct signing secrets.")


class TokenCodec(Protocol):
    """Port for issuing and verifying signed, expiring session tokens."""

    def issue_access_token(
        self, account_id: int, *, claims: dict[str, Any] | None = None
    ) -> str: ...

    def issue_refresh_token(self, account_id: int) -> str: ...

    def verify_access_token(self, token: str) -> int: ...

    def verify_refresh_token(self, token: str) -> int: ...


class StubTokenCodec(TokenCodec):
    """
    Deterministic, unsigned codec used in unit tests.

    Tokens look like ``access.<id>.<seq>`` / ``refresh.<id>.<seq>``; every
    issued token is unique. ``expire(token)`` marks a token as lapsed.
    """

    def __init__(self) -> None:
        self._seq = 0
        self._issued: dict[str, tuple[str, int]] = {}
        self._expired: set[str] = set()
        self.fail_next_issue: Exception | None = None

    def _mk(self, ttype: str, account_id: int) -> str:
        if self.fail_next_issue is not None:
            exc, self.fail_next_issue = self.fail_next_issue, None
            raise exc
        self._seq += 1
        token = f"{ttype}.{account_id}.{self._seq}"
        self._issued[token] = (ttype, int(account_id))
        return token

    def issue_access_token(
        self, account_id: int, *, claims: dict[str, Any] | None = None
    ) -> str:
        return self._mk("access", account_id)

    def issue_refresh_token(self, account_id: int) -> str:
        return self._mk("refresh", account_id)

    def expire(self, token: str) -> None:
        self._expired.add(token)

    def _verify(self, token: str, ttype: str) -> int:
        entry = self._issued.get(token)
        if entry is None or entry[0] != ttype:
            raise TokenInvalid("Unknown token")
        if token in self._expired:
            raise TokenExpired("Token expired")
        return entry[1]

    def verify_access_token(self, token: str) -> int:
        return self._verify(token, "access")

    def verify_refresh_token(self, token: str) -> int:
        return self._verify(token, "refresh")
