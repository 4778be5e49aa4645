# authflow/infra/jwt/pyjwt_token_codec.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from authflow.services._shared.ports import (
    TokenCodec,
    TokenCodecConfig,
    TokenExpired,
    TokenInvalid,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(slots=True)
class PyJWTTokenCodec(TokenCodec):
    """
    HS256 JWT codec with separate access and refresh signing keys.

    Access tokens carry the claim layout ``flask-jwt-extended`` expects
    (``sub`` as string, ``type``, ``jti``, ``fresh``), so the request guard
    can verify them with ``JWT_SECRET_KEY`` set to the access secret.

    :param config: Secrets and lifetimes, injected at construction.
    """

    config: TokenCodecConfig

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _encode(
        self,
        *,
        account_id: int,
        token_type: str,
        secret: str,
        expires_delta: timedelta,
        extra: dict[str, Any] | None = None,
    ) -> str:
        now = self._now()
        payload: dict[str, Any] = dict(extra or {})
        payload.update(
            {
                "sub": str(account_id),
                "type": token_type,
                # jti keeps two tokens minted in the same second distinct
                "jti": uuid4().hex,
                "iat": now,
                "nbf": now,
                "exp": now + expires_delta,
            }
        )
        return jwt.encode(payload, secret, algorithm=self.config.algorithm)

    def _decode(self, token: str, *, secret: str, token_type: str) -> int:
        if not isinstance(token, str) or not token:
            raise TokenInvalid("Token is empty")
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.config.algorithm],
                leeway=self.config.leeway,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(str(exc)) from exc

        if payload.get("type") != token_type:
            raise TokenInvalid(f"Expected a {token_type} token")
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise TokenInvalid("Invalid token subject")
        return int(subject)

    # ------------------------------ Issue ------------------------------

    def issue_access_token(
        self, account_id: int, *, claims: dict[str, Any] | None = None
    ) -> str:
        """
        Issue a short-lived access token.

        :param account_id: Account identifier stored in ``sub``.
        :param claims: Optional non-secret identity hints (username, email).
        """
        extra = dict(claims or {})
        extra["fresh"] = False
        return self._encode(
            account_id=account_id,
            token_type=ACCESS_TOKEN_TYPE,
            secret=self.config.access_secret,
            expires_delta=self.config.access_expires,
            extra=extra,
        )

    def issue_refresh_token(self, account_id: int) -> str:
        """Issue a long-lived refresh token carrying the identity only."""
        return self._encode(
            account_id=account_id,
            token_type=REFRESH_TOKEN_TYPE,
            secret=self.config.refresh_secret,
            expires_delta=self.config.refresh_expires,
        )

    # ------------------------------ Verify ------------------------------

    def verify_access_token(self, token: str) -> int:
        return self._decode(
            token, secret=self.config.access_secret, token_type=ACCESS_TOKEN_TYPE
        )

    def verify_refresh_token(self, token: str) -> int:
        """
        Decode a refresh token and return its account id.

        :raises TokenExpired: When ``exp`` has lapsed.
        :raises TokenInvalid: On bad signature, malformed input or wrong type.
        """
        return self._decode(
            token, secret=self.config.refresh_secret, token_type=REFRESH_TOKEN_TYPE
        )
