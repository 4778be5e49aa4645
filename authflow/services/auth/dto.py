# authflow/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param full_name: Display name.
    :param email: Login email.
    :param username: Public handle (lower-cased on create).
    :param password: Raw password (hashed by the model).
    :param avatar_path: Local path of the staged avatar file.
    :param cover_image_path: Local path of the staged cover image, if any.
    """

    full_name: str | None
    email: str | None
    username: str | None
    password: str | None
    avatar_path: str | None = None
    cover_image_path: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login. At least one of ``username``/``email`` is required.

    :param password: Raw password (to be verified).
    :type password: str
    """

    password: str | None
    username: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh token (cookie or body), if any.
    :type refresh_token: str | None
    """

    refresh_token: str | None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AccountView:
    """
    Sanitized account: no password hash, no refresh token.
    """

    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class LoginOut:
    """Logged-in account plus its freshly issued token pair."""

    user: AccountView
    tokens: TokenPairOut


# ------------------------ Config DTO ------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegistrationPolicy:
    """
    Media policy applied during registration.

    :param cover_image_required: Treat the cover image like the avatar: it
        must be supplied and stored, or registration is rejected.
    :param cover_image_fallback: Stored cover value when none was uploaded.
    """

    cover_image_required: bool = False
    cover_image_fallback: str = ""
