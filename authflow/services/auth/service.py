# authflow/services/auth/service.py
from __future__ import annotations

import hmac
import logging
from typing import Any

from authflow.models.user import User
from authflow.repositories.user import UserRepository
from authflow.services._shared.base import BaseService, ServiceContext
from authflow.services._shared.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from authflow.services._shared.ports import TokenCodec, TokenExpired, TokenInvalid
from authflow.services.auth.dto import (
    AccountView,
    LoginIn,
    LoginOut,
    RefreshIn,
    RegisterIn,
    RegistrationPolicy,
    TokenPairOut,
)
from authflow.services.media.intake import MediaIntake

log = logging.getLogger(__name__)

TOKEN_GENERATION_FAILED = "Something went wrong while generating refresh and access token"
REGISTRATION_UNCONFIRMED = "Something went wrong while registering the user"


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


class AuthService(BaseService):
    """
    Session lifecycle service (register / login / refresh / logout).

    Each account owns a single refresh-token slot. Login and refresh
    overwrite it, logout clears it, and a refresh is honoured only when the
    presented token equals the slot's current value, which turns every
    superseded token into a detectable replay.
    """

    def __init__(
        self,
        *,
        token_codec: TokenCodec,
        media: MediaIntake,
        policy: RegistrationPolicy | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its collaborators.

        :param token_codec: Issues and verifies access/refresh tokens.
        :param media: Uploads staged avatar/cover files.
        :param policy: Cover-image policy; defaults to optional cover.
        :param ctx: Optional request-scoped context.
        """
        super().__init__(ctx=ctx)
        self.tokens = token_codec
        self.media = media
        self.policy = policy or RegistrationPolicy()

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AccountView:
        """
        Create an account with an uploaded avatar (and optional cover image).

        Staged files are removed on every path: uploaded ones by
        :class:`MediaIntake`, rejected ones before raising.

        :param dto: Registration input.
        :returns: Sanitized view of the created account.
        :raises ValidationError: On blank fields or a missing/unstored avatar.
        :raises ConflictError: If username or email is taken.
        :raises InternalError: If the created account cannot be re-read.
        """
        try:
            if any(
                _blank(v) for v in (dto.full_name, dto.email, dto.username, dto.password)
            ):
                raise ValidationError("All fields are required")

            # Existence check precedes any upload
            with self.ro_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_username_or_email(dto.username, dto.email):
                    raise ConflictError("User", "User with email or username already exists")

            if _blank(dto.avatar_path):
                raise ValidationError("Avatar file is required")
            if self.policy.cover_image_required and _blank(dto.cover_image_path):
                raise ValidationError("Cover image file is required")
        except Exception:
            self.media.discard(dto.avatar_path, dto.cover_image_path)
            raise

        avatar_url = None
        try:
            avatar_url = self.media.upload(dto.avatar_path)
        finally:
            if not avatar_url:
                self.media.discard(dto.cover_image_path)
        if not avatar_url:
            raise ValidationError("Avatar file is required")

        cover_url = self.media.upload(dto.cover_image_path)
        if not cover_url:
            if self.policy.cover_image_required:
                raise ValidationError("Cover image upload failed")
            cover_url = self.policy.cover_image_fallback

        try:
            with self.rw_uow() as uow:
                repo_rw: UserRepository = uow.users
                user = repo_rw.create(
                    {
                        "full_name": str(dto.full_name).strip(),
                        "avatar": avatar_url,
                        "cover_image": cover_url,
                        "email": str(dto.email).strip(),
                        "password": dto.password,
                        "username": str(dto.username).strip().lower(),
                    }
                )
                user_id = user.id
        except ValueError as exc:
            # Model validators reject malformed values (e.g. email without "@")
            raise ValidationError(str(exc)) from exc

        with self.ro_uow() as uow:
            created = uow.users.get(user_id)
            if created is None:
                raise InternalError(REGISTRATION_UNCONFIRMED)
            view = self._to_view(created)

        log.info("auth.register", extra={"account_id": user_id})
        return view

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Login input (username or email, plus password).
        :returns: Sanitized account and its new token pair.
        :raises ValidationError: If neither username nor email is given.
        :raises NotFoundError: If no account matches.
        :raises UnauthorizedError: If the password does not match.
        """
        if _blank(dto.username) and _blank(dto.email):
            raise ValidationError("username or email is required")

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_username_or_email(username=dto.username, email=dto.email)
            if user is None:
                raise NotFoundError("User", "User does not exist")
            if not repo.verify_password(user, dto.password or ""):
                log.warning("auth.login.invalid_credentials", extra={"account_id": user.id})
                raise UnauthorizedError("Invalid user credentials")
            user_id = user.id
            claims = self._claims(user)

        tokens = self._issue_token_pair(user_id, claims=claims)

        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise InternalError(TOKEN_GENERATION_FAILED)
            view = self._to_view(user)

        log.info("auth.login", extra={"account_id": user_id})
        return LoginOut(user=view, tokens=tokens)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, account_id: int) -> None:
        """
        Clear the account's refresh-token slot.

        The caller must already have validated the access token.

        :raises UnauthorizedError: If the account no longer exists.
        """
        with self.rw_uow() as uow:
            if not uow.users.set_refresh_token(account_id, None):
                raise UnauthorizedError("Invalid access token")
        log.info("auth.logout", extra={"account_id": account_id})

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token and emit a new token pair.

        :param dto: Incoming refresh token (cookie or body).
        :returns: New access/refresh pair; the old refresh token is dead.
        :raises UnauthorizedError: When the token is missing, invalid,
            expired, unknown, or no longer the account's current token.
        """
        incoming = (dto.refresh_token or "").strip()
        if not incoming:
            raise UnauthorizedError("Unauthorized request")

        try:
            account_id = self.tokens.verify_refresh_token(incoming)
        except TokenExpired as exc:
            raise UnauthorizedError("Refresh token is expired") from exc
        except TokenInvalid as exc:
            raise UnauthorizedError("Invalid refresh token") from exc

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(account_id)
            if user is None:
                raise UnauthorizedError("Invalid refresh token")
            claims = self._claims(user)
            stored = repo.get_refresh_token(account_id)

        if stored is None or not hmac.compare_digest(incoming, stored):
            log.warning("auth.refresh.reuse_detected", extra={"account_id": account_id})
            raise UnauthorizedError("Refresh token is expired or used")

        tokens = self._issue_token_pair(account_id, claims=claims, replaces=incoming)
        log.info("auth.refresh", extra={"account_id": account_id})
        return tokens

    # ------------------------------------------------------------------ #
    # Current account
    # ------------------------------------------------------------------ #

    def current_account(self, account_id: int) -> AccountView:
        """
        Return the sanitized view of an authenticated account.

        :raises UnauthorizedError: If the account no longer exists.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(account_id)
            if user is None:
                raise UnauthorizedError("Invalid access token")
            return self._to_view(user)

    # ------------------------------------------------------------------ #
    # Token pair issuance
    # ------------------------------------------------------------------ #

    def _issue_token_pair(
        self,
        account_id: int,
        *,
        claims: dict[str, Any] | None = None,
        replaces: str | None = None,
    ) -> TokenPairOut:
        """
        Issue an access/refresh pair and store the refresh token in the slot.

        With ``replaces`` the slot is swapped only if it still holds that
        token; losing that race means another rotation consumed it first.

        :raises UnauthorizedError: If ``replaces`` was already rotated away.
        :raises InternalError: On any signing or persistence failure.
        """
        try:
            with self.rw_uow() as uow:
                access = self.tokens.issue_access_token(account_id, claims=claims)
                refresh = self.tokens.issue_refresh_token(account_id)
                if replaces is not None:
                    if not uow.users.swap_refresh_token(account_id, replaces, refresh):
                        raise UnauthorizedError("Refresh token is expired or used")
                elif not uow.users.set_refresh_token(account_id, refresh):
                    raise InternalError(TOKEN_GENERATION_FAILED)
        except ServiceError:
            raise
        except Exception as exc:
            log.error(
                "auth.tokens.generation_failed",
                extra={"account_id": account_id},
                exc_info=True,
            )
            raise InternalError(TOKEN_GENERATION_FAILED) from exc

        return TokenPairOut(access_token=access, refresh_token=refresh)

    # ------------------------------------------------------------------ #
    # Mapping
    # ------------------------------------------------------------------ #

    @staticmethod
    def _claims(user: User) -> dict[str, Any]:
        """Non-secret identity hints embedded in access tokens."""
        return {"username": user.username, "email": user.email}

    @staticmethod
    def _to_view(user: User) -> AccountView:
        """
        Map ORM ``User`` to :class:`AccountView`.

        :param user: ORM user instance.
        :returns: Sanitized DTO without password hash or refresh token.
        """
        return AccountView(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar,
            cover_image=user.cover_image,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
