# tests/unit/services/test_auth_service.py
from __future__ import annotations

import os

import pytest

from authflow.models.user import User
from authflow.services._shared.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from authflow.services._shared.ports import InMemoryMediaStore, StubTokenCodec
from authflow.services.auth.dto import (
    AccountView,
    LoginIn,
    LoginOut,
    RefreshIn,
    RegisterIn,
    RegistrationPolicy,
    TokenPairOut,
)
from authflow.services.auth.service import AuthService
from authflow.services.media.intake import MediaIntake
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


def _register_in(avatar: str | None, cover: str | None = None, **overrides) -> RegisterIn:
    data = {
        "full_name": "Ada Lovelace",
        "email": "ada@example.com",
        "username": "AdaL",
        "password": "analytical",
    }
    data.update(overrides)
    return RegisterIn(avatar_path=avatar, cover_image_path=cover, **data)


def _slot(session, user_id: int) -> str | None:
    session.expire_all()
    return session.get(User, user_id).refresh_token


def _service(codec, store, **policy) -> AuthService:
    return AuthService(
        token_codec=codec, media=MediaIntake(store), policy=RegistrationPolicy(**policy)
    )


# ------------------------------- Register --------------------------------- #
class TestRegister:
    def test_creates_account_with_uploaded_avatar(self, auth_service, media_store, staged, session):
        avatar = staged("avatar.png")

        view = auth_service.register(_register_in(avatar))

        assert isinstance(view, AccountView)
        assert view.username == "adal"
        assert view.email == "ada@example.com"
        assert view.avatar == "https://media.test/upload/avatar.png"
        assert view.cover_image == ""
        assert not hasattr(view, "password_hash")
        assert not hasattr(view, "refresh_token")
        assert media_store.uploaded == [avatar]
        assert not os.path.exists(avatar)

        stored = session.get(User, view.id)
        assert stored.password_hash != "analytical"
        assert stored.verify_password("analytical")
        assert stored.refresh_token is None

    def test_stores_cover_when_uploaded(self, auth_service, staged):
        avatar, cover = staged("a.png"), staged("c.png")
        view = auth_service.register(_register_in(avatar, cover))
        assert view.cover_image == "https://media.test/upload/c.png"
        assert not os.path.exists(cover)

    @pytest.mark.parametrize("blank", ["full_name", "email", "username", "password"])
    def test_blank_field_rejected_and_files_removed(self, auth_service, media_store, staged, blank):
        avatar, cover = staged("a.png"), staged("c.png")

        with pytest.raises(ValidationError, match="All fields are required"):
            auth_service.register(_register_in(avatar, cover, **{blank: "   "}))

        assert media_store.uploaded == []
        assert not os.path.exists(avatar)
        assert not os.path.exists(cover)

    def test_conflict_checked_before_upload(self, auth_service, media_store, staged):
        UserFactory(username="adal", email="someone@example.com")
        avatar = staged()

        with pytest.raises(ConflictError, match="User with email or username already exists"):
            auth_service.register(_register_in(avatar))

        assert media_store.uploaded == []
        assert not os.path.exists(avatar)

    def test_conflict_on_email(self, auth_service, staged):
        UserFactory(username="other", email="ada@example.com")
        with pytest.raises(ConflictError):
            auth_service.register(_register_in(staged()))

    def test_missing_avatar_rejected(self, auth_service, media_store, staged):
        cover = staged("c.png")

        with pytest.raises(ValidationError, match="Avatar file is required"):
            auth_service.register(_register_in(None, cover))

        assert media_store.uploaded == []
        assert not os.path.exists(cover)

    def test_failed_avatar_upload_creates_nothing(self, token_codec, staged, session):
        avatar, cover = staged("a.png"), staged("c.png")
        store = InMemoryMediaStore(fail_paths={avatar})
        service = _service(token_codec, store)

        with pytest.raises(ValidationError, match="Avatar file is required"):
            service.register(_register_in(avatar, cover))

        assert store.uploaded == []
        assert not os.path.exists(avatar)
        assert not os.path.exists(cover)
        assert session.query(User).filter_by(email="ada@example.com").first() is None

    def test_unexpected_avatar_store_error_is_a_validation_error(self, token_codec, staged):
        avatar, cover = staged("a.png"), staged("c.png")

        class _BrokenStore:
            def upload(self, local_path):
                raise AttributeError("'list' object has no attribute 'get'")

        service = _service(token_codec, _BrokenStore())

        with pytest.raises(ValidationError, match="Avatar file is required"):
            service.register(_register_in(avatar, cover))
        assert not os.path.exists(avatar)
        assert not os.path.exists(cover)

    def test_failed_cover_upload_falls_back(self, token_codec, staged):
        avatar, cover = staged("a.png"), staged("c.png")
        service = _service(token_codec, InMemoryMediaStore(fail_paths={cover}))

        view = service.register(_register_in(avatar, cover))

        assert view.cover_image == ""
        assert not os.path.exists(cover)

    def test_custom_cover_fallback(self, token_codec, staged):
        service = _service(
            token_codec, InMemoryMediaStore(), cover_image_fallback="https://cdn/default.png"
        )
        view = service.register(_register_in(staged()))
        assert view.cover_image == "https://cdn/default.png"

    def test_required_cover_missing(self, token_codec, staged):
        avatar = staged()
        service = _service(token_codec, InMemoryMediaStore(), cover_image_required=True)

        with pytest.raises(ValidationError, match="Cover image file is required"):
            service.register(_register_in(avatar))
        assert not os.path.exists(avatar)

    def test_required_cover_upload_failure(self, token_codec, staged, session):
        avatar, cover = staged("a.png"), staged("c.png")
        store = InMemoryMediaStore(fail_paths={cover})
        service = _service(token_codec, store, cover_image_required=True)

        with pytest.raises(ValidationError, match="Cover image upload failed"):
            service.register(_register_in(avatar, cover))
        assert session.query(User).filter_by(email="ada@example.com").first() is None

    def test_malformed_email_is_a_validation_error(self, auth_service, staged):
        with pytest.raises(ValidationError):
            auth_service.register(_register_in(staged(), email="no-at-sign"))


# -------------------------------- Login ----------------------------------- #
class TestLogin:
    def test_issues_pair_and_stores_refresh_token(self, auth_service, session):
        user = UserFactory(username="grace", email="grace@example.com")

        out = auth_service.login(LoginIn(username="grace", password=DEFAULT_PASSWORD))

        assert isinstance(out, LoginOut)
        assert isinstance(out.tokens, TokenPairOut)
        assert out.tokens.access_token.startswith("access.")
        assert out.tokens.refresh_token.startswith("refresh.")
        assert out.user.id == user.id
        assert _slot(session, user.id) == out.tokens.refresh_token

    def test_username_lookup_ignores_case(self, auth_service):
        UserFactory(username="grace")
        out = auth_service.login(LoginIn(username="GRACE", password=DEFAULT_PASSWORD))
        assert out.user.username == "grace"

    def test_login_by_email(self, auth_service):
        user = UserFactory(email="hopper@example.com")
        out = auth_service.login(LoginIn(email="hopper@example.com", password=DEFAULT_PASSWORD))
        assert out.user.id == user.id

    def test_requires_an_identifier(self, auth_service):
        with pytest.raises(ValidationError, match="username or email is required"):
            auth_service.login(LoginIn(username=" ", email=None, password="x"))

    def test_unknown_account(self, auth_service):
        with pytest.raises(NotFoundError, match="User does not exist"):
            auth_service.login(LoginIn(email="missing@example.com", password="x"))

    def test_wrong_password_leaves_slot_untouched(self, auth_service, session):
        user = UserFactory()
        first = auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

        with pytest.raises(UnauthorizedError, match="Invalid user credentials"):
            auth_service.login(LoginIn(username=user.username, password="nope"))

        assert _slot(session, user.id) == first.tokens.refresh_token

    def test_second_login_supersedes_first_session(self, auth_service):
        user = UserFactory()
        first = auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
        auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

        with pytest.raises(UnauthorizedError, match="Refresh token is expired or used"):
            auth_service.refresh(RefreshIn(refresh_token=first.tokens.refresh_token))

    def test_token_failure_is_internal_error(self, auth_service, token_codec, session):
        user = UserFactory()
        session.commit()
        token_codec.fail_next_issue = RuntimeError("signer down")

        with pytest.raises(
            InternalError, match="Something went wrong while generating refresh and access token"
        ):
            auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

        assert _slot(session, user.id) is None


# ------------------------------- Refresh ---------------------------------- #
class TestRefresh:
    @pytest.fixture()
    def logged_in(self, auth_service):
        user = UserFactory()
        out = auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
        return user, out.tokens

    def test_rotates_pair(self, auth_service, session, logged_in):
        user, pair = logged_in

        rotated = auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

        assert rotated.refresh_token != pair.refresh_token
        assert rotated.access_token != pair.access_token
        assert _slot(session, user.id) == rotated.refresh_token

    def test_replay_of_rotated_token_is_rejected(self, auth_service, session, logged_in):
        user, pair = logged_in
        rotated = auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

        with pytest.raises(UnauthorizedError, match="Refresh token is expired or used"):
            auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

        # The live token is unaffected by the replay attempt
        assert _slot(session, user.id) == rotated.refresh_token
        assert auth_service.refresh(RefreshIn(refresh_token=rotated.refresh_token))

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing_token(self, auth_service, token):
        with pytest.raises(UnauthorizedError, match="Unauthorized request"):
            auth_service.refresh(RefreshIn(refresh_token=token))

    def test_invalid_token(self, auth_service):
        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            auth_service.refresh(RefreshIn(refresh_token="refresh.1.999"))

    def test_access_token_is_not_accepted(self, auth_service, logged_in):
        _, pair = logged_in
        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            auth_service.refresh(RefreshIn(refresh_token=pair.access_token))

    def test_expired_token(self, auth_service, token_codec, logged_in):
        _, pair = logged_in
        token_codec.expire(pair.refresh_token)
        with pytest.raises(UnauthorizedError, match="^Refresh token is expired$"):
            auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

    def test_vanished_account(self, auth_service, session, logged_in):
        user, pair = logged_in
        session.delete(session.get(User, user.id))
        session.flush()

        with pytest.raises(UnauthorizedError, match="Invalid refresh token"):
            auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

    def test_lost_rotation_race_is_unauthorized(self, auth_service, session, logged_in):
        user, pair = logged_in

        class _Racing(AuthService):
            def _issue_token_pair(self, account_id, *, claims=None, replaces=None):
                # A concurrent rotation lands between the check and the swap
                with self.rw_uow() as uow:
                    uow.users.set_refresh_token(account_id, "refresh.other")
                return super()._issue_token_pair(account_id, claims=claims, replaces=replaces)

        racing = _Racing(token_codec=auth_service.tokens, media=auth_service.media)
        with pytest.raises(UnauthorizedError, match="Refresh token is expired or used"):
            racing.refresh(RefreshIn(refresh_token=pair.refresh_token))
        assert _slot(session, user.id) == "refresh.other"


# --------------------------- Logout / current ----------------------------- #
class TestLogoutAndCurrentAccount:
    def test_logout_clears_slot_and_kills_refresh(self, auth_service, session):
        user = UserFactory()
        pair = auth_service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD)).tokens

        auth_service.logout(user.id)

        assert _slot(session, user.id) is None
        with pytest.raises(UnauthorizedError, match="Refresh token is expired or used"):
            auth_service.refresh(RefreshIn(refresh_token=pair.refresh_token))

    def test_logout_is_repeatable(self, auth_service):
        user = UserFactory()
        auth_service.logout(user.id)
        auth_service.logout(user.id)

    def test_logout_of_vanished_account(self, auth_service):
        with pytest.raises(UnauthorizedError, match="Invalid access token"):
            auth_service.logout(999_999)

    def test_current_account(self, auth_service):
        user = UserFactory()
        view = auth_service.current_account(user.id)
        assert view.id == user.id
        assert view.username == user.username

    def test_current_account_vanished(self, auth_service):
        with pytest.raises(UnauthorizedError, match="Invalid access token"):
            auth_service.current_account(999_999)


def test_stub_codec_round_trip():
    codec = StubTokenCodec()
    assert codec.verify_access_token(codec.issue_access_token(3)) == 3
