"""Unit tests for UserRepository."""

import pytest
from sqlalchemy import inspect

from authflow.models.user import User
from authflow.repositories.user import UserRepository
from authflow.services._shared.errors import ConflictError
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


def _fields(**overrides):
    data = {
        "username": "Alice",
        "email": "alice@example.com",
        "full_name": "Alice Liddell",
        "password": "s3cret!",
        "avatar": "https://media.test/upload/alice.png",
        "cover_image": "",
    }
    data.update(overrides)
    return data


class TestUserRepository:
    """Ensure ``UserRepository`` performs lookups, creation and slot updates."""

    @pytest.fixture()
    def repo(self, session):
        return UserRepository(session=session)

    def test_create_hashes_password_and_lowercases_username(self, repo):
        user = repo.create(_fields())
        assert user.id is not None
        assert user.username == "alice"
        assert user.password_hash != "s3cret!"
        assert user.verify_password("s3cret!")
        assert user.refresh_token is None

    def test_create_rejects_unknown_fields(self, repo):
        with pytest.raises(ValueError, match="Unknown user fields"):
            repo.create(_fields(is_admin=True))

    @pytest.mark.parametrize(
        "overrides",
        [{"username": "someone-else"}, {"email": "other@example.com"}],
    )
    def test_create_conflicts_on_either_identifier(self, repo, overrides):
        UserFactory(username="alice", email="alice@example.com")
        duplicate = _fields(**{"username": "ALICE", "email": "alice@example.com"})
        duplicate.update(overrides)
        with pytest.raises(ConflictError) as info:
            repo.create(duplicate)
        assert str(info.value) == "User with email or username already exists"

    def test_lookup_by_username_or_email(self, repo):
        user = UserFactory(username="bob", email="bob@example.com")
        assert repo.get_by_username_or_email(username="BOB").id == user.id
        assert repo.get_by_username_or_email(email="bob@example.com").id == user.id
        assert repo.get_by_username_or_email(username="nobody", email="bob@example.com").id == user.id
        assert repo.get_by_username_or_email(username="nobody") is None
        assert repo.get_by_username_or_email(username="  ", email=None) is None

    def test_exists_by_username_or_email(self, repo):
        UserFactory(username="carol", email="carol@example.com")
        assert repo.exists_by_username_or_email("carol", None)
        assert repo.exists_by_username_or_email(None, "carol@example.com")
        assert not repo.exists_by_username_or_email("dave", "dave@example.com")
        assert not repo.exists_by_username_or_email(None, None)

    def test_verify_password(self, repo):
        user = UserFactory()
        assert repo.verify_password(user, DEFAULT_PASSWORD)
        assert not repo.verify_password(user, "wrong")

    def test_set_and_clear_refresh_token(self, repo):
        user = UserFactory()
        assert repo.set_refresh_token(user.id, "rt-1") is True
        assert repo.get_refresh_token(user.id) == "rt-1"
        # cached instance reloads the expired column
        assert user.refresh_token == "rt-1"

        assert repo.set_refresh_token(user.id, None) is True
        assert repo.get_refresh_token(user.id) is None

    def test_set_refresh_token_for_missing_row(self, repo):
        assert repo.set_refresh_token(999_999, "rt") is False

    def test_swap_refresh_token_is_compare_and_set(self, repo):
        user = UserFactory()
        repo.set_refresh_token(user.id, "rt-1")

        assert repo.swap_refresh_token(user.id, "rt-1", "rt-2") is True
        assert repo.swap_refresh_token(user.id, "rt-1", "rt-3") is False
        assert repo.get_refresh_token(user.id) == "rt-2"

    def test_slot_update_skips_model_validators(self, repo, session):
        user = UserFactory()
        # Column state that the ORM validators would reject must not block rotation
        session.execute(
            User.__table__.update().where(User.id == user.id).values(avatar="")
        )
        assert repo.set_refresh_token(user.id, "rt") is True

    def test_slot_update_expires_only_the_cached_slot(self, repo):
        user = UserFactory()
        repo.set_refresh_token(user.id, "rt-1")
        assert user.refresh_token == "rt-1"

        assert repo.swap_refresh_token(user.id, "rt-1", "rt-2") is True
        assert "refresh_token" in inspect(user).expired_attributes
        assert "username" not in inspect(user).expired_attributes
        assert user.refresh_token == "rt-2"
