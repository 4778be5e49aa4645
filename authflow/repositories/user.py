"""User repository: credential lookups and the refresh-token slot."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.util import identity_key

from authflow.models.user import User
from authflow.repositories.base import BaseRepository
from authflow.services._shared.errors import ConflictError, violates


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    This repository focuses on lookup, creation, password verification and
    the refresh-token slot. It NEVER issues tokens.
    """

    model = User

    # Keys accepted by :meth:`create`
    _creatable_fields = frozenset(
        {"username", "email", "full_name", "password", "avatar", "cover_image"}
    )

    # ---------------------------- Lookup helpers ----------------------------

    def _identity_clauses(self, username: str | None, email: str | None) -> list[Any]:
        clauses: list[Any] = []
        if username and username.strip():
            clauses.append(User.username == username.strip().lower())
        if email and email.strip():
            clauses.append(User.email == email.strip())
        return clauses

    def get_by_username_or_email(
        self, username: str | None = None, email: str | None = None
    ) -> User | None:
        """Fetch a user matching the username *or* the email.

        Blank identifiers are ignored; when both are blank nothing matches.

        :param username: Username candidate (compared lower-cased).
        :type username: str | None
        :param email: Email candidate.
        :type email: str | None
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        clauses = self._identity_clauses(username, email)
        if not clauses:
            return None
        stmt = select(User).where(or_(*clauses)).order_by(User.id.asc())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_username_or_email(self, username: str | None, email: str | None) -> bool:
        """Return ``True`` when either identifier is already taken."""
        clauses = self._identity_clauses(username, email)
        if not clauses:
            return False
        stmt = select(User.id).where(or_(*clauses)).limit(1)
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Password ops ----------------------------

    @staticmethod
    def verify_password(user: User, plaintext: str) -> bool:
        """Compare ``plaintext`` against the stored hash (never decrypts)."""
        return user.verify_password(plaintext)

    # ---------------------------- Creation ----------------------------

    def create(self, fields: Mapping[str, Any]) -> User:
        """Create and flush a new user.

        Uniqueness is checked before the insert; a concurrent duplicate that
        slips past the check is caught on flush.

        :param fields: Column values; ``password`` is hashed by the model.
        :type fields: Mapping[str, Any]
        :returns: The persisted user with its primary key populated.
        :rtype: User
        :raises ConflictError: If username or email is already taken.
        :raises ValueError: On unknown keys.
        """
        unknown = set(fields) - self._creatable_fields
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")

        if self.exists_by_username_or_email(fields.get("username"), fields.get("email")):
            raise ConflictError("User", "User with email or username already exists")

        user = User(**dict(fields))
        try:
            self.add(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email") or violates(exc, "uq_users_username"):
                raise ConflictError(
                    "User", "User with email or username already exists"
                ) from exc
            raise
        return user

    # ---------------------------- Refresh-token slot ----------------------------

    def _execute_slot_update(self, user_id: int, stmt: Any) -> bool:
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        cached = self.session.identity_map.get(identity_key(User, user_id))
        if cached is not None:
            self.session.expire(cached, ["refresh_token", "updated_at"])
        return bool(result.rowcount)

    def set_refresh_token(self, user_id: int, token: str | None) -> bool:
        """Overwrite the stored refresh token with a single targeted UPDATE.

        The statement goes through SQLAlchemy Core, so model validators do not
        run and unrelated column state cannot block token rotation. Any
        in-session instance has the column expired so it reloads.

        :param user_id: Account identifier.
        :type user_id: int
        :param token: New token, or ``None`` to clear the slot.
        :type token: str | None
        :returns: ``True`` when a row was updated.
        :rtype: bool
        """
        stmt = update(User).where(User.id == user_id).values(refresh_token=token)
        return self._execute_slot_update(user_id, stmt)

    def swap_refresh_token(self, user_id: int, expected: str, token: str) -> bool:
        """Replace the stored token only if it still equals ``expected``.

        Compare-and-set in one UPDATE: of two concurrent rotations presenting
        the same token, exactly one matches.

        :returns: ``True`` when the slot held ``expected`` and was replaced.
        :rtype: bool
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=token)
        )
        return self._execute_slot_update(user_id, stmt)

    def get_refresh_token(self, user_id: int) -> str | None:
        """Read the stored refresh token straight from the database."""
        stmt = select(User.refresh_token).where(User.id == user_id)
        return cast(str | None, self.session.execute(stmt).scalar_one_or_none())
