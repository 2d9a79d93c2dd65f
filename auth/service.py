"""
auth/service.py -- Account business rules.

AccountService sits between the routes and UserStore. It owns every rule about
user records: required fields, username/email uniqueness, credential checks,
which fields an update may touch, and password re-hashing. It raises the
errors in auth/errors.py and never builds HTTP responses -- the API layer maps
errors onto the response envelope.

Who-may-do-what (owner vs admin) is NOT decided here; that is the route
layer's job, using the identity cached on the session.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import (
    DuplicateEmail,
    DuplicateUsername,
    EmptyField,
    InvalidCredentials,
    PasswordTooLong,
    UserNotFound,
)
from auth.models import Role, User
from auth.passwords import DUMMY_HASH, hash_password, password_too_long, verify_password
from auth.store import UserStore

logger = logging.getLogger("userhub.auth")


def _require(value: str | None, field: str) -> str:
    """Return value unchanged, or raise EmptyField if it is None or blank."""
    if value is None or not value.strip():
        raise EmptyField(field)
    return value


def _require_password(value: str | None, field: str) -> str:
    """Like _require, and also reject passwords bcrypt cannot hash whole."""
    _require(value, field)
    if password_too_long(value):
        raise PasswordTooLong(f"{field} must be at most 72 bytes")
    return value


class AccountService:
    """Registration, login checks, and user CRUD over a UserStore."""

    def __init__(self, store: UserStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(
        self,
        username: str | None,
        password: str | None,
        email: str | None,
        real_name: str | None = None,
        phone_number: str | None = None,
    ) -> User:
        """Create a USER-role account and return the stored record.

        Raises:
            EmptyField: username, password or email missing/blank.
            PasswordTooLong: password over 72 UTF-8 bytes.
            DuplicateUsername: username already registered.
            DuplicateEmail: email already registered.
        """
        _require(username, "Username")
        _require_password(password, "Password")
        _require(email, "Email")

        # Checked in this order so a clash on both reports the username.
        if self.store.username_exists(username):
            raise DuplicateUsername()
        if self.store.email_exists(email):
            raise DuplicateEmail()

        user = User(
            username=username,
            email=email,
            hashed_password=hash_password(password),
            real_name=real_name,
            phone_number=phone_number,
            role=Role.USER,
        )
        user_id = self.store.create_user(user)
        logger.info("Registered user_id=%s username=%s", user_id, username)
        return self._must_get(user_id)

    def authenticate(self, username_or_email: str | None, password: str | None) -> User:
        """Return the user whose username or email matches and whose password verifies.

        bcrypt runs whether or not a user matched (against DUMMY_HASH when
        none did), so the two failure modes take the same time even though
        they raise different errors.

        Raises:
            EmptyField: either argument missing/blank.
            UserNotFound: no username or email equals username_or_email.
            InvalidCredentials: password does not match.
        """
        _require(username_or_email, "Username")
        _require(password, "Password")

        user = self.store.get_by_username_or_email(username_or_email)
        if user is None:
            verify_password(password, DUMMY_HASH)
            logger.warning("Login failed: no such user %r", username_or_email)
            raise UserNotFound()
        if not verify_password(password, user.hashed_password):
            logger.warning("Login failed: bad password for user_id=%s", user.id)
            raise InvalidCredentials()
        return user

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_id(self, user_id: int) -> User | None:
        return self.store.get_by_id(user_id)

    def find_by_username(self, username: str) -> User | None:
        return self.store.get_by_username(username)

    def find_by_email(self, email: str) -> User | None:
        return self.store.get_by_email(email)

    def list_all(self) -> list[User]:
        return self.store.list_users()

    def get(self, user_id: int) -> User:
        """Like find_by_id() but raises UserNotFound instead of returning None."""
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update(
        self,
        user_id: int,
        email: str | None = None,
        real_name: str | None = None,
        phone_number: str | None = None,
    ) -> User:
        """Apply a partial profile update and return the stored result.

        None means "leave unchanged". email is only checked for uniqueness
        when it differs from the current value. role and username cannot be
        changed here.

        Raises:
            UserNotFound: user_id does not exist.
            EmptyField: email supplied but blank.
            DuplicateEmail: email belongs to another user.
        """
        user = self.get(user_id)

        changes: dict[str, str] = {}
        if email is not None and email != user.email:
            _require(email, "Email")
            if self.store.email_exists(email):
                raise DuplicateEmail()
            changes["email"] = email
        if real_name is not None:
            changes["real_name"] = real_name
        if phone_number is not None:
            changes["phone_number"] = phone_number

        if changes:
            if not self.store.update_profile(user_id, **changes):
                raise UserNotFound()
        return self._must_get(user_id)

    def change_password(self, user_id: int, old_password: str | None, new_password: str | None) -> None:
        """Replace the password after checking the current one.

        Raises:
            EmptyField: either password missing/blank.
            PasswordTooLong: new_password over 72 UTF-8 bytes.
            UserNotFound: user_id does not exist.
            InvalidCredentials: old_password does not match.
        """
        _require(old_password, "Old password")
        _require_password(new_password, "New password")

        user = self.get(user_id)
        if not verify_password(old_password, user.hashed_password):
            logger.warning("Password change rejected for user_id=%s: old password mismatch", user_id)
            raise InvalidCredentials("Old password is incorrect")
        if not self.store.set_password(user_id, hash_password(new_password)):
            raise UserNotFound()
        logger.info("Password changed for user_id=%s", user_id)

    def delete(self, user_id: int) -> None:
        """Remove a user permanently. Raises UserNotFound if absent."""
        if not self.store.delete_user(user_id):
            raise UserNotFound()
        logger.info("Deleted user_id=%s", user_id)

    def _must_get(self, user_id: int) -> User:
        # A row we just wrote can only be missing if it was deleted concurrently.
        user = self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user
