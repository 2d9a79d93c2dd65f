"""Unit tests for auth/service.py -- AccountService business rules.

Covers:
- register(): required fields, duplicate username/email, role fixed to USER
- authenticate(): username-or-email lookup, exact password match, error kinds
- update(): partial updates, email uniqueness, role/username untouched
- change_password(): old password check, overwrite on success
- delete(): removal and UserNotFound
"""

import pytest

from auth.errors import (
    DuplicateEmail,
    DuplicateUsername,
    EmptyField,
    InvalidCredentials,
    PasswordTooLong,
    UserNotFound,
)
from auth.models import Role
from auth.service import AccountService


@pytest.fixture
def alice(service: AccountService):
    return service.register("alice", "pw1", "a@x.com", real_name="Alice", phone_number="555-0100")


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_returns_stored_user(self, service: AccountService, alice):
        assert alice.id is not None
        assert alice.username == "alice"
        assert alice.email == "a@x.com"
        assert alice.real_name == "Alice"
        assert alice.phone_number == "555-0100"
        assert alice.role == Role.USER

    def test_password_is_not_stored_verbatim(self, alice):
        assert alice.hashed_password != "pw1"

    def test_duplicate_username(self, service: AccountService, alice):
        with pytest.raises(DuplicateUsername):
            service.register("alice", "other", "other@x.com")
        assert service.find_by_username("alice").email == "a@x.com"
        assert len(service.list_all()) == 1

    def test_duplicate_email(self, service: AccountService, alice):
        with pytest.raises(DuplicateEmail):
            service.register("bob", "pw2", "a@x.com")
        assert service.find_by_username("bob") is None

    @pytest.mark.parametrize(
        "username, password, email, field",
        [
            (None, "pw", "e@x.com", "Username"),
            ("   ", "pw", "e@x.com", "Username"),
            ("bob", "", "e@x.com", "Password"),
            ("bob", "pw", None, "Email"),
        ],
    )
    def test_required_fields(self, service: AccountService, username, password, email, field):
        with pytest.raises(EmptyField) as exc_info:
            service.register(username, password, email)
        assert exc_info.value.field == field
        assert service.list_all() == []

    def test_password_over_72_bytes_rejected(self, service: AccountService):
        with pytest.raises(PasswordTooLong) as exc_info:
            service.register("bob", "é" * 37, "b@x.com")  # 74 bytes
        assert exc_info.value.message == "Password must be at most 72 bytes"
        assert service.find_by_username("bob") is None

    def test_password_of_72_bytes_accepted(self, service: AccountService):
        service.register("bob", "A" * 72, "b@x.com")
        assert service.authenticate("bob", "A" * 72).username == "bob"

    def test_optional_fields_may_be_omitted(self, service: AccountService):
        user = service.register("bob", "pw2", "b@x.com")
        assert user.real_name is None
        assert user.phone_number is None


# ---------------------------------------------------------------------------
# authenticate
# ---------------------------------------------------------------------------


class TestAuthenticate:
    def test_by_username(self, service: AccountService, alice):
        assert service.authenticate("alice", "pw1").id == alice.id

    def test_by_email(self, service: AccountService, alice):
        assert service.authenticate("a@x.com", "pw1").id == alice.id

    def test_wrong_password(self, service: AccountService, alice):
        with pytest.raises(InvalidCredentials):
            service.authenticate("alice", "wrong")

    def test_password_is_case_sensitive(self, service: AccountService, alice):
        with pytest.raises(InvalidCredentials):
            service.authenticate("alice", "PW1")

    def test_unknown_user(self, service: AccountService, alice):
        with pytest.raises(UserNotFound):
            service.authenticate("nobody", "pw1")

    def test_password_sharing_72_byte_prefix_rejected(self, service: AccountService):
        service.register("bob", "A" * 72, "b@x.com")
        with pytest.raises(InvalidCredentials):
            service.authenticate("bob", "A" * 72 + "-totally-different")

    def test_blank_input(self, service: AccountService, alice):
        with pytest.raises(EmptyField):
            service.authenticate("", "pw1")
        with pytest.raises(EmptyField):
            service.authenticate("alice", None)


# ---------------------------------------------------------------------------
# lookups
# ---------------------------------------------------------------------------


def test_lookups(service: AccountService, alice):
    assert service.find_by_id(alice.id).username == "alice"
    assert service.find_by_username("alice").id == alice.id
    assert service.find_by_email("a@x.com").id == alice.id
    assert service.find_by_id(999) is None
    assert service.find_by_username("nobody") is None
    assert service.find_by_email("nobody@x.com") is None


def test_list_all_in_id_order(service: AccountService, alice):
    bob = service.register("bob", "pw2", "b@x.com")
    assert [u.id for u in service.list_all()] == [alice.id, bob.id]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_update_email(self, service: AccountService, alice):
        updated = service.update(alice.id, email="new@x.com")
        assert updated.email == "new@x.com"
        assert updated.username == "alice"
        assert updated.role == Role.USER

    def test_update_to_taken_email(self, service: AccountService, alice):
        bob = service.register("bob", "pw2", "b@x.com")
        with pytest.raises(DuplicateEmail):
            service.update(bob.id, email="a@x.com")
        assert service.find_by_id(bob.id).email == "b@x.com"

    def test_same_email_is_not_a_duplicate(self, service: AccountService, alice):
        updated = service.update(alice.id, email="a@x.com", real_name="Alice A.")
        assert updated.email == "a@x.com"
        assert updated.real_name == "Alice A."

    def test_blank_email_rejected(self, service: AccountService, alice):
        with pytest.raises(EmptyField):
            service.update(alice.id, email="  ")
        assert service.find_by_id(alice.id).email == "a@x.com"

    def test_omitted_fields_unchanged(self, service: AccountService, alice):
        updated = service.update(alice.id, phone_number="555-0199")
        assert updated.phone_number == "555-0199"
        assert updated.real_name == "Alice"
        assert updated.email == "a@x.com"

    def test_no_changes_returns_current(self, service: AccountService, alice):
        assert service.update(alice.id).email == "a@x.com"

    def test_unknown_user(self, service: AccountService):
        with pytest.raises(UserNotFound):
            service.update(999, real_name="Ghost")


# ---------------------------------------------------------------------------
# change_password
# ---------------------------------------------------------------------------


class TestChangePassword:
    def test_wrong_old_password_leaves_password(self, service: AccountService, alice):
        with pytest.raises(InvalidCredentials):
            service.change_password(alice.id, "wrong", "pw2")
        assert service.authenticate("alice", "pw1").id == alice.id

    def test_success_overwrites(self, service: AccountService, alice):
        service.change_password(alice.id, "pw1", "pw2")
        assert service.authenticate("alice", "pw2").id == alice.id
        with pytest.raises(InvalidCredentials):
            service.authenticate("alice", "pw1")

    def test_unknown_user(self, service: AccountService):
        with pytest.raises(UserNotFound):
            service.change_password(999, "pw1", "pw2")

    def test_blank_new_password(self, service: AccountService, alice):
        with pytest.raises(EmptyField) as exc_info:
            service.change_password(alice.id, "pw1", "")
        assert exc_info.value.message == "New password must not be empty"
        assert service.authenticate("alice", "pw1").id == alice.id

    def test_blank_old_password(self, service: AccountService, alice):
        with pytest.raises(EmptyField) as exc_info:
            service.change_password(alice.id, " ", "pw2")
        assert exc_info.value.message == "Old password must not be empty"

    def test_new_password_too_long(self, service: AccountService, alice):
        with pytest.raises(PasswordTooLong) as exc_info:
            service.change_password(alice.id, "pw1", "x" * 73)
        assert exc_info.value.message == "New password must be at most 72 bytes"
        assert service.authenticate("alice", "pw1").id == alice.id


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


def test_delete_then_find(service: AccountService, alice):
    service.delete(alice.id)
    assert service.find_by_id(alice.id) is None


def test_delete_unknown(service: AccountService):
    with pytest.raises(UserNotFound):
        service.delete(999)


# ---------------------------------------------------------------------------
# end-to-end scenario
# ---------------------------------------------------------------------------


def test_register_and_login_scenario(service: AccountService):
    alice = service.register("alice", "pw1", "a@x.com")
    assert alice.role == Role.USER
    assert service.authenticate("alice", "pw1").id == alice.id
    assert service.authenticate("a@x.com", "pw1").id == alice.id
    with pytest.raises(InvalidCredentials):
        service.authenticate("alice", "wrong")
