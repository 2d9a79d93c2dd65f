"""
auth/errors.py -- Domain errors raised by the account service and session checks.

The taxonomy is flat: every error is an AccountError carrying a human-readable
message. The API layer renders all of them the same way (HTTP 400 with the
message in the response envelope), so callers tell failures apart by message
text, or in Python by exception class.

Layer rule: stdlib only.
"""


class AccountError(Exception):
    """Base class for all account and session failures."""

    message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class EmptyField(AccountError):
    """A required field was missing or blank."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} must not be empty")


class DuplicateUsername(AccountError):
    message = "Username already exists"


class DuplicateEmail(AccountError):
    message = "Email already exists"


class UserNotFound(AccountError):
    message = "User not found"


class InvalidCredentials(AccountError):
    message = "Incorrect password"


class Forbidden(AccountError):
    message = "Permission denied"


class NotLoggedIn(AccountError):
    message = "Please log in first"


class PasswordTooLong(AccountError):
    message = "Password must be at most 72 bytes"
