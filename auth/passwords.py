"""
auth/passwords.py -- Password hashing and verification.

Passwords: bcrypt, used directly (no passlib wrapper). Bcrypt is the right
choice for low-entropy secrets because its cost factor makes brute-force
expensive. Hashes embed their own salt, so the stored string is all that is
needed to verify later.

bcrypt only reads the first MAX_PASSWORD_BYTES bytes of its input. Longer
passwords are never truncated here: hash_password() refuses them, and
AccountService rejects them before hashing, so two passwords can only verify
against the same hash if they are identical.

The DUMMY_HASH constant lets AccountService.authenticate() run a full bcrypt
check even when no user matches, so response time does not reveal whether a
username or email is registered.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

import bcrypt

MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    """Return True if plain does not fit in bcrypt's input (UTF-8 bytes)."""
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError if the password exceeds MAX_PASSWORD_BYTES.
    """
    if password_too_long(plain):
        raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A password too long to have been stored never matches. A malformed stored
    hash (e.g. a row written by hand) counts as a mismatch rather than an error.
    """
    if password_too_long(plain):
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first failed lookup is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_password("userhub_timing_dummy")
