"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores, the account service and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Coarse authorization tier. Changed only through the admin CLI."""

    USER = "USER"
    ADMIN = "ADMIN"


@dataclass
class User:
    """A registered account.

    hashed_password holds a bcrypt hash, never the plaintext. It is carried on
    the dataclass so the account service can verify credentials, and is
    dropped by the API layer before anything is serialized.

    created_at / updated_at are ISO 8601 UTC strings stamped by UserStore.
    """

    username: str
    email: str
    hashed_password: str
    role: Role = Role.USER
    id: int | None = None
    real_name: str | None = None
    phone_number: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class SessionIdentity:
    """Who a session belongs to, captured once at login.

    Frozen and detached from User so later edits to the stored record never
    leak into a live session (and vice versa). Authorization checks read role
    from here; endpoints that return profile data re-read the store by user_id.
    """

    user_id: int
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> SessionIdentity:
        return cls(user_id=user.id, username=user.username, role=user.role)
