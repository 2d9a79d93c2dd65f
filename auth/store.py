"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and service
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  username and email carry UNIQUE constraints. The account service checks for
  duplicates first so it can report which field clashed, but two concurrent
  registrations can both pass that check; the constraint makes the second
  INSERT fail, and create_user()/update_profile() translate the IntegrityError
  into DuplicateUsername or DuplicateEmail.

DB URL: core.config Settings.database_url (sqlite file by default).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail, DuplicateUsername
from auth.models import Role, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("real_name", String(255)),
    Column("phone_number", String(50)),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    # AUTOINCREMENT keeps SQLite from handing a deleted user's id to a new row.
    sqlite_autoincrement=True,
)

# Columns the public update path may touch. role and username are absent on purpose.
_PROFILE_FIELDS = frozenset({"email", "real_name", "phone_number"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite tweaks every store in this package needs."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _duplicate_from(exc: IntegrityError) -> DuplicateUsername | DuplicateEmail:
    """Work out which UNIQUE constraint an IntegrityError came from.

    SQLite reports "UNIQUE constraint failed: users.email"; PostgreSQL names
    the constraint ("users_email_key"). Both mention the column.
    """
    if "email" in str(exc.orig).lower():
        return DuplicateEmail()
    return DuplicateUsername()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///userhub.db")
        uid = store.create_user(User(username="alice", email="a@x.com", hashed_password=hash_password("pw")))
        user = store.get_by_username_or_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username_or_email(self, value: str) -> User | None:
        """Look up a user whose username OR email equals value.

        If one user's username happens to equal another user's email, the
        lower id wins so the result is stable.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select()
                .where(or_(_users.c.username == value, _users.c.email == value))
                .order_by(_users.c.id)
                .limit(1)
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def username_exists(self, username: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.username == username)).first()
        return row is not None

    def email_exists(self, email: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email)).first()
        return row is not None

    def list_users(self) -> list[User]:
        """Return all users in id (insertion) order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateUsername / DuplicateEmail if a UNIQUE constraint fires.
        """
        stamp = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        real_name=user.real_name,
                        phone_number=user.phone_number,
                        role=Role(user.role).value,
                        created_at=stamp,
                        updated_at=stamp,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise _duplicate_from(exc) from exc
        return result.inserted_primary_key[0]

    def update_profile(self, user_id: int, **fields) -> bool:
        """Update profile fields on an existing user.

        Accepted fields: email, real_name, phone_number. Anything else raises
        ValueError -- role and username are not editable through this path.

        Returns True if a row was updated, False if user_id was not found.
        Raises DuplicateEmail if the new email is already taken.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Not a profile field: {sorted(unknown)!r}")
        return self._update(user_id, **fields)

    def set_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace the stored password hash. Returns False if user_id was not found."""
        return self._update(user_id, hashed_password=hashed_password)

    def set_role(self, user_id: int, role: Role) -> bool:
        """Change a user's role. Only the admin CLI calls this."""
        return self._update(user_id, role=Role(role).value)

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def _update(self, user_id: int, **values) -> bool:
        values["updated_at"] = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise _duplicate_from(exc) from exc
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        real_name=row.real_name,
        phone_number=row.phone_number,
        role=Role(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
