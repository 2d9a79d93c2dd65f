"""
auth/sessions.py -- Server-side session store.

A session is an opaque random id mapped to a SessionIdentity (user id,
username, role) captured at login. The id travels to the client in a cookie
(or the X-Session-Id header); everything else stays on the server.

Expiry: sliding inactivity window. Every successful current_identity() call
moves last_accessed forward. A session idle for longer than
max_inactive_seconds reads as absent and is deleted on the spot; the
background purge loop in api/main.py sweeps the ones nobody asks about.

Persistence: SQLAlchemy Core, one "sessions" table. Rows are keyed by the
session id and carry no foreign key to users -- deleting a user leaves their
sessions alive, and the "who am I" endpoints report the vanished user.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, func, select
from sqlalchemy.engine import Engine

from auth.models import Role, SessionIdentity, User
from auth.store import make_engine, now_iso

logger = logging.getLogger("userhub.sessions")

_DEFAULT_MAX_INACTIVE = 30 * 60  # 30 minutes in seconds

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("session_id", String(64), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("username", String(255), nullable=False),
    Column("role", String(30), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("last_accessed", Float, nullable=False),  # epoch seconds
)


def _now() -> float:
    return time.time()


def _new_session_id() -> str:
    # 32 random bytes -> 43 url-safe chars; unguessable and cookie-safe.
    return secrets.token_urlsafe(32)


class SessionManager:
    """Create, read and destroy login sessions.

    Usage:
        sessions = SessionManager("sqlite:///userhub.db")
        sid = sessions.establish(user)
        identity = sessions.current_identity(sid)   # SessionIdentity or None
        sessions.terminate(sid)
    """

    def __init__(self, db_url: str, max_inactive_seconds: int = _DEFAULT_MAX_INACTIVE) -> None:
        self.max_inactive_seconds = max_inactive_seconds
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def establish(self, user: User, session_id: str | None = None) -> str:
        """Bind user's identity to a session and return the session id.

        If session_id names a live session it is reused and its identity
        replaced (a second login from the same browser); otherwise a fresh
        session is created.
        """
        identity = SessionIdentity.from_user(user)
        now = _now()
        with self.engine.connect() as conn:
            if session_id and self._live_row(conn, session_id, now) is not None:
                conn.execute(
                    _sessions.update()
                    .where(_sessions.c.session_id == session_id)
                    .values(
                        user_id=identity.user_id,
                        username=identity.username,
                        role=identity.role.value,
                        last_accessed=now,
                    )
                )
                conn.commit()
                return session_id

            new_id = _new_session_id()
            conn.execute(
                _sessions.insert().values(
                    session_id=new_id,
                    user_id=identity.user_id,
                    username=identity.username,
                    role=identity.role.value,
                    created_at=now_iso(),
                    last_accessed=now,
                )
            )
            conn.commit()
        logger.debug("Session created for user_id=%s", identity.user_id)
        return new_id

    def current_identity(self, session_id: str | None) -> SessionIdentity | None:
        """Return the identity bound to session_id, or None.

        Never creates a session. Reading a live session refreshes its
        inactivity clock.
        """
        if not session_id:
            return None
        now = _now()
        with self.engine.connect() as conn:
            row = self._live_row(conn, session_id, now)
            if row is None:
                return None
            conn.execute(_sessions.update().where(_sessions.c.session_id == session_id).values(last_accessed=now))
            conn.commit()
        return SessionIdentity(user_id=row.user_id, username=row.username, role=Role(row.role))

    def terminate(self, session_id: str | None) -> None:
        """Destroy the session if it exists. Unknown or missing ids are a no-op."""
        if not session_id:
            return
        with self.engine.connect() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete every session idle past the window. Returns the number removed."""
        cutoff = _now() - self.max_inactive_seconds
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.last_accessed < cutoff))
            conn.commit()
        return result.rowcount

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_sessions)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()

    def _live_row(self, conn, session_id: str, now: float):
        """Fetch a session row, deleting and returning None if it has expired."""
        row = conn.execute(_sessions.select().where(_sessions.c.session_id == session_id)).fetchone()
        if row is None:
            return None
        if now - row.last_accessed > self.max_inactive_seconds:
            conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
            conn.commit()
            return None
        return row
