"""
tests/conftest.py -- Shared test fixtures for UserHub tests.

This module provides:
  - make_stores(): isolated in-memory user + session stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - user_store / sessions / service: unit-test fixtures over fresh stores
  - api: a started TestClient plus helpers to seed users and open extra clients

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process. Every fixture
call gets a unique name so tests never see each other's rows.
"""

from __future__ import annotations

import asyncio
import sqlite3
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.store import UserStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_stores() -> tuple[UserStore, SessionManager, sqlite3.Connection]:
    """Create a user store and session store on a fresh shared-memory database.

    The third value is a plain sqlite3 connection that keeps the in-memory
    database alive: SQLite drops a shared-cache memory DB as soon as its last
    connection closes, and the engine pools may recycle theirs between requests.
    Close it last.
    """
    name = f"test_userhub_{uuid.uuid4().hex}"
    keeper = sqlite3.connect(f"file:{name}?mode=memory&cache=shared", uri=True, check_same_thread=False)
    url = f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"
    return UserStore(url), SessionManager(url, max_inactive_seconds=1800), keeper


def _patch_lifespan(user_store: UserStore, sessions: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown's .cancel() has a
    real asyncio.Task to act on.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.sessions = sessions
        app.state.account_service = AccountService(user_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


def seed_user(store: UserStore, username: str, password: str, role: Role = Role.USER, email: str | None = None) -> int:
    """Insert a user directly (bypassing registration, so ADMINs can be made)."""
    return store.create_user(
        User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=hash_password(password),
            role=role,
        )
    )


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, SessionManager], None, None]:
    user_store, sessions, keeper = make_stores()
    yield user_store, sessions
    sessions.close()
    user_store.close()
    keeper.close()


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def sessions(stores) -> SessionManager:
    return stores[1]


@pytest.fixture
def service(user_store) -> AccountService:
    return AccountService(user_store)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    """A started TestClient plus the stores behind it.

    client keeps cookies between requests like a browser would. new_client()
    returns another cookie jar against the same running app, for tests that
    need two users logged in at once.
    """

    client: TestClient
    user_store: UserStore
    sessions: SessionManager

    def new_client(self) -> TestClient:
        # The lifespan already ran for self.client; app.state is shared.
        return TestClient(app, raise_server_exceptions=True)

    def seed(self, username: str, password: str = "pw-secret", role: Role = Role.USER) -> int:
        return seed_user(self.user_store, username, password, role=role)

    def login(self, client: TestClient, username: str, password: str) -> str:
        resp = client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["session_id"]


@pytest.fixture
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness over a fresh database.

    Tests hit the real routes, dependencies and exception handlers; only the
    lifespan is swapped so no file database is created.
    """
    user_store, sessions, keeper = make_stores()
    app.router.lifespan_context = _patch_lifespan(user_store, sessions)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, user_store=user_store, sessions=sessions)

    sessions.close()
    user_store.close()
    keeper.close()
