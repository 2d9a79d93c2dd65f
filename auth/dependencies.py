"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The session id is looked up in priority order:
  1. Session cookie (SESSION_COOKIE_NAME, "session_id") -- set by /auth/login.
  2. Session header (SESSION_HEADER_NAME, "X-Session-Id") -- non-browser
     clients that stored the session_id returned in the login payload.

try_get_identity() is the soft variant (returns None when anonymous).
require_identity() wraps it and raises NotLoggedIn, which the API layer turns
into a 400 envelope like every other account error.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) and core.config
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import NotLoggedIn
from auth.models import SessionIdentity
from auth.service import AccountService
from auth.sessions import SessionManager
from core.config import get_settings


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_session_id(request: Request) -> str | None:
    """Return the session id presented by the client, or None."""
    settings = get_settings()
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        session_id = request.headers.get(settings.session_header_name)
    return session_id or None


def try_get_identity(request: Request) -> SessionIdentity | None:
    """Return the identity bound to the caller's session, or None.

    Never raises and never creates a session.
    """
    sessions: SessionManager = request.app.state.sessions
    return sessions.current_identity(get_session_id(request))


def require_identity(request: Request) -> SessionIdentity:
    """Require a logged-in session. Raises NotLoggedIn otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: SessionIdentity = Depends(require_identity)): ...
    """
    identity = try_get_identity(request)
    if identity is None:
        raise NotLoggedIn()
    return identity


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, session_id: str) -> None:
    """Write the session id as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": cookie sent on same-site requests and top-level GET
        navigations, but not on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    No max_age: a browser-session cookie. Server-side expiry is the
        SessionManager's inactivity window.
    """
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


def clear_session_cookie(response) -> None:
    settings = get_settings()
    response.delete_cookie(settings.session_cookie_name, httponly=True, samesite="lax")
