"""
api/routes/v1/auth.py -- Registration, login and session endpoints.

Routes:
  POST /api/v1/auth/register   -- create a USER account (public)
  POST /api/v1/auth/login      -- verify credentials; open a session, set cookie
  POST /api/v1/auth/logout     -- destroy the session if any; clear cookie
  GET  /api/v1/auth/current    -- the logged-in user, re-read from the store
  GET  /api/v1/auth/status     -- whether the caller is logged in (never fails)

Errors raised here (or by AccountService / require_identity) are AccountError
subclasses; api/main.py renders them as 400 envelopes.

Security:
  Cache-Control: no-store on login responses so the session id in the body is
  never cached by an intermediary.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import ApiResponse, LoginData, LoginRequest, RegisterRequest, UserResponse
from auth.dependencies import (
    clear_session_cookie,
    get_account_service,
    get_session_id,
    get_session_manager,
    require_identity,
    set_session_cookie,
    try_get_identity,
)
from auth.errors import UserNotFound
from auth.models import SessionIdentity
from auth.service import AccountService
from auth.sessions import SessionManager

logger = logging.getLogger("userhub.api")

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   public -- ending a session that does not exist is a no-op
# - GET  /api/v1/auth/current:  requires session (require_identity)
# - GET  /api/v1/auth/status:   public -- reports the session state instead of enforcing it
router = APIRouter()


@router.post("/auth/register", response_model=ApiResponse[UserResponse])
def register(
    body: RegisterRequest,
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[UserResponse]:
    """Create an account with role USER. Any role in the body is ignored."""
    user = service.register(
        username=body.username,
        password=body.password,
        email=body.email,
        real_name=body.real_name,
        phone_number=body.phone_number,
    )
    return ApiResponse[UserResponse].ok("Registration successful", UserResponse.from_user(user))


@router.post("/auth/login", response_model=ApiResponse[LoginData])
def login(
    request: Request,
    body: LoginRequest,
    service: AccountService = Depends(get_account_service),
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Authenticate by username or email; bind the user to a session.

    A session id the client already holds is reused if still live. The id is
    returned both as a cookie and in the payload for non-browser clients.
    """
    user = service.authenticate(body.username, body.password)
    session_id = sessions.establish(user, get_session_id(request))
    logger.info("Login user_id=%s", user.id)

    payload = ApiResponse[LoginData].ok(
        "Login successful",
        LoginData(user=UserResponse.from_user(user), session_id=session_id),
    )
    resp = JSONResponse(status_code=200, content=payload.model_dump(mode="json"))
    set_session_cookie(resp, session_id)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=ApiResponse[None])
def logout(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    """Destroy the caller's session (if any) and clear the cookie."""
    sessions.terminate(get_session_id(request))
    resp = JSONResponse(content=ApiResponse[None].ok("Logout successful").model_dump())
    clear_session_cookie(resp)
    return resp


@router.get("/auth/current", response_model=ApiResponse[UserResponse])
def current_user(
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[UserResponse]:
    """Return the logged-in user as currently stored, not as cached at login."""
    user = service.find_by_id(identity.user_id)
    if user is None:
        raise UserNotFound()
    return ApiResponse[UserResponse].ok("Fetched current user", UserResponse.from_user(user))


@router.get("/auth/status", response_model=ApiResponse[bool])
def login_status(request: Request) -> ApiResponse[bool]:
    """Report whether the caller holds a live session."""
    if try_get_identity(request) is not None:
        return ApiResponse[bool].ok("Logged in", True)
    return ApiResponse[bool].ok("Not logged in", False)
