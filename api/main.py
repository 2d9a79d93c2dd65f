"""
api/main.py -- FastAPI application entry point for UserHub.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins;
                              credentials allowed so the session cookie flows
  2. log_requests          -- one access-log line per request

Lifespan handles startup (user store, session store, account service, session
purge task) and shutdown (cancel purge task, dispose engines) symmetrically.

Every response body -- success or failure -- is an ApiResponse envelope.
Account errors map to 400; unexpected errors are logged and map to 500.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ApiResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.errors import AccountError
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.store import UserStore
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("userhub.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete idle sessions every SESSION_PURGE_INTERVAL_SECONDS.

    Expired sessions already read as absent; this only keeps the table from
    growing with sessions whose clients never came back. A failed pass (e.g.
    the database is locked) is logged and retried on the next tick.
    CancelledError from task.cancel() during shutdown is not an Exception, so
    it still propagates out of asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(settings.session_purge_interval_seconds)
        try:
            removed = await asyncio.to_thread(app.state.sessions.purge_expired)
        except Exception:
            logger.exception("Session purge failed; retrying next interval")
            continue
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The purge task is started last because it references
    app.state.sessions.
    """
    logger.info("UserHub API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.sessions = SessionManager(
        settings.database_url,
        max_inactive_seconds=settings.session_max_inactive_seconds,
    )
    app.state.account_service = AccountService(app.state.user_store)
    logger.info(
        "Stores initialized (session timeout %ds)",
        settings.session_max_inactive_seconds,
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.sessions.close()
    app.state.user_store.close()
    logger.info("UserHub API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="UserHub API",
    description="Username/password accounts with server-side sessions.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", settings.session_header_name],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured before and after call_next so latency
# is reported on every response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ApiResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse[None].fail(message).model_dump())


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Return 400 with the error's message for every account/session failure."""
    return _envelope(400, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body is not valid JSON, a field is too long, or an id is not an integer."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {where} {first.get('msg', '')}".strip()
    else:
        message = "Invalid request"
    return _envelope(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404 unknown route, 405 wrong method) in the envelope."""
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _envelope(500, "An unexpected error occurred")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No session required -- health
# checks from load balancers and monitoring systems carry no cookies.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"], response_model=ApiResponse[HealthResponse])
def health(request: Request) -> ApiResponse[HealthResponse]:
    """Return API liveness, version, and database reachability."""
    try:
        db_status = "ok" if request.app.state.user_store.ping() else "error"
    except Exception:
        logger.exception("Health check: database unreachable")
        db_status = "error"
    payload = HealthResponse(version=VERSION, components={"app": "ok", "database": db_status})
    return ApiResponse[HealthResponse].ok("Service healthy", payload)
