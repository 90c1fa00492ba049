"""
api/main.py -- FastAPI application entry point for AdminDesk.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests          -- one log line per request with latency
  2. session_gate          -- route-class redirects (auth/session.py)
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan handles startup (engine, schema, stores, bootstrap admin) and
shutdown (dispose the connection pool) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.logs import router as logs_router
from api.routes.v1.users import router as users_router
from audit.store import AuditLog
from auth.seed import ensure_default_admin
from auth.session import LOGIN_PATH, gate_redirect
from auth.store import UserStore
from auth.tokens import AUTH_COOKIE, clear_auth_cookie
from core.config import get_settings
from core.database import create_db_engine, init_db, ping

VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("admindesk.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup builds the stores, shutdown releases the pool
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the engine and stores for the lifetime of the server process.

    Startup order matters:
      1. Engine first -- the single bounded connection pool for the process.
      2. Schema second -- both tables must exist before any store query.
      3. Stores receive the engine by injection.
      4. Bootstrap admin last -- needs the user store.
    """
    logger.info("AdminDesk API starting up")
    engine = create_db_engine(
        _settings.database_url,
        pool_size=_settings.db_pool_size,
        pool_timeout=_settings.db_pool_timeout,
    )
    init_db(engine)
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.audit_log = AuditLog(engine)
    ensure_default_admin(app.state.user_store, _settings)
    logger.info("Stores initialized")

    yield

    engine.dispose()
    logger.info("AdminDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AdminDesk API",
    description="Operator login, session tokens, and the authentication audit trail.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette inserts each middleware at the front of the stack, so the one
# registered last sees the request first. The @app.middleware("http")
# functions below are registered after these two and therefore wrap them.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Session gate middleware
#
# Runs before routing for every request. The decision itself lives in
# auth/session.py (pure function over path + token); this wrapper only turns
# it into a redirect. A protected-route redirect caused by a stale cookie
# also deletes that cookie so the browser stops sending it.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def session_gate(request: Request, call_next):
    token = request.cookies.get(AUTH_COOKIE)
    target = gate_redirect(request.url.path, token)
    if target is None:
        return await call_next(request)
    resp = RedirectResponse(target, status_code=302)
    if target == LOGIN_PATH and token:
        clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Request logging middleware
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
app.include_router(logs_router, prefix="/api/v1", tags=["Audit Log"])
# HTML pages are added in asgi.py; this module never imports web/.


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body has the shape {"error": {"code", "message", "detail"}}, so
# clients parse one schema whatever the status code.
# ---------------------------------------------------------------------------


def _field_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors to "field: message" pairs. Input values are never echoed."""
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query")]
        parts.append(f"{'.'.join(loc) or 'body'}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with field-level detail when request body or query params fail validation."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=_field_errors(exc),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap HTTPException in the error envelope.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map any unhandled exception to a generic 500.

    Security note: the raw exception is written to the server log only, never
    to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Lives on the app itself rather than a router; it needs no session and
# reports on the shared engine and audit log directly.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, database reachability, and the audit write failure count."""
    db_ok = ping(request.app.state.engine)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
        audit_failures=request.app.state.audit_log.failure_count,
    )
