"""
web/routes.py -- Jinja2 template routes for the AdminDesk web UI.

Server-rendered pages. The same app.state stores back both these pages and
the JSON API (one engine, one user store, one audit log).

Redirects between /, /login and /dashboard based on session state are made
by the session gate middleware before these handlers run. Handlers here only
see requests the gate let through.

Routes:
  GET  /           -- landing; unauthenticated visitors go to /login
  GET  /login      -- login form
  POST /login      -- handle password login, redirect to /dashboard
  POST /logout     -- record LOGOUT, clear cookie, redirect /login
  GET  /dashboard  -- stat cards, users table, audit log table (auth required)
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from audit.models import AuditAction
from audit.store import MAX_OFFSET, AuditLog
from auth import login as session
from auth.dependencies import request_token, try_get_current_user
from auth.session import DASHBOARD_PATH, LOGIN_PATH
from auth.store import UserStore
from auth.tokens import clear_auth_cookie, set_auth_cookie

logger = logging.getLogger("admindesk.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# Whitelist mapping for ?error= query params on /login.
# Only messages from this table reach the template; the raw ?error= value
# is never rendered, so a crafted query string cannot inject markup.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid username or password.",
    "missing_fields": "Username and password are required.",
}

_PAGE_SIZE = 50
_MAX_PAGE = MAX_OFFSET // _PAGE_SIZE + 1


@router.get("/", response_class=HTMLResponse)
def landing(request: Request) -> RedirectResponse:
    return RedirectResponse(LOGIN_PATH, status_code=302)


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page."""
    error_msg: Optional[str] = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(request, "login.html", {"error_msg": error_msg})


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Sign in from the HTML form; errors come back as ?error= codes."""
    username = username.strip()
    if not username or not password:
        return RedirectResponse(f"{LOGIN_PATH}?error=missing_fields", status_code=302)

    user_store: UserStore = request.app.state.user_store
    audit_log: AuditLog = request.app.state.audit_log
    ip_address, user_agent = session.client_origin(request)
    outcome = session.login(user_store, audit_log, username, password, ip_address, user_agent)
    if not outcome.succeeded:
        return RedirectResponse(f"{LOGIN_PATH}?error=bad_credentials", status_code=302)

    resp = RedirectResponse(DASHBOARD_PATH, status_code=302)
    set_auth_cookie(resp, outcome.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Record the logout, clear the session cookie and return to the login page."""
    ip_address, user_agent = session.client_origin(request)
    session.logout(request.app.state.audit_log, request_token(request), ip_address, user_agent)
    resp = RedirectResponse(LOGIN_PATH, status_code=302)
    clear_auth_cookie(resp)
    return resp


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request, page: int = 1) -> HTMLResponse:
    """Render users and the newest audit events.

    The two reads are independent, so they run concurrently on the
    threadpool. The page is a snapshot taken at request time.
    """
    current_user = try_get_current_user(request)
    if current_user is None:
        # The gate normally catches this; guard against direct mounting.
        return RedirectResponse(LOGIN_PATH, status_code=302)

    user_store: UserStore = request.app.state.user_store
    audit_log: AuditLog = request.app.state.audit_log
    page = min(max(1, page), _MAX_PAGE)
    users, logs = await asyncio.gather(
        run_in_threadpool(user_store.list_users),
        run_in_threadpool(audit_log.list_events, _PAGE_SIZE + 1, (page - 1) * _PAGE_SIZE),
    )
    has_next = len(logs) > _PAGE_SIZE
    logs = logs[:_PAGE_SIZE]

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "current_user": current_user,
            "users": users,
            "logs": logs,
            "success_count": sum(1 for e in logs if e.action == AuditAction.LOGIN_SUCCESS.value),
            "failed_count": sum(1 for e in logs if e.action == AuditAction.LOGIN_FAILED.value),
            "page": page,
            "has_next": has_next,
        },
    )
