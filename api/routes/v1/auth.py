"""
api/routes/v1/auth.py -- Session endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; sets the auth-token cookie
  POST /api/v1/auth/logout  -- records LOGOUT when a session exists; clears cookie; 200
  GET  /api/v1/auth/me      -- current session identity (requires auth)

Security:
  auth.login.login() runs bcrypt even for unknown usernames -- use it, never inline.
  Unknown username and wrong password return the identical 401 body.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, LogoutResponse, MeResponse, UserProfile
from audit.store import AuditLog
from auth import login as session
from auth.dependencies import get_current_user, request_token
from auth.models import User
from auth.store import UserStore
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:      requires auth (get_current_user)
router = APIRouter()

_BAD_CREDENTIALS = {"error": {"code": "bad_credentials", "message": "Invalid username or password."}}


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; set the session cookie.

    Sync handler: bcrypt and the user lookup run on the threadpool, so a
    slow hash never stalls other requests on the event loop.
    """
    user_store: UserStore = request.app.state.user_store
    audit_log: AuditLog = request.app.state.audit_log
    ip_address, user_agent = session.client_origin(request)

    outcome = session.login(user_store, audit_log, body.username, body.password, ip_address, user_agent)
    if not outcome.succeeded:
        resp = JSONResponse(status_code=401, content=_BAD_CREDENTIALS)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(user=UserProfile(**outcome.user.public_profile())).model_dump(mode="json"),
    )
    set_auth_cookie(resp, outcome.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request) -> JSONResponse:
    """Clear the session cookie. Always 200, with or without a session."""
    ip_address, user_agent = session.client_origin(request)
    session.logout(request.app.state.audit_log, request_token(request), ip_address, user_agent)
    resp = JSONResponse(content=LogoutResponse().model_dump())
    clear_auth_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the current session."""
    return MeResponse(user=UserProfile(**current_user.public_profile()))
