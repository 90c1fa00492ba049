"""
auth/session.py -- Route-class session gate, evaluated before routing.

Two route classes:
  protected -- /dashboard and everything under it
  public    -- /login and the landing page /

Transitions:
  protected + missing or invalid token -> redirect to /login
  public    + valid token              -> redirect to /dashboard
  anything else                        -> pass through

The check is pure: it verifies the token signature and expiry only and
never reads the users table. A deleted user's unexpired token therefore
still passes until it expires (stateless sessions, no revocation list).
"""

from __future__ import annotations

from auth.tokens import decode_access_token

PROTECTED = "protected"
PUBLIC = "public"

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

_PUBLIC_PATHS = frozenset({"/", LOGIN_PATH})


def classify_route(path: str) -> str | None:
    """Return PROTECTED, PUBLIC, or None for paths the gate ignores."""
    if path == DASHBOARD_PATH or path.startswith(DASHBOARD_PATH + "/"):
        return PROTECTED
    if path in _PUBLIC_PATHS:
        return PUBLIC
    return None


def gate_redirect(path: str, token: str | None) -> str | None:
    """Return the redirect target for this request, or None to pass through."""
    route_class = classify_route(path)
    if route_class is None:
        return None
    has_session = decode_access_token(token) is not None
    if route_class == PROTECTED and not has_session:
        return LOGIN_PATH
    if route_class == PUBLIC and has_session:
        return DASHBOARD_PATH
    return None
