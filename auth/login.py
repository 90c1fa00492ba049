"""
auth/login.py -- Login and logout orchestration shared by api/ and web/.

Login sequence:
  1. Exact-match lookup by username.
  2. Miss: run bcrypt against _DUMMY_HASH (timing equalization), record
     LOGIN_FAILED with no user id, fail.
  3. Hit: verify the password. Mismatch: record LOGIN_FAILED with the
     resolved user id, fail.
  4. Match: issue the session token, record LOGIN_SUCCESS, succeed.

Both failure paths return the same empty LoginOutcome so callers cannot
leak which one happened. Audit appends are best-effort (audit/store.py) --
a storage failure there never turns a successful login into an error. A
failure in the credential lookup itself does propagate; the API maps it to
a generic 500.

Layer rule: no imports from api/ or web/. audit/ is a peer leaf package.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from audit.models import AuditAction, AuditEvent
from auth.models import LoginOutcome
from auth.tokens import _DUMMY_HASH, create_access_token, decode_access_token, verify_password

if TYPE_CHECKING:
    from audit.store import AuditLog
    from auth.store import UserStore

logger = logging.getLogger("admindesk.auth")

UNKNOWN = "unknown"


def client_origin(request) -> tuple[str, str]:
    """Return (ip_address, user_agent) for audit records.

    Proxy headers win over the socket peer: the first X-Forwarded-For hop,
    then X-Real-IP. Missing values become "unknown".
    """
    headers = request.headers
    forwarded = headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() or headers.get("x-real-ip", "").strip()
    if not ip and request.client:
        ip = request.client.host
    return ip or UNKNOWN, headers.get("user-agent") or UNKNOWN


def login(
    user_store: UserStore,
    audit_log: AuditLog,
    username: str,
    password: str,
    ip_address: str = UNKNOWN,
    user_agent: str = UNKNOWN,
) -> LoginOutcome:
    """Authenticate username/password, issue a token, and record the attempt."""
    user = user_store.get_by_username(username)
    if user is None:
        # Equalize timing -- do NOT return before running bcrypt
        verify_password(password, _DUMMY_HASH)
        audit_log.append(
            AuditEvent(
                action=AuditAction.LOGIN_FAILED.value,
                description=f"Failed login attempt for username: {username}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        logger.info("Login failed: unknown username from %s", ip_address)
        return LoginOutcome()

    if not verify_password(password, user.hashed_password or ""):
        audit_log.append(
            AuditEvent(
                action=AuditAction.LOGIN_FAILED.value,
                user_id=user.id,
                description="Failed login attempt - incorrect password",
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        logger.info("Login failed: bad password for user_id=%s from %s", user.id, ip_address)
        return LoginOutcome()

    token = create_access_token(user)
    audit_log.append(
        AuditEvent(
            action=AuditAction.LOGIN_SUCCESS.value,
            user_id=user.id,
            description="User logged in successfully",
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    logger.info("Login succeeded for user_id=%s", user.id)
    user.hashed_password = None
    return LoginOutcome(user=user, token=token)


def logout(
    audit_log: AuditLog,
    token: str | None,
    ip_address: str = UNKNOWN,
    user_agent: str = UNKNOWN,
) -> dict | None:
    """Record LOGOUT if token is a valid session. Returns its claims or None.

    Clearing the cookie is the caller's job and happens unconditionally.
    """
    claims = decode_access_token(token)
    if claims is None:
        return None
    audit_log.append(
        AuditEvent(
            action=AuditAction.LOGOUT.value,
            user_id=claims["id"],
            description="User logged out",
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    return claims
