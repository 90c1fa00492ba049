"""
audit/models.py -- Domain types for the audit trail.

AuditEvent is frozen: once written an event is never mutated. username is
not stored on the row; it is filled in at read time by the LEFT JOIN in
AuditLog.list_events(), so it is None for anonymous events and for events
whose user has since been deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"


@dataclass(frozen=True)
class AuditEvent:
    action: str
    user_id: int | None = None
    description: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None
    created_at: str | None = None
    username: str | None = None  # read-time join only
