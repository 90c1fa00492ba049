"""
audit/store.py -- Append-only audit trail backed by the data_logs table.

Pattern: Repository + Data Mapper, same as auth/store.py.

Write policy (best-effort):
  append() never raises. A failed insert is logged on admindesk.audit,
  counted in failure_count, and handed to the optional on_failure hook. The
  action being annotated (a login, a logout) must succeed even when the
  audit insert does not.

Read policy:
  list_events() returns newest first (created_at DESC, id DESC as the
  tiebreak for events written in the same microsecond), LEFT JOINed with
  users so a NULL user_id surfaces as a NULL username rather than an error.

Each append is a single INSERT; no multi-statement transaction is needed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.engine import Engine

from audit.models import AuditEvent
from core.database import data_logs as _logs
from core.database import users as _users

logger = logging.getLogger("admindesk.audit")

FailureHook = Callable[[AuditEvent, Exception], None]

# Column width of data_logs.ip_address (fits a full IPv6 literal).
_IP_MAX_LEN = 45

# Largest limit or offset list_events() accepts. SQLite binds integers as signed
# 64-bit values.
MAX_OFFSET = 2**62


class AuditLog:
    """Audit Logger over an injected engine.

    Usage:
        audit_log = AuditLog(engine, on_failure=metrics.audit_failed)
        audit_log.append(AuditEvent(action=AuditAction.LOGOUT.value, user_id=7))
        recent = audit_log.list_events(limit=50)
    """

    def __init__(self, engine: Engine, on_failure: FailureHook | None = None) -> None:
        self.engine = engine
        self.on_failure = on_failure
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def failure_count(self) -> int:
        return self._failures

    def append(self, event: AuditEvent) -> None:
        """Insert one event. Failures are recorded internally, never raised."""
        action = getattr(event.action, "value", event.action)
        ip_address = event.ip_address[:_IP_MAX_LEN] if event.ip_address else None
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _logs.insert().values(
                        user_id=event.user_id,
                        action=action,
                        description=event.description,
                        ip_address=ip_address,
                        user_agent=event.user_agent or None,
                    )
                )
                conn.commit()
        except Exception as exc:
            self._record_failure(event, exc)

    def list_events(self, limit: int = 100, offset: int = 0) -> list[AuditEvent]:
        """Return up to `limit` events, newest first, skipping `offset`."""
        if not 1 <= limit <= MAX_OFFSET:
            raise ValueError(f"limit must be between 1 and {MAX_OFFSET}")
        if offset < 0:
            raise ValueError("offset must not be negative")
        if offset > MAX_OFFSET:
            raise ValueError(f"offset must not exceed {MAX_OFFSET}")
        query = (
            select(
                _logs.c.id,
                _logs.c.user_id,
                _users.c.username,
                _logs.c.action,
                _logs.c.description,
                _logs.c.ip_address,
                _logs.c.user_agent,
                _logs.c.created_at,
            )
            .select_from(_logs.outerjoin(_users, _logs.c.user_id == _users.c.id))
            .order_by(_logs.c.created_at.desc(), _logs.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_event(r) for r in rows]

    def _record_failure(self, event: AuditEvent, exc: Exception) -> None:
        with self._lock:
            self._failures += 1
        logger.error("Audit append failed for %s (user_id=%s): %s", event.action, event.user_id, exc)
        if self.on_failure is None:
            return
        try:
            self.on_failure(event, exc)
        except Exception:
            logger.exception("Audit failure hook raised")


def _row_to_event(row) -> AuditEvent:
    return AuditEvent(
        id=row.id,
        user_id=row.user_id,
        username=row.username,
        action=row.action,
        description=row.description,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        created_at=row.created_at,
    )
