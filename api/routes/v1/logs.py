"""
api/routes/v1/logs.py -- Paginated audit trail.

Returns events newest first with the username joined at read time.
Pagination is plain limit/offset.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import AuditEventResponse, LogsResponse
from audit.store import MAX_OFFSET, AuditLog
from auth.dependencies import get_current_user

# Auth policy:
# - GET /api/v1/logs: requires a valid session (any role)
router = APIRouter(dependencies=[Depends(get_current_user)])

MAX_LIMIT = 500


@router.get("/logs", response_model=LogsResponse)
def list_logs(
    request: Request,
    limit: int = Query(default=100, ge=1, le=MAX_LIMIT),
    offset: int = Query(default=0, ge=0, le=MAX_OFFSET),
) -> LogsResponse:
    audit_log: AuditLog = request.app.state.audit_log
    events = audit_log.list_events(limit=limit, offset=offset)
    return LogsResponse(
        logs=[AuditEventResponse.from_event(e) for e in events],
        limit=limit,
        offset=offset,
    )
