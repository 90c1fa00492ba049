"""
api/routes/v1/users.py -- Read-only user listing for the dashboard.

This is a read-only route -- user provisioning happens through main.py.
"""

from fastapi import APIRouter, Depends, Request

from api.models import UserResponse, UsersResponse
from auth.dependencies import get_current_user
from auth.store import UserStore

# Auth policy:
# - GET /api/v1/users: requires a valid session (any role)
# Router-level dependency enforces auth; the handler does not repeat it.
router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/users", response_model=UsersResponse)
def list_users(request: Request) -> UsersResponse:
    """Return every user, newest first. Password hashes are never selected."""
    user_store: UserStore = request.app.state.user_store
    return UsersResponse(users=[UserResponse.from_user(u) for u in user_store.list_users()])
