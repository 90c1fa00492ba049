"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these only own the domain shape.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


@dataclass
class User:
    """An operator identity in AdminDesk.

    hashed_password is None when the User was rebuilt from session token
    claims rather than read from the users table -- tokens never carry the
    hash. public_profile() is the only shape that leaves the server.
    """

    username: str
    email: str
    role: str = ROLE_USER  # "admin" or "user"
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def public_profile(self) -> dict:
        return {"id": self.id, "username": self.username, "email": self.email, "role": self.role}


@dataclass
class LoginOutcome:
    """Result of one login attempt.

    user and token are both set on success and both None on failure. The
    caller never learns which of "unknown username" or "wrong password"
    caused a failure -- that distinction lives only in the audit trail.
    """

    user: User | None = None
    token: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.user is not None and self.token is not None
