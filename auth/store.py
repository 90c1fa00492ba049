"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and
orchestration code never touches SQL directly.

The engine is injected (see core/database.py) so the API, the CLI and the
tests can share or substitute the connection pool. Each method acquires one
connection and releases it when its `with` block exits, including on error.

Security:
  Every statement is built with SQLAlchemy Core, so values are always bound.
  list_users() never selects hashed_password -- the listing is rendered on
  the dashboard and returned by GET /api/v1/users.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from auth.models import User
from core.database import users as _users

_PUBLIC_COLUMNS = (
    _users.c.id,
    _users.c.username,
    _users.c.email,
    _users.c.role,
    _users.c.created_at,
    _users.c.updated_at,
)


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        uid = store.create_user(User(username="admin", email="a@x", role="admin", hashed_password=h))
        operator = store.get_by_id(uid)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert user and return the new row id.

        Raises sqlalchemy.exc.IntegrityError if the username or email already
        exists. Callers that race on provisioning catch IntegrityError.
        """
        if not user.hashed_password:
            raise ValueError("create_user requires a hashed password")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    role=user.role,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive match on username. None when absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, newest first, without password hashes."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(*_PUBLIC_COLUMNS).order_by(_users.c.created_at.desc(), _users.c.id.desc())
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_password(self, user_id: int, hashed_password: str) -> bool:
        """Replace a user's password hash. Returns False if user_id was not found.

        updated_at is refreshed by the column's onupdate default.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(hashed_password=hashed_password)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Delete the user row. False when user_id does not exist.

        Audit events that referenced the user keep their rows; the foreign
        key's ON DELETE SET NULL clears data_logs.user_id.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # Listing queries omit hashed_password; getattr keeps one mapper for both shapes.
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        role=row.role,
        hashed_password=getattr(row, "hashed_password", None),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
