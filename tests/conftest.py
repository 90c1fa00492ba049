"""
tests/conftest.py -- Shared test fixtures for AdminDesk tests.

This module provides:
  - _make_test_stores(): isolated named shared-memory DB for the HTTP clients
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: (client, token, uid) -- TestClient with an admin session token
  - web_client: (client, token) -- TestClient with follow_redirects=False
  - stores: fresh file-backed engine + UserStore + AuditLog per test
  - make_user: provisions a user in `stores` with a known password

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the HTTP clients because TestClient runs route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank
schema to each worker thread. Unit tests that write from several threads
at once use a temporary file instead: shared-cache memory databases
report table locks immediately rather than waiting on the busy timeout.

The client fixtures are module-scoped for speed; the function-scoped
wrappers clear the cookie jar so one test's login never leaks into the next.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import so
get_settings() uses the dev SECRET_KEY and a cheap bcrypt cost.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core import -- get_settings() is cached on first call.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from asgi import app
from audit.store import AuditLog
from auth.models import ROLE_ADMIN, ROLE_USER, User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from core.database import create_db_engine, init_db


@dataclass
class Stores:
    engine: Engine
    users: UserStore
    audit: AuditLog


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> Stores:
    """Create an isolated named shared-memory SQLite database with both stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'web').
    """
    engine = create_db_engine(f"sqlite:///file:test_admindesk_{db_suffix}?mode=memory&cache=shared&uri=true")
    init_db(engine)
    return Stores(engine=engine, users=UserStore(engine), audit=AuditLog(engine))


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = stores.engine
        app.state.user_store = stores.users
        app.state.audit_log = stores.audit
        yield

    return test_lifespan


def _create_admin(stores: Stores, username: str, password: str) -> User:
    admin = User(
        username=username,
        email=f"{username}@example.com",
        role=ROLE_ADMIN,
        hashed_password=hash_password(password),
    )
    admin.id = stores.users.create_user(admin)
    return admin


# ---------------------------------------------------------------------------
# HTTP clients -- one TestClient per test module
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def _api_session() -> Generator[tuple[TestClient, str, int], None, None]:
    stores = _make_test_stores("api")
    admin = _create_admin(stores, "testadmin", "testpass123")
    token = create_access_token(admin)

    app.router.lifespan_context = _patch_lifespan(stores)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    stores.engine.dispose()


@pytest.fixture
def api_client(_api_session) -> tuple[TestClient, str, int]:
    """Yield (client, token, user_id) for API integration tests.

    The admin user is "testadmin" / "testpass123". Pass the token as a
    Bearer header or set it in client.cookies.
    """
    client, token, uid = _api_session
    client.cookies.clear()
    return client, token, uid


@pytest.fixture(scope="module")
def _web_session() -> Generator[tuple[TestClient, str], None, None]:
    stores = _make_test_stores("web")
    admin = _create_admin(stores, "webadmin", "webpass123")
    token = create_access_token(admin)

    app.router.lifespan_context = _patch_lifespan(stores)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token

    stores.engine.dispose()


@pytest.fixture
def web_client(_web_session) -> tuple[TestClient, str]:
    """Yield (client, token) for web route tests.

    follow_redirects=False is essential: tests assert on redirect locations,
    which are invisible once the client follows the redirect.
    The admin user is "webadmin" / "webpass123".
    """
    client, token = _web_session
    client.cookies.clear()
    return client, token


# ---------------------------------------------------------------------------
# Unit-level stores
# ---------------------------------------------------------------------------


@pytest.fixture
def stores(tmp_path) -> Generator[Stores, None, None]:
    """Fresh file-backed database per test."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'admindesk_test.db'}")
    init_db(engine)
    yield Stores(engine=engine, users=UserStore(engine), audit=AuditLog(engine))
    engine.dispose()


@pytest.fixture
def make_user(stores):
    """Factory: make_user("alice", "s3cret-pass") -> User with id set."""

    def _make(username: str, password: str, role: str = ROLE_USER) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            role=role,
            hashed_password=hash_password(password),
        )
        user.id = stores.users.create_user(user)
        return user

    return _make
