"""
core/database.py -- Shared schema and engine factory for AdminDesk.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in auth/models.py
and audit/models.py remain the authoritative domain representation. Swapping
SQLite for MySQL or PostgreSQL is a connection string change, not a rewrite.

Both tables live on one MetaData because data_logs.user_id is a foreign key
to users.id. The engine is created once per process (api lifespan or CLI)
and injected into UserStore and AuditLog -- stores never build their own.

Connection pool:
  Non-SQLite URLs get a bounded QueuePool (pool_size from settings,
  max_overflow=0) with pool_timeout, so a stalled acquire raises instead of
  hanging. Stores acquire a connection per operation with
  `with engine.connect()`, which releases it on every exit path.

SQLite PRAGMAs (per connection -- SQLite does not inherit them):
  journal_mode=WAL   readers do not block during writes.
  foreign_keys=ON    required for ON DELETE SET NULL on data_logs.user_id.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("admindesk.db")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("email", String(100), nullable=False, unique=True),
    Column("hashed_password", String(255), nullable=False),  # bcrypt, never plaintext
    Column("role", String(20), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False, default=now_iso),
    Column("updated_at", String(32), nullable=False, default=now_iso, onupdate=now_iso),
)

data_logs = Table(
    "data_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("action", String(100), nullable=False),
    Column("description", Text),
    Column("ip_address", String(45)),
    Column("user_agent", Text),
    Column("created_at", String(32), nullable=False, default=now_iso),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str, pool_size: int = 10, pool_timeout: float = 30.0) -> Engine:
    """Build the process-wide engine for db_url.

    SQLite keeps SQLAlchemy's default pool for its URL form (in-memory URLs
    use a per-thread pool that rejects sizing arguments); every other
    backend is capped at pool_size connections with no overflow.
    """
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(pool_size=pool_size, max_overflow=0, pool_timeout=pool_timeout, pool_pre_ping=True)
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def init_db(engine: Engine) -> None:
    """Create both tables if they do not exist. Idempotent -- safe on every startup."""
    metadata.create_all(engine)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))


def ping(engine: Engine) -> bool:
    """Return True if a trivial query succeeds. Used by the health endpoint."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.warning("Database ping failed", exc_info=True)
        return False
