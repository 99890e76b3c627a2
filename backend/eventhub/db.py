# backend/eventhub/db.py
"""
Engine and session setup for the event store.

DATABASE_URL selects the database (Postgres URLs are rewritten to the
psycopg2 driver); without it a SQLite file next to the package is used.
Request handlers get a session through get_db, background jobs through
session_scope.
"""

from __future__ import annotations

from contextlib import contextmanager
from os import getenv
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

SQLITE_FILE = Path(__file__).resolve().parents[1] / "eventhub.db"
POSTGRES_PREFIXES = ("postgres://", "postgresql://")


def database_url(raw: str | None) -> str:
    """Resolve the configured URL; empty means the local SQLite file."""
    if not raw:
        return f"sqlite:///{SQLITE_FILE}"
    for prefix in POSTGRES_PREFIXES:
        if raw.startswith(prefix):
            return "postgresql+psycopg2://" + raw[len(prefix):]
    return raw


DB_URL = database_url(getenv("DATABASE_URL"))
is_sqlite = DB_URL.startswith("sqlite")

engine = create_engine(
    DB_URL,
    future=True,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if is_sqlite else {},
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is on per connection.
    if not type(dbapi_connection).__module__.startswith("sqlite3"):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Base(DeclarativeBase):
    pass


def init_db(bind: Engine = engine) -> None:
    """Create the events and tasks tables when migrations are not used."""
    from . import models  # noqa: F401  registers the tables on Base
    Base.metadata.create_all(bind=bind)


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """One session for a unit of work; always closed, rolled back on error."""
    db = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: a session per request."""
    with session_scope() as db:
        yield db
