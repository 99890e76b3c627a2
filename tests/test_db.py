"""Tests for database URL resolution and session handling."""
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from eventhub.db import SQLITE_FILE, database_url, init_db, session_scope


@pytest.mark.parametrize("raw", [None, ""])
def test_missing_url_uses_local_sqlite_file(raw) -> None:
    assert database_url(raw) == f"sqlite:///{SQLITE_FILE}"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:pw@db:5432/events", "postgresql+psycopg2://u:pw@db:5432/events"),
        ("postgresql://u@db/events", "postgresql+psycopg2://u@db/events"),
        ("postgresql+psycopg2://u@db/events", "postgresql+psycopg2://u@db/events"),
        ("sqlite:///tmp/events.db", "sqlite:///tmp/events.db"),
    ],
)
def test_url_normalization(raw, expected) -> None:
    assert database_url(raw) == expected


def test_init_db_creates_tables() -> None:
    engine = create_engine("sqlite://", poolclass=StaticPool)
    try:
        init_db(engine)
        assert {"events", "tasks"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_session_scope_closes_session() -> None:
    session = MagicMock()
    with session_scope(lambda: session) as db:
        assert db is session
    session.rollback.assert_not_called()
    session.close.assert_called_once()


def test_session_scope_rolls_back_on_error() -> None:
    session = MagicMock()
    with pytest.raises(RuntimeError):
        with session_scope(lambda: session):
            raise RuntimeError("boom")
    session.rollback.assert_called_once()
    session.close.assert_called_once()
