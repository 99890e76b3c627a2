"""Shared fixtures: an in-memory SQLite database per test and an API client bound to it."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventhub.db import Base, get_db, init_db
from eventhub.main import app, get_notifier


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class RecordingNotifier:
    """Notification channel double: records every notice, answers with `result`."""

    def __init__(self, result=True):
        self.result = result
        self.notices = []

    def send(self, notice):
        self.notices.append(notice)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(session_factory, notifier):
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()