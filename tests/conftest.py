"""
Test configuration and fixtures for the short link service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TRACKING_MODE"] = "blocking"
os.environ["QUEUE_BACKEND"] = "memory"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from shortlink_app.config import settings
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_tracking_queue
from shortlink_app.queue.strategies import InMemoryQueue
from shortlink_app.storage.clicks import ClickContext, ClickRecorder
from shortlink_app.storage.links import LinkStore

# In-memory SQLite shared by every session of a test
SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def click_queue():
    """A fresh in-memory queue injected in place of the process-wide one."""
    queue = InMemoryQueue(max_size=100)
    app.dependency_overrides[get_tracking_queue] = lambda: queue
    yield queue
    app.dependency_overrides.pop(get_tracking_queue, None)


@pytest.fixture(scope="function")
def background_client(db_session, click_queue, monkeypatch):
    """
    Test client in background tracking mode.

    The embedded worker is disabled so tests decide when queued clicks
    are written.
    """
    monkeypatch.setattr(settings, "tracking_mode", "background")
    monkeypatch.setattr(settings, "run_click_worker", False)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_link(db_session):
    """Insert a link directly through the store."""
    def _make_link(slug="abc123", original_url="https://example.com/page"):
        link = LinkStore(db_session).insert(slug, original_url)
        db_session.commit()
        return link
    return _make_link


@pytest.fixture
def add_click(db_session):
    """Insert a click with explicit tracking data and timestamp."""
    def _add_click(link, timestamp=None, user_agent=None, referrer=None, ip=None):
        click = ClickRecorder(db_session).add(
            link.id,
            ClickContext(user_agent=user_agent, referrer=referrer, ip=ip),
            timestamp=timestamp,
        )
        db_session.commit()
        return click
    return _add_click


@pytest.fixture
def session_factory(db_session):
    """Session factory bound to the test database, for the click worker."""
    return TestingSessionLocal
