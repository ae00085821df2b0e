"""
Pytest configuration and fixtures

Every test gets its own SQLite database file under tmp_path, built with
the same engine factory as production (foreign keys on), so nothing
leaks between tests and the users -> activities cascade is real.
"""
import os
import sys

# Must be set before core.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GEOCODE_CACHE_BACKEND", "memory")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from core.config import settings
from core.database import build_engine, create_tables, get_db
from main import app
from routers.activities import get_reverse_geocoder
from services.entities import User
from services.repositories import UserRepository


class StubGeocoder:
    """Place-name lookup answering from a dict and recording every call."""

    def __init__(self, names=None):
        self.names = dict(names or {})
        self.calls = []

    def lookup(self, lat, lng):
        self.calls.append((lat, lng))
        return self.names.get((lat, lng))


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'mordor_test.db'}")
    create_tables(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_session(engine):
    """
    Session bound to the per-test database.

    No cleanup needed beyond closing; the database file lives in tmp_path.
    """
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def geocoder():
    return StubGeocoder()


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOADS_DIR", str(path))
    return path


@pytest.fixture
def client(db_session, geocoder, uploads_dir):
    """TestClient wired to the per-test database and the stub geocoder."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reverse_geocoder] = lambda: geocoder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-User-Role": "Admin"}


@pytest.fixture
def frodo(db_session):
    user = User(id=0, name="Frodo", email="f@shire.me")
    user.id = UserRepository(db_session).save(user)
    return user
