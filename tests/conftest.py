import os

# Set required environment variables before any coursequiz imports
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('GEMINI_API_KEY', 'test-gemini-key')
os.environ.setdefault('REDIS_URL', 'redis://localhost:6399/0')

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient


class FakeRedis:
    """Dict-backed stand-in for the few hash commands the xp store uses."""

    def __init__(self):
        self.hashes = {}

    def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        profile = self.hashes.setdefault(key, {})
        profile[field] = str(int(profile.get(field, 0)) + amount)
        return int(profile[field])


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def db_session():
    """A session on a freshly created in-memory schema."""
    from coursequiz.database import Base, SessionLocal, engine
    import coursequiz.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mock_model(monkeypatch):
    """Replaces the Gemini model on the global requester."""
    from coursequiz.services.gemini_service import gemini_service

    model = MagicMock()
    monkeypatch.setattr(gemini_service, 'model', model)
    return model


@pytest.fixture
def client(db_session, fake_redis, mock_model, monkeypatch):
    """A test client for the app with Redis and Gemini mocked."""
    from coursequiz.main import app
    from coursequiz.services.xp_service import xp_service

    monkeypatch.setattr(xp_service, 'redis_client', fake_redis)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_completion():
    """Builds a Gemini response object whose .text is the given string."""
    def _make(text):
        response = MagicMock()
        response.text = text
        return response
    return _make
