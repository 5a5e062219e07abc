"""
Test configuration: throw-away SQLite database and in-process cache.
"""
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="grevocab-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
# Nothing listens on port 1, so the cache falls back to memory
os.environ["REDIS_URL"] = "redis://localhost:1/0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from grevocab.db import engine
from grevocab.main import app
from grevocab.middleware.rate_limit import limiter
from grevocab.routers import study as study_router
from grevocab.services.cache import cache


class NullTicker:
    """Stands in for the asyncio ticker; API tests drive time with /study/session/tick."""

    def __init__(self, callback, interval=1.0):
        self.callback = callback

    def start(self):
        pass

    def cancel(self):
        pass


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def clean_state():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    cache.clear_pattern("*")
    study_router.registry.clear()
    yield
    study_router.registry.clear()


@pytest.fixture
def client():
    limiter.enabled = False
    original_factory = study_router.registry.ticker_factory
    study_router.registry.ticker_factory = NullTicker
    with TestClient(app) as test_client:
        yield test_client
    study_router.registry.ticker_factory = original_factory
    limiter.enabled = True


def register(client, email="reader@example.com", password="secret123"):
    response = client.post("/auth/register", data={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    tokens = register(client)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
