from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from plan_of_life import db
from plan_of_life.db_init import init_db
from plan_of_life.settings import reset_settings

BACKEND_SECRET = "test-backend-secret"


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'plan_of_life.db'}")
    monkeypatch.setenv("BACKEND_SESSION_SECRET", BACKEND_SECRET)
    for name in ("ALLOWED_USER_IDS", "GLOO_CLIENT_ID", "GLOO_CLIENT_SECRET", "WEEK_START_DAY", "INSIGHT_WINDOW_DAYS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    asyncio.run(db.dispose_engine())
    asyncio.run(init_db())
    yield
    asyncio.run(db.dispose_engine())
    reset_settings()


@pytest.fixture
def client(database):
    from plan_of_life.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.suggestion_generator = None


def auth_headers(user_id: str = "user-1") -> dict:
    return {"X-User-Id": user_id, "X-Backend-Token": BACKEND_SECRET}


class FakeGenerator:
    def __init__(self, reply: str = "Pray the Angelus right after lunch.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, stats):
        self.calls.append(stats)
        if self.error is not None:
            raise self.error
        return self.reply
