import asyncio
import os
import tempfile
from pathlib import Path

import pytest

# The engine is built at import time, so the database has to be chosen first.
_DB_DIR = Path(tempfile.mkdtemp(prefix="tracker-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'tracker.sqlite'}"
os.environ.pop("TRACKER_DB_SCHEMA", None)
os.environ.setdefault("JWT_SECRET", "tracker-test-secret-0123456789abcdef")

from fastapi.testclient import TestClient  # noqa: E402

from tracker.main import app  # noqa: E402
from tracker.store import store  # noqa: E402


@pytest.fixture
def fresh_db():
    asyncio.run(store.reset())
    return store


@pytest.fixture
def client(fresh_db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Sign up and log in a user, returning (user_id, auth headers)."""

    def _register(username: str = "alice", password: str = "secret123"):
        signup = client.post(
            "/api/users/signup",
            json={
                "email": f"{username}@example.com",
                "username": username,
                "fullName": username.title(),
                "password": password,
            },
        )
        assert signup.status_code == 201, signup.text
        login = client.post("/api/users/login", json={"identifier": username, "password": password})
        assert login.status_code == 200, login.text
        body = login.json()
        return body["userData"]["user_id"], {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def make_task(client):
    def _make_task(headers, *, days=("Mon", "Wed"), target_count=3, task_name="read", category_id=None):
        payload = {"task_name": task_name, "target_count": target_count, "days_of_week": list(days)}
        if category_id is not None:
            payload["category_id"] = category_id
        resp = client.post("/api/tasks", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["task"]

    return _make_task
