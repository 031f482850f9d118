import asyncio
import itertools
import os
import tempfile

import pytest

# The app reads its settings at import time, so point it at a throwaway database first
_db_dir = tempfile.mkdtemp(prefix="tj-social-tests-")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["RATE_LIMIT_BACKEND"] = "memory"

from fastapi.testclient import TestClient  # noqa: E402

from app import models  # noqa: E402,F401
from app.core.database import AsyncSessionLocal, Base, engine  # noqa: E402
from app.core.rate_limit import configure_rate_limiter  # noqa: E402
from app.main import app  # noqa: E402

API = "/api/v1"
PASSWORD = "password123"

_user_counter = itertools.count(1)


class LoggedInUser:
    """A registered user with a TestClient holding their session cookie"""

    def __init__(self, client: TestClient, profile: dict):
        self.client = client
        self.id = profile["id"]
        self.email = profile["email"]
        self.profile = profile

    def get(self, path, **kwargs):
        return self.client.get(f"{API}{path}", **kwargs)

    def post(self, path, **kwargs):
        return self.client.post(f"{API}{path}", **kwargs)

    def put(self, path, **kwargs):
        return self.client.put(f"{API}{path}", **kwargs)

    def patch(self, path, **kwargs):
        return self.client.patch(f"{API}{path}", **kwargs)

    def delete(self, path, json=None, **kwargs):
        # DELETE endpoints here take a JSON body
        return self.client.request("DELETE", f"{API}{path}", json=json, **kwargs)


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_state():
    """Empty database and a fresh in-memory rate limiter for every test"""
    asyncio.run(_reset_schema())
    configure_rate_limiter()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user():
    def _make(first_name: str = "Test", last_name: str = "User", email: str = None) -> LoggedInUser:
        n = next(_user_counter)
        email = email or f"user{n}@example.com"
        user_client = TestClient(app)

        r = user_client.post(f"{API}/auth/register", json={
            "email": email,
            "password": PASSWORD,
            "firstName": first_name,
            "lastName": last_name
        })
        assert r.status_code == 201, r.text

        r = user_client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text

        return LoggedInUser(user_client, user_client.get(f"{API}/users/me").json())

    return _make


@pytest.fixture
def befriend():
    def _befriend(a: LoggedInUser, b: LoggedInUser) -> None:
        r = a.post("/friends/requests", json={"toUserId": b.id})
        assert r.status_code == 201, r.text
        r = b.patch(f"/friends/requests/{r.json()['id']}", json={"action": "accept"})
        assert r.status_code == 200, r.text

    return _befriend


@pytest.fixture
def run_db():
    """Run `fn(session)` against the test database and commit"""
    def _run(fn):
        async def _inner():
            async with AsyncSessionLocal() as session:
                result = await fn(session)
                await session.commit()
                return result
        return asyncio.run(_inner())

    return _run
