"""
Shared fixtures: a throwaway sqlite database per test and an httpx client
bound to the ASGI app. Environment must be set before carelink is imported.
"""
import os
import tempfile
from datetime import timedelta

_tmpdir = tempfile.mkdtemp(prefix="carelink-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmpdir}/test.db"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["TIMEZONE"] = "UTC"
os.environ["ENFORCE_SLOT_MENU"] = "false"

import httpx
import pytest
import pytest_asyncio

import carelink.models  # noqa: F401  (pobla Base.metadata)
from carelink.core.db import Base, SessionLocal, engine
from carelink.main import app
from carelink.services.appointments import reference_today


@pytest_asyncio.fixture
async def db_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session(db_schema):
    async with SessionLocal() as s:
        yield s


@pytest_asyncio.fixture
async def client(db_schema):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def signup(client, email, role="patient", full_name="Test User", specialty=None) -> dict:
    body = {"full_name": full_name, "email": email, "password": "secret123", "role": role}
    if specialty:
        body["specialty"] = specialty
    r = await client.post("/auth/register", json=body)
    assert r.status_code == 201, r.text
    user = r.json()

    r = await client.post("/auth/login", json={"email": email, "password": "secret123"})
    assert r.status_code == 200, r.text
    out = {"user": user, "id": user["id"], "headers": auth(r.json()["access_token"])}

    if role == "doctor":
        docs = (await client.get("/doctors")).json()
        out["doctor_id"] = next(d["id"] for d in docs if d["user_id"] == user["id"])
    return out


@pytest_asyncio.fixture
async def patient(client):
    return await signup(client, "pat@example.com", full_name="Pat Patient")


@pytest_asyncio.fixture
async def other_patient(client):
    return await signup(client, "other@example.com", full_name="Olive Other")


@pytest_asyncio.fixture
async def doctor(client):
    return await signup(client, "house@example.com", role="doctor", full_name="Greg House",
                        specialty="Dermatology")


@pytest_asyncio.fixture
async def other_doctor(client):
    return await signup(client, "quinn@example.com", role="doctor", full_name="Mike Quinn")


@pytest.fixture
def next_week() -> str:
    return (reference_today() + timedelta(days=7)).isoformat()


@pytest.fixture
def today_str() -> str:
    return reference_today().isoformat()
