"""Test fixtures — a fresh SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own database file (aiosqlite) under tmp_path, with
   the schema created straight from the ORM metadata.
2. The app's get_db dependency is overridden to hand every request its
   own session from that database, exactly like production does.
3. Nothing is shared between tests, so services can commit for real.

Settings are read at import time, so the environment is set up before
anything from ngobrol is imported: a throwaway default database for the
module-level engine and cheap Argon2 parameters.
"""

import os
import tempfile
import uuid

_TMP = tempfile.mkdtemp(prefix="ngobrol-tests-")
os.environ.setdefault("NGOBROL_DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/default.db")
os.environ.setdefault("NGOBROL_ARGON2_TIME_COST", "1")
os.environ.setdefault("NGOBROL_ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("NGOBROL_ARGON2_PARALLELISM", "1")
os.environ.setdefault("NGOBROL_ENVIRONMENT", "development")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from ngobrol.db.engine import build_engine, build_session_factory, get_db  # noqa: E402
from ngobrol.db.models import Base  # noqa: E402
from ngobrol.main import app  # noqa: E402

PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def engine(tmp_path):
    """Per-test engine on its own SQLite file."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for driving services and stores directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db pointed at the per-test database.

    Learn: Auth is NOT overridden. Tests register and log in for real, so
    the gateway runs on every protected request.
    """

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def password():
    """The password every `register`ed user gets."""
    return PASSWORD


@pytest_asyncio.fixture()
async def register(client):
    """Register a user over HTTP; returns (auth headers, user dict)."""

    async def _register(username: str | None = None, **extra):
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        body = {
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
            **extra,
        }
        r = await client.post("/api/auth/register", json=body)
        assert r.status_code == 201, r.text
        data = r.json()
        return {"Authorization": f"Bearer {data['token']}"}, data["user"]

    return _register
