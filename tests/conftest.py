"""Shared test fixtures — fresh async SQLite in-memory DB per test + test client."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

# Import all models so metadata is populated
import rbac_api.models  # noqa: F401
from rbac_api.core.database import build_engine, build_session_factory, get_session
from rbac_api.main import app
from rbac_api.services.seed import seed, seed_admin_user

ADMIN_EMAIL = "admin@acme.com"
ADMIN_PASSWORD = "adminpass123"


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    async with build_session_factory(engine)() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded(session):
    """Database holding the permission catalogue and the two default roles."""
    return await seed(session)



@pytest.fixture
def login(client):
    """Return an async helper: login(email, password) -> bearer headers."""

    async def _login(email: str, password: str = "testpass123") -> dict[str, str]:
        resp = await client.post("/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['accessToken']}"}

    return _login


@pytest.fixture
async def admin_headers(session, seeded, login):
    """Bearer headers of a global user holding the seeded ``admin`` role."""
    await seed_admin_user(session, ADMIN_EMAIL, ADMIN_PASSWORD)
    return await login(ADMIN_EMAIL, ADMIN_PASSWORD)
