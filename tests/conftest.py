import itertools
import os

# settings are read at import time, so point everything at throwaway values first
os.environ["DATABASE_URL_ASYNC"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL_SYNC"] = "sqlite:///:memory:"
os.environ["TMDB_API_KEY"] = "test-tmdb-key"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-not-for-production"
os.environ["OMDB_API_KEY"] = ""
os.environ["RAWG_API_KEY"] = ""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tests.fakes.tmdb_stub import DETAILS, SEARCH_MULTI

import mediashelf.integrations.tmdb as tmdb  # patch the module, not a "from ... import ..."
from mediashelf.api.main import create_app
from mediashelf.core.constants import ROLE_USER
from mediashelf.core.exceptions import TMDBError
from mediashelf.db.base import Base
from mediashelf.db.repositories import invite_codes as invite_repo
from mediashelf.db.repositories import users as users_repo
from mediashelf.db.session import get_async_session
from mediashelf.services import auth_service


@pytest_asyncio.fixture()
async def async_engine():
    # one in-memory database per test; StaticPool keeps it on a single connection
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture()
def make_user(session):
    """Factory creating users directly in the database."""
    counter = itertools.count(1)

    async def _make(display_name: str | None = None, role: str = ROLE_USER, password: str = "password123"):
        n = next(counter)
        return await users_repo.create_user(
            session,
            email=f"user{n}@example.com",
            password_hash=auth_service.hash_password(password),
            display_name=display_name or f"User {n}",
            role=role,
        )

    return _make


@pytest.fixture()
def make_invite(session):
    async def _make(max_uses: int = 1, expires_in_days: int | None = None, intended_email: str | None = None):
        return await invite_repo.create_invite_code(
            session,
            created_by=None,
            max_uses=max_uses,
            expires_in_days=expires_in_days,
            intended_email=intended_email,
        )

    return _make


@pytest.fixture()
def app(session_factory):
    application = create_app()

    async def _session_override():
        async with session_factory() as s:
            yield s

    application.dependency_overrides[get_async_session] = _session_override
    return application


@pytest_asyncio.fixture()
async def api(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
def register(api, make_invite):
    """Sign up through the API; returns (user json, auth headers)."""
    counter = itertools.count(1)

    async def _register(display_name: str | None = None, email: str | None = None, password: str = "password123"):
        invite = await make_invite()
        n = next(counter)
        r = await api.post(
            "/api/auth/signup",
            json={
                "email": email or f"member{n}@example.com",
                "password": password,
                "invite_code": invite.code,
                "display_name": display_name or f"Member {n}",
            },
        )
        assert r.status_code == 201, r.text
        data = r.json()
        return data["user"], {"Authorization": f"Bearer {data['access_token']}"}

    return _register


@pytest.fixture(autouse=True)
def _stub_tmdb(monkeypatch):
    # no network and no rate limiter waits for TMDB
    calls: list[tuple[str, dict]] = []

    async def fake_tmdb_get(path: str, params=None):
        calls.append((path, dict(params or {})))
        if path in DETAILS:
            return DETAILS[path]
        if path == "/search/multi":
            return SEARCH_MULTI
        raise TMDBError(f"TMDB 404 Not Found: {path}", user_message="Not found")

    monkeypatch.setattr(tmdb, "_tmdb_get", fake_tmdb_get)
    return calls
