"""Shared fixtures: in-memory database, ASGI client and settings overrides."""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from config import get_settings
from database import get_session, make_engine
from main import app
from models import User

ENV_KEYS = (
    "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI", "GOOGLE_AI_API_KEY",
    "PLANNING_MODEL", "SUMMARY_MODEL", "SINGLE_TENANT_MODE", "TIMEZONE", "SLACK_WEBHOOK_URL",
    "EMAIL_USER", "EMAIL_PASS", "EMAIL_TO", "SMTP_HOST", "SMTP_PORT",
)


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Known baseline environment; returns a setter for per-test overrides."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("GOOGLE_AI_API_KEY", "test-key")
    get_settings.cache_clear()

    def set_env(**values):
        for key, value in values.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    yield set_env
    get_settings.cache_clear()


@pytest.fixture
async def engine():
    engine = make_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def user(session):
    """A Google-linked user with a stored refresh token."""
    user = User(googleId="g-123", email="ada@example.com", displayName="Ada", oauth_refresh_token="refresh-abc")
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def unlinked_user(session):
    user = User(googleId="g-456", email="bob@example.com", displayName="Bob")
    session.add(user)
    await session.commit()
    return user
