"""Shared test fixtures: in-memory SQLite engine, sessions, app client, auth."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from commitquest.auth.jwt import create_access_token
from commitquest.database import get_session
from commitquest.db.base import Base
from commitquest.db import models  # noqa: F401
from commitquest.db.models import Commit, TrackedRepo, User
from commitquest.gamification.seed import seed_achievements
from commitquest.main import create_app

# Monday 2026-10-19, 12:00 in the canonical timezone (UTC+7)
NOW = datetime(2026, 10, 19, 5, 0, 0, tzinfo=timezone.utc)


def local_time(day_offset: int, hour: int, minute: int = 0) -> datetime:
    """UTC instant for ``hour:minute`` canonical time, ``day_offset`` days from NOW's day."""
    base = datetime(2026, 10, 19, hour, minute, tzinfo=timezone(timedelta(hours=7)))
    return (base + timedelta(days=day_offset)).astimezone(timezone.utc)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test; one shared connection."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    u = User(username="octocat", display_name="Octo Cat")
    db_session.add(u)
    await db_session.commit()
    return u


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    u = User(username="hubot")
    db_session.add(u)
    await db_session.commit()
    return u


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Session with the achievement catalog seeded."""
    await seed_achievements(db_session)
    return db_session


@pytest_asyncio.fixture
async def repo(db_session: AsyncSession, user: User) -> TrackedRepo:
    return await make_repo(db_session, user.id)


async def make_repo(
    db: AsyncSession,
    user_id: int,
    provider: str = "github",
    repo_id: str = "1001",
    name: str = "octocat/hello-world",
    is_active: bool = True,
) -> TrackedRepo:
    r = TrackedRepo(user_id=user_id, provider=provider, repo_id=repo_id, repo_name=name, is_active=is_active)
    db.add(r)
    await db.commit()
    return r


async def add_commits(
    db: AsyncSession,
    repo: TrackedRepo,
    times: list[datetime],
    additions: int = 1,
    deletions: int = 0,
    message: str = "fix",
) -> list[Commit]:
    """Insert commits directly, bypassing ingestion (no XP)."""
    commits = []
    for i, t in enumerate(times):
        c = Commit(
            user_id=repo.user_id,
            repo_id=repo.id,
            provider=repo.provider,
            sha=f"{repo.id:04d}{int(t.timestamp()):012d}{i:04d}",
            message=message,
            committed_at=t,
            branch="main",
            additions=additions,
            deletions=deletions,
        )
        db.add(c)
        commits.append(c)
    await db.commit()
    return commits


@pytest.fixture
def app(session_factory: async_sessionmaker[AsyncSession]) -> Generator[FastAPI, None, None]:
    """App with the session dependency pointed at the test DB."""
    application = create_app()

    async def _override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = _override_get_session
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a bearer token for ``user``."""
    token = create_access_token(user.id, user.username)
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest.fixture
def now() -> datetime:
    return NOW
