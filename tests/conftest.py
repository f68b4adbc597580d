"""Shared fixtures: in-memory database, settings, auth tokens and factories."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api import comments_router, health_router, users_router, videos_router
from app.auth.router import TOKEN_HEADER, _create_access_token
from app.auth.router import router as auth_router
from app.auth.security import hash_password
from app.config import Settings, get_settings
from app.db.models import Base, Category, User, Video
from app.db.session import get_session
from app.errors import register_exception_handlers
from app.limits import limiter

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD, rounds=4)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty rate limit counters."""
    limiter.reset()
    yield


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory test database and return its session maker."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)

    # Enable foreign key support for SQLite
    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA foreign_keys=ON"))
        await conn.run_sync(Base.metadata.create_all)

    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    yield sessionmaker

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_db):
    """A single database session for tests that call core functions directly."""
    async with test_db() as session:
        yield session


@pytest.fixture
def test_settings():
    """Settings that do not read the environment or a .env file."""
    return Settings(
        app_secret_key="test-secret-key",
        bcrypt_rounds=4,
        _env_file=None,  # type: ignore[call-arg]
    )


def override_get_session(sessionmaker):
    """Create a dependency override for get_session."""

    async def _override():
        async with sessionmaker() as session:
            yield session

    return _override


@pytest_asyncio.fixture
async def test_app(test_db, test_settings):
    """A FastAPI app with every router, backed by the test database."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(videos_router)
    app.include_router(comments_router)
    app.include_router(users_router)
    app.dependency_overrides[get_session] = override_get_session(test_db)
    app.dependency_overrides[get_settings] = lambda: test_settings
    return app


@pytest_asyncio.fixture
async def client(test_app):
    """HTTP client talking to the test app in-process."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers(test_settings):
    """Build the auth header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {TOKEN_HEADER: _create_access_token(user.id, test_settings)}

    return _headers


@pytest.fixture
def make_user(test_db):
    """Factory that inserts a user and returns it."""

    async def _make(username: str, **fields) -> User:
        async with test_db() as db:
            user = User(
                username=username,
                email=fields.pop("email", f"{username}@videos.io"),
                password_hash=fields.pop("password_hash", PASSWORD_HASH),
                channel_name=fields.pop("channel_name", f"{username} channel"),
                profile_picture=fields.pop(
                    "profile_picture", "https://via.placeholder.com/150"
                ),
                **fields,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_video(test_db):
    """Factory that inserts a video and returns it.

    Each call is uploaded one minute after the previous one so that
    "newest first" orderings are deterministic.
    """
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    async def _make(creator: User, title: str, **fields) -> Video:
        counter["n"] += 1
        async with test_db() as db:
            video = Video(
                creator_id=creator.id,
                title=title,
                description=fields.pop("description", ""),
                video_url=fields.pop("video_url", f"https://cdn.videos.io/{title}.mp4"),
                thumbnail_url=fields.pop(
                    "thumbnail_url", "https://via.placeholder.com/320x180"
                ),
                category=fields.pop("category", Category.OTHER),
                views=fields.pop("views", 0),
                upload_date=fields.pop(
                    "upload_date", base + timedelta(minutes=counter["n"])
                ),
                **fields,
            )
            db.add(video)
            await db.commit()
            await db.refresh(video)
        return video

    return _make
