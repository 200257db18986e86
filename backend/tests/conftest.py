"""
Dog Spotter Backend — Pytest Configuration & Fixtures
======================================================

What:  Shared fixtures for the whole test suite.
Why:   Keeps tests independent: every test gets a fresh in-memory database,
       a fresh storage directory and a fake breed predictor.
How:   Environment variables are set BEFORE any dogspotter import so the
       settings singleton picks them up. Route tests drive a fully built app
       through httpx's ASGITransport (no server, no lifespan).

Fixture Dependency Graph:
    mock_db_session               (pure unit tests, no database)
    db_engine → session_factory → db_session
                                → user_factory / dog_factory
                                → app → test_client
    temp_storage ─────────────────────┘
    fake_predictor ───────────────────┘
"""

import os
import tempfile
from functools import partial

# ── Environment overrides (before any dogspotter import) ─────────────────
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-at-least-32-bytes"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="dogspotter-test-")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["ML_SERVICE_URL"] = "http://ml.test"

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import dogspotter.models  # noqa: F401  (registers tables on Base.metadata)
from dogspotter.database import Base, get_db_session, ping_database
from dogspotter.main import create_app
from dogspotter.models.dog import Dog
from dogspotter.models.user import User
from dogspotter.security import create_access_token, hash_password
from dogspotter.services.breed_predictor import BreedPredictor, PredictionResult
from dogspotter.services.upload_service import UploadService

DEFAULT_PASSWORD = "secret123"

# Fixed reference time; seeded dogs get strictly increasing created_at values
BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Unit-test doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock AsyncSession for unit tests that only inspect the statements a
    service issues.
    """
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def fake_predictor():
    """BreedPredictor double that answers 'no guess' unless reconfigured."""
    predictor = MagicMock(spec=BreedPredictor)
    predictor.predict = AsyncMock(return_value=PredictionResult(breed=None))
    predictor.health_check = AsyncMock(return_value=True)
    return predictor


@pytest.fixture
def temp_storage(tmp_path):
    """Temporary image storage directory, removed by pytest after the test."""
    storage = tmp_path / "storage"
    storage.mkdir()
    return storage


@pytest.fixture
def sample_image_bytes():
    """Minimal valid JPEG (SOI/APP0/EOI markers), enough for upload tests."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# In-memory database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    Fresh SQLite database per test.

    StaticPool keeps the single in-memory connection alive so every session
    sees the same tables. Foreign keys are off by default in SQLite; the
    pragma turns them on so ON DELETE CASCADE behaves like PostgreSQL.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_factory(session_factory):
    """Async callable that inserts a committed user (password: DEFAULT_PASSWORD)."""

    async def _create(email="owner@example.com", name="Owner", password=DEFAULT_PASSWORD):
        async with session_factory() as session:
            user = User(email=email, password=hash_password(password), name=name)
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest.fixture
def dog_factory(session_factory):
    """
    Async callable that inserts committed dogs.

    `age_minutes` sets created_at relative to BASE_TIME; a larger value is
    older, so listings order by it deterministically.
    """

    async def _create(user, age_minutes=0, **fields):
        created_at = BASE_TIME - timedelta(minutes=age_minutes)
        values = {
            "description": "Brown dog near the park",
            "latitude": -23.5505,
            "longitude": -46.6333,
            "status": "found",
            "created_at": created_at,
            "updated_at": created_at,
        }
        values.update(fields)
        async with session_factory() as session:
            dog = Dog(user_id=user.id, **values)
            session.add(dog)
            await session.commit()
            return dog

    return _create


@pytest.fixture
def auth_headers_for():
    """Builds an Authorization header carrying a valid token for a user."""

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


# ══════════════════════════════════════════════════════════════════════════
# Application & HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(db_engine, session_factory, fake_predictor, temp_storage, monkeypatch):
    """
    Fully wired app whose database dependency is bound to the test engine.

    The override commits on success and rolls back on error, the same way
    get_db_session does in production. /health pings the test engine too.
    """
    monkeypatch.setattr(
        "dogspotter.routes.health.ping_database", partial(ping_database, db_engine)
    )
    application = create_app(
        predictor=fake_predictor,
        upload_service=UploadService(
            storage_root=str(temp_storage),
            public_base_url="http://test",
        ),
    )

    async def _override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _override_get_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """Async HTTP client for route tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
