"""
NoteGate — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine: aiosqlite engine on a temp file, tables created
    ├── session_factory: sessionmaker bound to db_engine
    ├── db_session: one AsyncSession for store-level tests
    ├── note_store / business_note_store / user_store: store handles
    └── test_client: HTTPX AsyncClient whose requests use db_engine
"""

import os
import tempfile

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='notegate_test_')}/notegate.db"
)
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["PUBLIC_BASE_URL"] = "http://notes.test"
os.environ["ACCOUNT_USERNAME"] = "alice"
os.environ["ACCOUNT_NAME"] = "Alice Example"
os.environ["ACCOUNT_EMAIL"] = "alice@example.com"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from notegate import database
from notegate.config import settings
from notegate.database import Base, get_db_session
from notegate.models import entity  # noqa: F401
from notegate.services.note_store import BUSINESS_SCOPE, PERSONAL_SCOPE, LocalNoteStore
from notegate.services.user_store import LocalUserStore


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database with the store tables, one per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        poolclass=NullPool,
    )
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
def note_store(db_session):
    return LocalNoteStore(db_session, PERSONAL_SCOPE, max_notes_per_page=50)


@pytest.fixture
def business_note_store(db_session):
    return LocalNoteStore(db_session, BUSINESS_SCOPE, max_notes_per_page=50)


@pytest.fixture
def user_store():
    return LocalUserStore(settings)


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    Request sessions come from the per-test database. ASGITransport does
    not run the lifespan, so tables come from db_engine.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from notegate.main import app

    async def test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    await database.engine.dispose()
