"""
QuickNotes Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── database_path:  Fresh SQLite file under tmp_path
    ├── database:       Database on that file with the schema applied
    ├── note_dao:       NoteDao
    ├── note_service:   NoteService over the real database
    ├── fake_database:  Database stand-in whose transaction() yields a sentinel session
    ├── mock_note_dao:  AsyncMock specced on NoteDao
    └── test_client:    HTTPX AsyncClient bound to a fresh app over `database`
"""

import os
import tempfile
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Before any quicknotes import: Settings() reads the environment at import time
os.environ["DATABASE_PATH"] = os.path.join(
    tempfile.mkdtemp(prefix="quicknotes_test_"), "notes.db"
)
os.environ["LOG_LEVEL"] = "WARNING"

from quicknotes.dao.note_dao import NoteDao  # noqa: E402
from quicknotes.database import Database  # noqa: E402
from quicknotes.services.note_service import NoteService  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Storage Fixtures (real SQLite files)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def database_path(tmp_path):
    return str(tmp_path / "notes.db")


@pytest_asyncio.fixture
async def database(database_path):
    """
    A Database on a fresh file with the schema applied.

    Usage:
        async def test_x(database, note_dao):
            async with database.transaction() as db:
                await note_dao.create(db, NoteForCreate(content="x"))
    """
    db = Database(database_path)
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
def note_dao():
    return NoteDao()


@pytest.fixture
def note_service(database, note_dao):
    return NoteService(database, note_dao)


# ══════════════════════════════════════════════════════════════════════════
# Mock Fixtures (service unit tests)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_database():
    """
    A Database stand-in for NoteService unit tests.

    transaction() is a real async context manager, so exceptions raised
    inside it propagate exactly as with the real handle. Each call records
    its ``immediate`` flag in ``fake.begin_modes`` and yields
    ``fake.session``.
    """
    fake = MagicMock(spec=Database)
    fake.session = object()
    fake.begin_modes = []

    @asynccontextmanager
    async def transaction(immediate=False):
        fake.begin_modes.append(immediate)
        yield fake.session

    fake.transaction.side_effect = transaction
    return fake


@pytest.fixture
def mock_note_dao():
    return AsyncMock(spec=NoteDao)


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(database):
    """
    HTTPX AsyncClient talking to a fresh app through ASGITransport.

    ASGITransport does not run the lifespan, so the state it would build
    is attached here from the `database` fixture.

    Usage:
        async def test_alive(test_client):
            response = await test_client.get("/api/v1/")
            assert response.status_code == 200
    """
    from quicknotes.main import create_app

    app = create_app()
    app.state.database = database
    app.state.note_service = NoteService(database, NoteDao())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
