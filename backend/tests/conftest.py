"""
NoteNest Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:    Mock database session (no real DB needed)
    ├── db_engine:          In-memory SQLite engine with the schema created
    ├── db_session:         AsyncSession bound to db_engine
    ├── file_engine:        File-backed SQLite engine, one connection per session
    ├── file_sessions:      Real session dependency and sidebar queries on file_engine
    ├── temp_storage:       Temporary directory for file operations
    ├── file_store:         FileService on temp_storage, patched into DocumentService
    ├── sample_image_bytes: Minimal JPEG content for upload tests
    └── test_client:        HTTPX AsyncClient wired to the app and db_engine
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before the first notenest import: settings are read at import time
_TEST_DIR = tempfile.mkdtemp(prefix="notenest_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

from notenest.database import Base, get_db_session  # noqa: E402
from notenest.models.document import Document  # noqa: E402,F401
from notenest.services.file_service import FileService  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_document(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = None
            with pytest.raises(NotFoundError):
                await document_service.get_by_id(mock_db_session, uuid4(), "user_1")
    """
    session = AsyncMock()
    # Result objects are synchronous (scalar_one_or_none, scalars, ...)
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.expunge = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the documents table created.

    StaticPool keeps a single connection so every session of the test
    sees the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage directory for each test (removed by pytest)."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def file_engine(tmp_path):
    """
    SQLite engine on a database file, without connection sharing.

    Each session opens its own connection (NullPool), so one session only
    sees what another has committed, as with a real server database.
    """
    path = tmp_path / "notes.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


@pytest.fixture
def file_sessions(file_engine):
    """
    Point get_db_session() and the live sidebar queries at file_engine.

    Nothing is overridden: requests run the real session dependency.
    """
    factory = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    with patch("notenest.database.async_session_factory", factory), patch(
        "notenest.services.live_query.async_session_factory", factory
    ):
        yield factory


@pytest.fixture
def file_store(temp_storage):
    """
    FileService rooted in temp_storage, also used by DocumentService for
    cover cleanup during the test.
    """
    store = FileService(storage_root=temp_storage, url_prefix="/api/files")
    with patch("notenest.services.document_service.file_service", store):
        yield store


@pytest.fixture
def sample_image_bytes():
    """
    Provides minimal valid JPEG bytes for upload tests.

    Start of Image (FFD8) + JFIF marker + End of Image (FFD9): not a
    picture, but enough for MIME type detection.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    Provides an async HTTP test client for endpoint testing.

    Requests get a session on the in-memory engine with the same
    commit/rollback behaviour as get_db_session().

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from notenest.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
