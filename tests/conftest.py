"""
Test infrastructure for the Relations Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- ``Database`` turns on ``PRAGMA foreign_keys`` for SQLite, so the
  ON DELETE CASCADE rules the API relies on are enforced here exactly as
  on PostgreSQL.
- httpx's ASGITransport does not run the lifespan, so the test ``Database``
  is attached to ``app.state`` directly; ``get_db`` picks it up from there.
- All tables are created fresh before each test and dropped after.
"""
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from app.database import Database
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_database = Database(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

app.state.database = test_database


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    await test_database.create_all()
    yield
    await test_database.drop_all()


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call services directly or
    assert on table contents after API calls.
    """
    async with test_database.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
