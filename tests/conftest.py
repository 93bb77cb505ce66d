"""Shared pytest fixtures for Scotch tests.

Every test gets a fresh in-memory SQLite database.  Route tests go through
an ``httpx`` client bound to the ASGI app with ``get_db`` overridden.
"""
import itertools
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.user import User
from app.services.relationship_service import RelationshipService
from app.services.relationship_store import RelationshipStore
from app.services.user_directory import UserDirectory

_login_seq = itertools.count(1)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Enforce foreign keys the way Postgres does
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_db):
    return RelationshipStore(test_db)


@pytest.fixture
def service(store):
    return RelationshipService(store)


@pytest.fixture
def directory(test_db, service):
    return UserDirectory(test_db, on_user_deleted=service.delete_user)


@pytest.fixture
def make_user(test_db):
    """Insert a user straight into the test database and return its id."""

    async def _make(name: str = "Alex", **overrides) -> int:
        fields = {
            "login": f"user_{next(_login_seq)}",
            "name": name,
            "age": 27,
            "gender": "female",
            "city": "London",
        }
        fields.update(overrides)
        user = User(**fields)
        test_db.add(user)
        await test_db.commit()
        return user.id

    return _make


@pytest.fixture
async def client(test_session_factory):
    """FastAPI test client with the DB dependency overridden."""

    async def override_get_db():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    """Build the authentication header for a user id."""

    def _auth(user_id) -> dict[str, str]:
        return {"X-User-Id": str(user_id)}

    return _auth
