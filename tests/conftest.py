"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from appforge.db.base import Base
# Import all models to register with Base.metadata
import appforge.db.models  # noqa: F401
from appforge.models.document import TableDefinition
from appforge.storage.store import SqlAppStore

from factories import FakeGenerativeService, todos_table

TODO_APP_ID = "5b1e2c3d-0000-4000-8000-00000000abcd"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    return SqlAppStore(session_factory)


@pytest.fixture
def fake_service():
    return FakeGenerativeService()


@pytest.fixture
async def todo_app(store):
    """A persisted application with a single ``todos`` table."""
    await store.create_tables(TODO_APP_ID, [TableDefinition.model_validate(todos_table())])
    await store.save_application(TODO_APP_ID, "Todos", "<html><h1>Old</h1></html>", "A todo list")
    return TODO_APP_ID


@pytest.fixture
def app(session_factory, fake_service):
    """Create a test application instance with in-memory DB and a scripted generator."""
    from appforge.main import attach_services, create_app

    _app = create_app()
    attach_services(_app, session_factory, fake_service)
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
