"""Pytest fixtures for Stockroom service and API tests."""

import os
from collections.abc import AsyncGenerator

# Settings are read at import time; keep the limiter out of the way of the suite
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import src.models  # noqa: E402,F401
from src.app import app  # noqa: E402
from src.database.base import Base  # noqa: E402
from src.database.session import get_db  # noqa: E402
from src.modules.purchase_order.attachments import (  # noqa: E402
    LocalAttachmentStorage,
    get_attachment_storage,
)

# Use SQLite for lightweight in-process testing
TEST_DATABASE_URL = "sqlite+aiosqlite://"


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def async_test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def async_test_session(async_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(async_test_engine, tmp_path) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the FastAPI app.

    Each request gets its own committing session, mirroring ``get_db``.
    """
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def override_storage() -> LocalAttachmentStorage:
        return LocalAttachmentStorage(upload_dir=tmp_path / "uploads", url_prefix="/uploads")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_storage] = override_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
