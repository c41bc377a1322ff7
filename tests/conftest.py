"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL.  The FastAPI record service is served in-process
through ``httpx.ASGITransport``; the client-side engine talks to it with
the real ``RecordServiceClient``.
"""

import base64
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from dealership.api.app import create_app
from dealership.api.dependencies import get_db
from dealership.api.middleware import limiter
from dealership.client.record_service import RecordServiceClient
from dealership.domain.entities import CarDraft, Customer, PictureUpload
from dealership.domain.transitions import TransitionEngine
from dealership.infrastructure import models  # noqa: F401  (registers tables)
from dealership.infrastructure.database import Base


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def make_picture(name: str = "corolla.png", data: bytes = PNG_BYTES) -> PictureUpload:
    return PictureUpload(filename=name, data=data)


def make_draft(**overrides) -> CarDraft:
    fields = dict(
        make="Toyota",
        model="Corolla",
        year=2020,
        price=Decimal("15000"),
        picture=make_picture(),
    )
    fields.update(overrides)
    return CarDraft(**fields)


JANE = Customer(
    full_name="Jane Doe", email="jane@example.com", phone_number="5551234567"
)
JOHN = Customer(
    full_name="John Smith", email="john@example.com", phone_number="5559876543"
)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def draft_factory():
    return make_draft


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test; one shared connection keeps :memory: alive."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def api_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the record service, rooted at ``/api/v1``."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test/api/v1"
    ) as ac:
        yield ac

    limiter.enabled = True


@pytest_asyncio.fixture
async def record_service(api_client) -> RecordServiceClient:
    return RecordServiceClient(http=api_client)


@pytest_asyncio.fixture
async def engine(record_service) -> TransitionEngine:
    return TransitionEngine(record_service)
