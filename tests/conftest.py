"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) so the
tests run without Docker / PostgreSQL / Redis.  ``NullPool`` gives every
session its own connection, which keeps concurrent units of work apart
the way separate PostgreSQL connections would be.
"""

from datetime import date
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from host_coverage.domain.enums import CoverageKind
from host_coverage.infrastructure import models  # noqa: F401
from host_coverage.infrastructure.database import Base
from host_coverage.infrastructure.locks import LocalHostLocks
from host_coverage.infrastructure.repositories import HostRepository
from host_coverage.services.coverage import CoverageService

HOST_ID = "host-1"


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database, yield a session factory, dispose."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'coverage.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def service(session_factory) -> CoverageService:
    return CoverageService(session_factory, LocalHostLocks(wait_seconds=5))


@pytest_asyncio.fixture
async def host(session_factory) -> str:
    async with session_factory() as session:
        await HostRepository(session).create_host(
            HOST_ID, name="Test Host", email="host@example.com"
        )
        await session.commit()
    return HOST_ID


@pytest.fixture
def submit(service) -> Callable[..., Awaitable]:
    """Submit complete policy details for *kind* on behalf of the host."""

    async def _submit(host_id: str, kind: CoverageKind):
        return await service.submit_track(
            host_id,
            kind,
            host_id,
            provider=f"{kind.value.title()} Mutual",
            policy_number=f"{kind.value}-0001",
            expires_at=date(2027, 1, 31),
        )

    return _submit
