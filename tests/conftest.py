"""Pytest configuration and shared fixtures.

Usage Guide:
- For limiter tests: use `fast_config` so ticks fire almost immediately
- For backend tests: use `memory_backend` or `session_factory`
- For item data: import factories from tests.factories
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from save_pacer.backends import InMemoryBackend
from save_pacer.config import PacingConfig
from save_pacer.db import Base, make_session_factory

# Short enough to keep tests fast, long enough that a failing save
# surfaces before the next tick.
FAST_INTERVAL = 0.02


# -----------------------------------------------------------------------------
# Pacing Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def fast_config() -> PacingConfig:
    """Pacing config with a near-zero interval and the default sub-batch size."""
    return PacingConfig(max_rate=30, interval_seconds=FAST_INTERVAL, max_batch_size=10)


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    """In-memory backend that always succeeds."""
    return InMemoryBackend()


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine with all tables created.

    A file is used instead of :memory: because every save request opens its
    own connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return make_session_factory(test_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Async session with auto-rollback."""
    async with session_factory() as session:
        yield session
        await session.rollback()
