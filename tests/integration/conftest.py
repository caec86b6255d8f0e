"""Integration-test fixtures.

Each test gets its own engine wired to a throwaway SQLite file through
SqlSnapshotWriter, so persisted rows can be read back with plain SQL.
"""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.main import start_engine, stop_engine
from src.pm_common.database import build_session_factory


@pytest_asyncio.fixture
async def persisted(tmp_path):
    """(engine, session_factory) backed by sqlite+aiosqlite."""
    settings = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'pm.db'}")
    engine, db_engine = await start_engine(settings, persist=True)
    session_factory: async_sessionmaker[AsyncSession] = build_session_factory(db_engine)
    yield engine, session_factory
    await stop_engine(engine, db_engine)
