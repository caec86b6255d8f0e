from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import Settings


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine. Callers own it and must dispose() it."""
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables known to Base. Deployed databases use alembic instead."""
    # Model modules register themselves on Base when imported.
    from src.pm_account.infrastructure import db_models as _accounts  # noqa: F401
    from src.pm_market.infrastructure import db_models as _markets  # noqa: F401
    from src.pm_order.infrastructure import db_models as _orders  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
