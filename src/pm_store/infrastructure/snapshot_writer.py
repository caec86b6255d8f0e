"""SqlSnapshotWriter — EventBus listener that mirrors engine state into SQL.

Each event is written in its own transaction via session.merge(). Events
are delivered as independent tasks, so writes go through one lock (two
concurrent merges of a new row would both INSERT) and may still arrive
out of order: market rows are only overwritten by a higher version and
order and position rows by a newer updated_at.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.pm_account.domain.models import Position
from src.pm_account.infrastructure.db_models import PositionORM
from src.pm_common.datetime_utils import as_utc
from src.pm_common.events import (
    MarketArchived,
    MarketCreated,
    MarketEvent,
    MarketResolved,
    OrderFinalized,
    OrderUpdated,
    PositionClaimed,
    SharesChanged,
)
from src.pm_market.domain.models import MarketSnapshot
from src.pm_market.infrastructure.db_models import MarketORM
from src.pm_order.domain.models import Order
from src.pm_order.infrastructure.db_models import OrderORM

logger = logging.getLogger(__name__)


class SqlSnapshotWriter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    async def __call__(self, event: MarketEvent) -> None:
        async with self._lock:
            async with self._session_factory() as session:
                async with session.begin():
                    if isinstance(
                        event, (MarketCreated, SharesChanged, MarketResolved, MarketArchived)
                    ):
                        await self._write_market(session, event.market)
                    elif isinstance(event, OrderFinalized):
                        await self._write_order(session, event.order)
                        if event.position is not None:
                            await self._write_position(session, event.position)
                    elif isinstance(event, OrderUpdated):
                        await self._write_order(session, event.order)
                    elif isinstance(event, PositionClaimed):
                        await self._write_position(session, event.position)
        logger.debug("Persisted %s", type(event).__name__)

    async def _write_market(self, session: AsyncSession, snapshot: MarketSnapshot) -> None:
        existing = await session.get(MarketORM, snapshot.id)
        if existing is not None and existing.version >= snapshot.version:
            logger.debug(
                "Skip stale market %s v%d (stored v%d)",
                snapshot.id,
                snapshot.version,
                existing.version,
            )
            return
        await session.merge(MarketORM.from_domain(snapshot))

    async def _write_order(self, session: AsyncSession, order: Order) -> None:
        existing = await session.get(OrderORM, order.id)
        if existing is not None and as_utc(existing.updated_at) > as_utc(order.updated_at):
            return
        await session.merge(OrderORM.from_domain(order))

    async def _write_position(self, session: AsyncSession, position: Position) -> None:
        existing = await session.get(PositionORM, (position.market_id, position.user_id))
        if existing is not None and as_utc(existing.updated_at) > as_utc(position.updated_at):
            return
        await session.merge(PositionORM.from_domain(position))
