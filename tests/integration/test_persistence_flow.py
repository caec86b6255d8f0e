"""Full trade lifecycle mirrored into SQL by SqlSnapshotWriter."""

import time

from sqlalchemy import select

from src.main import health
from src.pm_account.infrastructure.db_models import PositionORM
from src.pm_market.infrastructure.db_models import MarketORM
from src.pm_order.infrastructure.db_models import OrderORM

DAY = 86_400


async def test_market_lifecycle_is_persisted(persisted) -> None:
    engine, session_factory = persisted
    end_time = int(time.time()) + 3 * DAY

    await engine.create_market("mkt-db", "Persisted?", ["Yes", "No", "Maybe"], 1_000_000_000, end_time)
    await engine.events.drain()
    buy = await engine.submit_buy("mkt-db", "alice", 2, max_cost=1_000_000)
    await engine.events.drain()
    sell = await engine.submit_sell("mkt-db", "alice", 2, shares=buy.actual_amount // 4)
    await engine.events.drain()
    await engine.resolve("mkt-db", 2)
    await engine.events.drain()
    payout = await engine.claim("mkt-db", "alice")
    await engine.events.drain()

    async with session_factory() as session:
        market = await session.get(MarketORM, "mkt-db")
        orders = (await session.execute(select(OrderORM).order_by(OrderORM.created_at))).scalars().all()
        position = await session.get(PositionORM, ("mkt-db", "alice"))

    snap = engine.markets.snapshot("mkt-db")
    assert market.to_domain().total_shares == snap.total_shares
    assert market.version == snap.version
    assert market.resolved and market.winning_outcome == 2
    assert market.outcomes == ["Yes", "No", "Maybe"]

    assert [o.id for o in orders] == [buy.id, sell.id]
    assert all(o.status == "EXECUTED" for o in orders)
    assert orders[1].gross_value == sell.gross_value

    assert position.claimed
    assert position.payout == payout == 1_000_000_000
    assert position.shares == [0, 0, buy.actual_amount - buy.actual_amount // 4]


async def test_failed_order_is_persisted(persisted) -> None:
    engine, session_factory = persisted
    await engine.create_market(
        "mkt-fail", "Fails?", ["Yes", "No"], 1_000_000_000, int(time.time()) + 2 * DAY
    )
    order = await engine.submit_sell("mkt-fail", "bob", 0, shares=10)
    await engine.events.drain()

    async with session_factory() as session:
        row = await session.get(OrderORM, order.id)

    assert row.status == "FAILED"
    assert row.error_code == 5001
    assert health(engine)["markets"] == 1


async def test_archive_is_persisted(persisted) -> None:
    engine, session_factory = persisted
    await engine.create_market(
        "mkt-old", "Archived?", ["Yes", "No"], 1_000_000_000, int(time.time()) + 2 * DAY
    )
    await engine.events.drain()
    snap = await engine.archive_market("mkt-old")
    await engine.events.drain()

    async with session_factory() as session:
        row = await session.get(MarketORM, "mkt-old")

    assert row.archived
    assert row.version == snap.version == 1


async def test_tx_reference_is_persisted(persisted) -> None:
    engine, session_factory = persisted
    await engine.create_market(
        "mkt-tx", "Settled?", ["Yes", "No"], 1_000_000_000, int(time.time()) + 2 * DAY
    )
    order = await engine.submit_buy("mkt-tx", "carol", 0, max_cost=100_000)
    await engine.events.drain()
    engine.attach_tx_reference(order.id, "0xabc")
    await engine.events.drain()

    async with session_factory() as session:
        row = await session.get(OrderORM, order.id)

    assert row.tx_reference == "0xabc"
    assert row.status == "EXECUTED"
