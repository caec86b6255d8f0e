"""Unit tests for MarketApplicationService via the engine facade."""

from typing import Any

import pytest

from src.pm_common.enums import MarketPhase
from src.pm_common.errors import (
    AlreadyResolvedError,
    InvalidOutcomeError,
    MarketAlreadyExistsError,
    MarketClosedError,
    MarketHasOpenPositionsError,
    MarketNotFoundError,
    ValidationError,
)
from src.pm_common.events import MarketArchived, MarketCreated, MarketResolved, SharesChanged
from src.pm_engine.engine import PredictionMarketEngine

NOW = 1_760_000_000
DAY = 86_400


class TestCreateMarket:
    async def test_fresh_market(self, engine: PredictionMarketEngine) -> None:
        snap = await engine.create_market(
            "mkt-4", "Which team wins?", ["A", "B", "C", "D"], 2_000_000_000, NOW + 30 * DAY
        )
        assert snap.total_shares == (0, 0, 0, 0)
        assert snap.version == 0
        assert engine.prices_bps("mkt-4") == [2500, 2500, 2500, 2500]

    async def test_duplicate_id(self, engine: PredictionMarketEngine, market: str) -> None:
        with pytest.raises(MarketAlreadyExistsError):
            await engine.create_market(market, "Again?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)

    @pytest.mark.parametrize(
        ("outcomes", "liquidity", "end_time"),
        [
            (["Only"], 1_000_000, NOW + 2 * DAY),
            ([f"o{i}" for i in range(11)], 1_000_000, NOW + 2 * DAY),
            (["Yes", "Yes"], 1_000_000, NOW + 2 * DAY),
            (["Yes", " "], 1_000_000, NOW + 2 * DAY),
            (["Yes", "No"], 999_999, NOW + 2 * DAY),
            (["Yes", "No"], 1_000_000, NOW - 1),
            (["Yes", "No"], 1_000_000, NOW + 3600),
            (["Yes", "No"], 1_000_000, NOW + 400 * DAY),
        ],
    )
    async def test_rejects_bad_input(
        self, engine: PredictionMarketEngine, outcomes: list[str], liquidity: int, end_time: int
    ) -> None:
        with pytest.raises(ValidationError):
            await engine.create_market("mkt-bad", "Question?", outcomes, liquidity, end_time)
        assert engine.list_markets() == []

    async def test_rejects_whitespace_id(self, engine: PredictionMarketEngine) -> None:
        with pytest.raises(ValidationError):
            await engine.create_market("bad id", "Q?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)

    async def test_publishes_created(self, engine: PredictionMarketEngine) -> None:
        seen: list = []

        async def recorder(event) -> None:
            seen.append(event)

        engine.subscribe(recorder)
        await engine.create_market("mkt-e", "Q?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)
        await engine.events.drain()
        assert len(seen) == 1
        assert isinstance(seen[0], MarketCreated)
        assert seen[0].market.id == "mkt-e"


class TestResolve:
    async def test_resolve(self, engine: PredictionMarketEngine, market: str) -> None:
        seen: list = []

        async def recorder(event) -> None:
            seen.append(event)

        engine.subscribe(recorder)
        snap = await engine.resolve(market, 1)
        await engine.events.drain()

        assert snap.winning_outcome == 1
        assert engine.get_market(market).phase == MarketPhase.RESOLVED.value
        assert isinstance(seen[0], MarketResolved)
        assert seen[0].winning_outcome == 1

    async def test_resolve_twice(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.resolve(market, 0)
        with pytest.raises(AlreadyResolvedError):
            await engine.resolve(market, 1)
        assert engine.markets.snapshot(market).winning_outcome == 0

    async def test_invalid_winner(self, engine: PredictionMarketEngine, market: str) -> None:
        with pytest.raises(InvalidOutcomeError) as exc_info:
            await engine.resolve(market, 2)
        assert exc_info.value.code == 4011
        assert exc_info.value.http_status == 400
        assert not engine.markets.snapshot(market).resolved

    async def test_unknown_market(self, engine: PredictionMarketEngine) -> None:
        with pytest.raises(MarketNotFoundError):
            await engine.resolve("nope", 0)


class TestAddLiquidity:
    async def test_flattens_prices(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=10_000_000)
        skewed = engine.prices_bps(market)[0]

        snap = await engine.add_liquidity(market, 1_000_000_000)

        assert snap.liquidity == 2_000_000_000
        assert 5000 < engine.prices_bps(market)[0] < skewed

    async def test_publishes_shares_changed(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        seen: list = []

        async def recorder(event) -> None:
            seen.append(event)

        engine.subscribe(recorder)
        await engine.add_liquidity(market, 10_000)
        await engine.events.drain()
        assert isinstance(seen[0], SharesChanged)
        assert seen[0].market.liquidity == 1_000_010_000

    async def test_amount_bounds(self, engine: PredictionMarketEngine, market: str) -> None:
        with pytest.raises(ValidationError):
            await engine.add_liquidity(market, 9_999)

    async def test_resolved_market(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.resolve(market, 0)
        with pytest.raises(MarketClosedError):
            await engine.add_liquidity(market, 10_000)


class TestArchive:
    async def test_archive_hides_market(self, engine: PredictionMarketEngine, market: str) -> None:
        snap = await engine.archive_market(market)
        assert snap.archived
        assert engine.list_markets() == []
        assert engine.market_stats().total_markets == 0
        # Still readable by id
        assert engine.get_market(market).phase == MarketPhase.ARCHIVED.value

    async def test_archived_market_rejects_trades(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        await engine.archive_market(market)
        order = await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        assert order.error_code == 3002

    async def test_open_positions_block_archive(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        with pytest.raises(MarketHasOpenPositionsError):
            await engine.archive_market(market)

    async def test_archive_after_claims(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        await engine.resolve(market, 0)
        await engine.claim(market, "alice")
        assert (await engine.archive_market(market)).archived

    async def test_publishes_archived(self, engine: PredictionMarketEngine, market: str) -> None:
        seen: list = []

        async def recorder(event) -> None:
            seen.append(event)

        engine.subscribe(recorder)
        snap = await engine.archive_market(market)
        await engine.events.drain()
        assert len(seen) == 1
        assert isinstance(seen[0], MarketArchived)
        assert seen[0].market == snap
        assert seen[0].market.archived


class TestReads:
    async def test_get_market_detail(self, engine: PredictionMarketEngine, market: str) -> None:
        detail = engine.get_market(market)
        assert detail.outcomes == ["Yes", "No"]
        assert detail.prices_bps == [5000, 5000]
        assert detail.liquidity_display == "1.000000000"
        assert detail.phase == "OPEN"

    async def test_list_active_only(
        self, engine: PredictionMarketEngine, market: str, clock: Any
    ) -> None:
        await engine.create_market("mkt-long", "Long?", ["Yes", "No"], 1_000_000, NOW + 30 * DAY)
        clock.advance(8 * DAY)
        assert {m.id for m in engine.list_markets()} == {market, "mkt-long"}
        assert [m.id for m in engine.list_markets(active_only=True)] == ["mkt-long"]

    async def test_newest_first(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.create_market("mkt-2", "Second?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)
        assert [m.id for m in engine.list_markets()] == ["mkt-2", market]

    async def test_search(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.create_market("mkt-btc", "BTC above 100k?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)
        assert [m.id for m in engine.search_markets("btc")] == ["mkt-btc"]
        assert [m.id for m in engine.search_markets("RAIN")] == [market]
        assert engine.search_markets("   ") == []

    async def test_stats(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.create_market("mkt-2", "Second?", ["Yes", "No"], 1_000_000, NOW + 2 * DAY)
        await engine.resolve("mkt-2", 0)
        stats = engine.market_stats()
        assert stats.total_markets == 2
        assert stats.active_markets == 1
        assert stats.resolved_markets == 1
