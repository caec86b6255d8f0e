"""Claim flow through SettlementService."""

import pytest

from src.pm_common.errors import (
    AlreadyClaimedError,
    InsufficientFeesError,
    MarketNotFoundError,
    MarketNotResolvedError,
    PositionNotFoundError,
)
from src.pm_common.events import PositionClaimed
from src.pm_engine.engine import PredictionMarketEngine

LIQUIDITY = 1_000_000_000


class TestClaim:
    async def test_winners_split_pool(self, engine: PredictionMarketEngine, market: str) -> None:
        a = await engine.submit_buy(market, "alice", 0, max_cost=300_000)
        b = await engine.submit_buy(market, "bob", 0, max_cost=100_000)
        await engine.submit_buy(market, "carol", 1, max_cost=200_000)
        await engine.resolve(market, 0)

        total_yes = a.actual_amount + b.actual_amount
        alice = await engine.claim(market, "alice")
        bob = await engine.claim(market, "bob")
        carol = await engine.claim(market, "carol")

        assert alice == a.actual_amount * LIQUIDITY // total_yes
        assert bob == b.actual_amount * LIQUIDITY // total_yes
        assert carol == 0
        assert LIQUIDITY - 2 < alice + bob <= LIQUIDITY

    async def test_claim_twice(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.submit_buy(market, "alice", 1, max_cost=100_000)
        await engine.resolve(market, 1)
        payout = await engine.claim(market, "alice")

        with pytest.raises(AlreadyClaimedError):
            await engine.claim(market, "alice")
        position = engine.get_position(market, "alice")
        assert position.claimed
        assert position.payout == payout

    async def test_claim_before_resolution(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        with pytest.raises(MarketNotResolvedError):
            await engine.claim(market, "alice")
        assert not engine.get_position(market, "alice").claimed

    async def test_claim_without_position(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        await engine.resolve(market, 0)
        with pytest.raises(PositionNotFoundError):
            await engine.claim(market, "ghost")

    async def test_claim_unknown_market(self, engine: PredictionMarketEngine) -> None:
        with pytest.raises(MarketNotFoundError):
            await engine.claim("nope", "alice")

    async def test_claimable_zero_after_claim(
        self, engine: PredictionMarketEngine, market: str
    ) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        await engine.resolve(market, 0)
        await engine.claim(market, "alice")
        assert engine.claimable(market, "alice") == 0

    async def test_claimable_preview(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        await engine.resolve(market, 0)
        preview = engine.claimable(market, "alice")
        assert preview == await engine.claim(market, "alice")

    async def test_publishes_claim(self, engine: PredictionMarketEngine, market: str) -> None:
        await engine.submit_buy(market, "alice", 0, max_cost=100_000)
        await engine.resolve(market, 0)
        seen: list = []

        async def recorder(event) -> None:
            seen.append(event)

        engine.subscribe(recorder)
        await engine.claim(market, "alice")
        await engine.events.drain()
        assert len(seen) == 1
        assert isinstance(seen[0], PositionClaimed)
        assert seen[0].position.payout == LIQUIDITY


class TestCollectFees:
    async def test_collect(self, engine: PredictionMarketEngine, market: str) -> None:
        order = await engine.submit_buy(market, "alice", 0, max_cost=1_000_000)
        assert engine.collect_fees(order.fee) == 0
        assert engine.fees.total_collected == order.fee

    async def test_collect_too_much(self, engine: PredictionMarketEngine, market: str) -> None:
        with pytest.raises(InsufficientFeesError):
            engine.collect_fees(1)
