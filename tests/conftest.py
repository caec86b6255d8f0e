"""Shared test fixtures.

Every engine is built fresh per test; nothing is shared across tests.
"""

import pytest

from config.settings import Settings
from src.pm_engine.engine import PredictionMarketEngine

NOW = 1_760_000_000
DAY = 86_400
LIQUIDITY = 1_000_000_000


class FakeClock:
    """Manually advanced Unix clock."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(FEE_RATE_BPS=500, LSLMSR_ALPHA=0.02)


@pytest.fixture
def engine(settings: Settings, clock: FakeClock) -> PredictionMarketEngine:
    return PredictionMarketEngine(settings=settings, clock=clock)


@pytest.fixture
def zero_fee_engine(clock: FakeClock) -> PredictionMarketEngine:
    return PredictionMarketEngine(settings=Settings(FEE_RATE_BPS=0), clock=clock)


@pytest.fixture
async def market(engine: PredictionMarketEngine) -> str:
    """Open Yes/No market, liquidity 1e9, ending in 7 days."""
    await engine.create_market(
        "mkt-yes-no", "Will it rain tomorrow?", ["Yes", "No"], LIQUIDITY, NOW + 7 * DAY
    )
    return "mkt-yes-no"
