"""PredictionMarketEngine — the inbound surface of the pricing/settlement core.

One engine instance owns one store, one fee vault and one event bus.
Nothing is process-global: build as many engines as needed (one per test).

Inbound:  create_market, submit_buy, submit_sell, cancel, resolve, claim,
          quote_buy / quote_sell / quote_budget, add_liquidity, archive_market,
          collect_fees and read queries.
Outbound: EventBus events, delivered after each critical section commits.
"""

import logging
from collections import Counter
from collections.abc import Callable

from config.settings import Settings
from src.pm_account.domain.models import Position
from src.pm_clearing.application.service import SettlementService
from src.pm_clearing.domain.fee import FeeVault, validate_fee_rate
from src.pm_clearing.domain.settlement import compute_payout
from src.pm_common.datetime_utils import unix_now
from src.pm_common.enums import OrderDirection, OrderStatus
from src.pm_common.errors import MarketNotFoundError, OrderNotFoundError, PositionNotFoundError
from src.pm_common.events import EventBus, Listener
from src.pm_common.fixed_point import floor_to_int
from src.pm_market.application.schemas import MarketDetail, MarketStats
from src.pm_market.application.service import MarketApplicationService
from src.pm_market.domain.models import MarketSnapshot
from src.pm_order.application.schemas import OrderStats
from src.pm_order.domain.models import Order
from src.pm_pricing.domain.lslmsr import LsLmsrPricing
from src.pm_store.domain.repository import EngineStoreProtocol
from src.pm_store.infrastructure.memory import InMemoryStore
from src.pm_trading.domain.models import TradeQuote
from src.pm_trading.engine.executor import OrderExecutor

logger = logging.getLogger(__name__)


class PredictionMarketEngine:
    def __init__(
        self,
        settings: Settings | None = None,
        store: EngineStoreProtocol | None = None,
        events: EventBus | None = None,
        clock: Callable[[], int] = unix_now,
    ) -> None:
        self.settings = settings or Settings()
        validate_fee_rate(self.settings.FEE_RATE_BPS, self.settings.MAX_FEE_RATE_BPS)
        self.store: EngineStoreProtocol = store or InMemoryStore()
        self.events = events or EventBus()
        self.pricing = LsLmsrPricing(alpha=self.settings.LSLMSR_ALPHA)
        self.fees = FeeVault()
        self._clock = clock

        self.markets = MarketApplicationService(
            self.store, self.pricing, self.events, self.settings, clock
        )
        self.executor = OrderExecutor(
            self.store, self.pricing, self.fees, self.events, self.settings, clock
        )
        self.settlement = SettlementService(self.store, self.fees, self.events)

    def subscribe(self, listener: Listener) -> None:
        self.events.subscribe(listener)

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def create_market(
        self,
        market_id: str,
        question: str,
        outcomes: list[str],
        liquidity: int,
        end_time: int,
    ) -> MarketSnapshot:
        return await self.markets.create_market(market_id, question, outcomes, liquidity, end_time)

    async def resolve(self, market_id: str, winning_outcome: int) -> MarketSnapshot:
        return await self.markets.resolve(market_id, winning_outcome)

    async def add_liquidity(self, market_id: str, amount: int) -> MarketSnapshot:
        return await self.markets.add_liquidity(market_id, amount)

    async def archive_market(self, market_id: str) -> MarketSnapshot:
        return await self.markets.archive(market_id)

    def get_market(self, market_id: str) -> MarketDetail:
        return self.markets.get_market(market_id)

    def prices_bps(self, market_id: str) -> list[int]:
        return self.markets.prices_bps(market_id)

    def list_markets(self, active_only: bool = False) -> list[MarketDetail]:
        return self.markets.list_markets(active_only=active_only)

    def search_markets(self, query: str) -> list[MarketDetail]:
        return self.markets.search_markets(query)

    def market_stats(self) -> MarketStats:
        return self.markets.market_stats()

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def submit_buy(
        self,
        market_id: str,
        user_id: str,
        outcome: int,
        max_cost: int,
        min_shares: int = 0,
        tx_reference: str | None = None,
    ) -> Order:
        return await self.executor.submit_buy(
            market_id, user_id, outcome, max_cost, min_shares, tx_reference
        )

    async def submit_sell(
        self,
        market_id: str,
        user_id: str,
        outcome: int,
        shares: int,
        min_payout: int = 0,
        tx_reference: str | None = None,
    ) -> Order:
        return await self.executor.submit_sell(
            market_id, user_id, outcome, shares, min_payout, tx_reference
        )

    def cancel(self, order_id: str) -> Order:
        return self.executor.cancel(order_id)

    def attach_tx_reference(self, order_id: str, tx_reference: str) -> Order:
        return self.executor.attach_tx_reference(order_id, tx_reference)

    def quote_buy(self, market_id: str, outcome: int, shares: int) -> TradeQuote:
        return self.executor.quote_buy(market_id, outcome, shares)

    def quote_sell(self, market_id: str, outcome: int, shares: int) -> TradeQuote:
        return self.executor.quote_sell(market_id, outcome, shares)

    def quote_budget(self, market_id: str, outcome: int, budget: int) -> int:
        return self.executor.quote_budget(market_id, outcome, budget)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def claim(self, market_id: str, user_id: str) -> int:
        return await self.settlement.claim(market_id, user_id)

    def claimable(self, market_id: str, user_id: str) -> int:
        return self.settlement.claimable(market_id, user_id)

    def collect_fees(self, amount: int) -> int:
        return self.settlement.collect_fees(amount)

    # ------------------------------------------------------------------
    # Orders & positions
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        user_id: str | None = None,
        market_id: str | None = None,
        direction: OrderDirection | None = None,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        return self.store.list_orders(
            user_id=user_id, market_id=market_id, direction=direction, status=status
        )

    def order_stats(self) -> OrderStats:
        orders = self.store.list_orders()
        executed = [o for o in orders if o.status is OrderStatus.EXECUTED]
        return OrderStats(
            total_orders=len(orders),
            unique_users=len({o.user_id for o in orders}),
            executed_volume=sum(o.gross_value for o in executed),
            total_fees=sum(o.fee for o in executed),
            orders_by_direction=dict(Counter(o.direction.value for o in orders)),
            orders_by_status=dict(Counter(o.status.value for o in orders)),
        )

    def get_position(self, market_id: str, user_id: str) -> Position:
        position = self.store.get_position(market_id, user_id)
        if position is None:
            raise PositionNotFoundError(market_id, user_id)
        return position

    def list_positions(
        self, market_id: str | None = None, user_id: str | None = None
    ) -> list[Position]:
        return self.store.list_positions(market_id=market_id, user_id=user_id)

    def position_value(self, market_id: str, user_id: str) -> int:
        """Mark-to-market value: Σ shares_i * price_i, or the payout once resolved."""
        state = self.store.get_market(market_id)
        if state is None:
            raise MarketNotFoundError(market_id)
        position = self.get_position(market_id, user_id)
        snapshot = state.read()
        if snapshot.resolved:
            return 0 if position.claimed else compute_payout(snapshot, position)
        b = self.pricing.liquidity_param(snapshot.liquidity)
        prices = self.pricing.prices(snapshot.total_shares, b)
        return floor_to_int(sum(s * p for s, p in zip(position.shares, prices)))
