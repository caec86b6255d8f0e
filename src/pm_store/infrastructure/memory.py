"""InMemoryStore — keyed maps for markets, positions and orders.

Serialization strategy: one asyncio.Lock per market id, created lazily.
Every mutation of a market's shares, resolution, liquidity or positions
happens while holding that market's lock; markets never share a lock, so
trades on different markets proceed independently.
"""

import asyncio
from collections import defaultdict

from src.pm_account.domain.models import Position
from src.pm_common.enums import OrderDirection, OrderStatus
from src.pm_common.errors import MarketAlreadyExistsError
from src.pm_market.domain.models import MarketState
from src.pm_order.domain.models import Order


class InMemoryStore:
    def __init__(self) -> None:
        self._markets: dict[str, MarketState] = {}
        self._positions: dict[tuple[str, str], Position] = {}
        self._orders: dict[str, Order] = {}
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def market_lock(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    # --- markets ---

    def add_market(self, state: MarketState) -> None:
        if state.market_id in self._markets:
            raise MarketAlreadyExistsError(state.market_id)
        self._markets[state.market_id] = state

    def get_market(self, market_id: str) -> MarketState | None:
        return self._markets.get(market_id)

    def list_markets(self) -> list[MarketState]:
        return list(self._markets.values())

    # --- positions ---

    def get_position(self, market_id: str, user_id: str) -> Position | None:
        return self._positions.get((market_id, user_id))

    def put_position(self, position: Position) -> None:
        self._positions[(position.market_id, position.user_id)] = position

    def list_positions(
        self, market_id: str | None = None, user_id: str | None = None
    ) -> list[Position]:
        return [
            p
            for p in self._positions.values()
            if (market_id is None or p.market_id == market_id)
            and (user_id is None or p.user_id == user_id)
        ]

    # --- orders ---

    def add_order(self, order: Order) -> None:
        self._orders[order.id] = order

    def get_order(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    def list_orders(
        self,
        user_id: str | None = None,
        market_id: str | None = None,
        direction: OrderDirection | None = None,
        status: OrderStatus | None = None,
    ) -> list[Order]:
        # Newest first
        return [
            o
            for o in reversed(self._orders.values())
            if (user_id is None or o.user_id == user_id)
            and (market_id is None or o.market_id == market_id)
            and (direction is None or o.direction is direction)
            and (status is None or o.status is status)
        ]
