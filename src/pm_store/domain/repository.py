# src/pm_store/domain/repository.py
"""EngineStore Protocol — dependency inversion for testability.

The engine only talks to this interface. InMemoryStore is the reference
implementation; a fresh one is built per engine instance (and per test).
"""

import asyncio
from typing import Protocol

from src.pm_account.domain.models import Position
from src.pm_common.enums import OrderDirection, OrderStatus
from src.pm_market.domain.models import MarketState
from src.pm_order.domain.models import Order


class EngineStoreProtocol(Protocol):
    def market_lock(self, market_id: str) -> asyncio.Lock: ...

    def add_market(self, state: MarketState) -> None: ...

    def get_market(self, market_id: str) -> MarketState | None: ...

    def list_markets(self) -> list[MarketState]: ...

    def get_position(self, market_id: str, user_id: str) -> Position | None: ...

    def put_position(self, position: Position) -> None: ...

    def list_positions(
        self, market_id: str | None = None, user_id: str | None = None
    ) -> list[Position]: ...

    def add_order(self, order: Order) -> None: ...

    def get_order(self, order_id: str) -> Order | None: ...

    def list_orders(
        self,
        user_id: str | None = None,
        market_id: str | None = None,
        direction: OrderDirection | None = None,
        status: OrderStatus | None = None,
    ) -> list[Order]: ...
