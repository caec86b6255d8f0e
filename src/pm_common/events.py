"""Domain events and the in-process EventBus.

Events are published only after the market lock is released, and delivery
is fire-and-forget: each listener call runs in its own asyncio task, so a
slow or failing observer (WebSocket fan-out, persistence) can neither
block nor fail the trade that produced the event.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from src.pm_account.domain.models import Position
from src.pm_market.domain.models import MarketSnapshot
from src.pm_order.domain.models import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketCreated:
    market: MarketSnapshot


@dataclass(frozen=True)
class SharesChanged:
    market_id: str
    prices_bps: tuple[int, ...]
    quantities: tuple[int, ...]
    market: MarketSnapshot


@dataclass(frozen=True)
class MarketResolved:
    market_id: str
    winning_outcome: int
    market: MarketSnapshot


@dataclass(frozen=True)
class MarketArchived:
    market_id: str
    market: MarketSnapshot


@dataclass(frozen=True)
class OrderFinalized:
    order: Order
    position: Position | None = None


@dataclass(frozen=True)
class OrderUpdated:
    """Post-finalization change to an order row, e.g. an attached tx reference."""

    order: Order


@dataclass(frozen=True)
class PositionClaimed:
    position: Position


MarketEvent = (
    MarketCreated
    | SharesChanged
    | MarketResolved
    | MarketArchived
    | OrderFinalized
    | OrderUpdated
    | PositionClaimed
)
Listener = Callable[[MarketEvent], Awaitable[None]]


class EventBus:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._in_flight: set[asyncio.Task[None]] = set()

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def publish(self, event: MarketEvent) -> None:
        for listener in self._listeners:
            task = asyncio.get_running_loop().create_task(self._deliver(listener, event))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def drain(self) -> None:
        """Wait until every delivery scheduled so far has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    async def _deliver(self, listener: Listener, event: MarketEvent) -> None:
        try:
            await listener(event)
        except Exception:
            logger.exception(
                "Listener %r failed on %s", listener, type(event).__name__
            )
