"""SettlementService — claims against resolved markets and fee withdrawal."""

import logging

from src.pm_account.domain.models import Position
from src.pm_clearing.domain.fee import FeeVault
from src.pm_clearing.domain.settlement import SettlementCalculator, compute_payout
from src.pm_common.errors import MarketNotFoundError, MarketNotResolvedError, PositionNotFoundError
from src.pm_common.events import EventBus, PositionClaimed
from src.pm_store.domain.repository import EngineStoreProtocol

logger = logging.getLogger(__name__)


class SettlementService:
    def __init__(
        self,
        store: EngineStoreProtocol,
        fees: FeeVault,
        events: EventBus,
        calculator: SettlementCalculator | None = None,
    ) -> None:
        self._store = store
        self._fees = fees
        self._events = events
        self._calculator = calculator or SettlementCalculator()

    async def claim(self, market_id: str, user_id: str) -> int:
        """Pay out one position of a resolved market. Returns the payout."""
        state = self._store.get_market(market_id)
        if state is None:
            raise MarketNotFoundError(market_id)

        async with self._store.market_lock(market_id):
            snapshot = state.read()
            if not snapshot.resolved:
                raise MarketNotResolvedError(market_id)
            position = self._store.get_position(market_id, user_id)
            if position is None:
                raise PositionNotFoundError(market_id, user_id)
            claimed = self._calculator.claim(snapshot, position)
            self._store.put_position(claimed)

        self._events.publish(PositionClaimed(position=claimed))
        return claimed.payout

    def claimable(self, market_id: str, user_id: str) -> int:
        """Payout a claim would produce now; 0 once claimed."""
        state = self._store.get_market(market_id)
        if state is None:
            raise MarketNotFoundError(market_id)
        position = self._store.get_position(market_id, user_id)
        if position is None:
            raise PositionNotFoundError(market_id, user_id)
        if position.claimed:
            return 0
        return compute_payout(state.read(), position)

    def positions_for(self, user_id: str) -> list[Position]:
        return self._store.list_positions(user_id=user_id)

    @property
    def total_fees(self) -> int:
        return self._fees.total_fees

    def collect_fees(self, amount: int) -> int:
        return self._fees.collect(amount)
