"""MarketApplicationService — market lifecycle and read views.

Creation, resolution, liquidity changes and archival take the market lock;
reads work on snapshots without it.
"""

import logging
from collections.abc import Callable

from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings
from src.pm_common.datetime_utils import unix_now
from src.pm_common.errors import (
    InvalidOutcomeError,
    MarketClosedError,
    MarketHasOpenPositionsError,
    MarketNotFoundError,
    ValidationError,
)
from src.pm_common.events import (
    EventBus,
    MarketArchived,
    MarketCreated,
    MarketResolved,
    SharesChanged,
)
from src.pm_common.fixed_point import to_basis_points
from src.pm_market.application.schemas import CreateMarketRequest, MarketDetail, MarketStats
from src.pm_market.domain.models import MarketSnapshot, MarketState
from src.pm_pricing.domain.lslmsr import LsLmsrPricing
from src.pm_store.domain.repository import EngineStoreProtocol

logger = logging.getLogger(__name__)


class MarketApplicationService:
    def __init__(
        self,
        store: EngineStoreProtocol,
        pricing: LsLmsrPricing,
        events: EventBus,
        settings: Settings,
        clock: Callable[[], int] = unix_now,
    ) -> None:
        self._store = store
        self._pricing = pricing
        self._events = events
        self._settings = settings
        self._clock = clock

    def _get_state(self, market_id: str) -> MarketState:
        state = self._store.get_market(market_id)
        if state is None:
            raise MarketNotFoundError(market_id)
        return state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_market(
        self,
        market_id: str,
        question: str,
        outcomes: list[str],
        liquidity: int,
        end_time: int,
    ) -> MarketSnapshot:
        try:
            req = CreateMarketRequest.model_validate(
                {
                    "market_id": market_id,
                    "question": question,
                    "outcomes": outcomes,
                    "liquidity": liquidity,
                    "end_time": end_time,
                    "now": self._clock(),
                },
                context={"settings": self._settings},
            )
        except PydanticValidationError as exc:
            raise ValidationError(str(exc.errors()[0].get("msg"))) from exc

        snapshot = MarketSnapshot(
            id=req.market_id,
            question=req.question,
            outcomes=tuple(req.outcomes),
            liquidity=req.liquidity,
            total_shares=(0,) * len(req.outcomes),
            end_time=req.end_time,
        )
        async with self._store.market_lock(req.market_id):
            self._store.add_market(MarketState(snapshot))

        logger.info(
            "Market created: id=%s outcomes=%d liquidity=%d end_time=%d",
            snapshot.id,
            snapshot.outcome_count,
            snapshot.liquidity,
            snapshot.end_time,
        )
        self._events.publish(MarketCreated(market=snapshot))
        return snapshot

    async def resolve(self, market_id: str, winning_outcome: int) -> MarketSnapshot:
        state = self._get_state(market_id)
        count = state.read().outcome_count
        if not 0 <= winning_outcome < count:
            raise InvalidOutcomeError(winning_outcome, count)
        async with self._store.market_lock(market_id):
            snapshot = state.resolve(winning_outcome)

        logger.info(
            "Market resolved: id=%s winning_outcome=%d (%s)",
            market_id,
            winning_outcome,
            snapshot.outcomes[winning_outcome],
        )
        self._events.publish(
            MarketResolved(market_id=market_id, winning_outcome=winning_outcome, market=snapshot)
        )
        return snapshot

    async def add_liquidity(self, market_id: str, amount: int) -> MarketSnapshot:
        s = self._settings
        if not (s.MIN_COST <= amount <= s.MAX_COST):
            raise ValidationError(f"amount must be in [{s.MIN_COST}, {s.MAX_COST}], got {amount}")
        state = self._get_state(market_id)
        async with self._store.market_lock(market_id):
            current = state.read()
            if current.resolved or current.archived:
                raise MarketClosedError(market_id, "resolved" if current.resolved else "archived")
            if current.liquidity + amount > s.MAX_LIQUIDITY:
                raise ValidationError(
                    f"liquidity would exceed {s.MAX_LIQUIDITY} after adding {amount}"
                )
            snapshot = state.add_liquidity(amount)

        logger.info(
            "Liquidity added: id=%s amount=%d total=%d", market_id, amount, snapshot.liquidity
        )
        self._events.publish(
            SharesChanged(
                market_id=market_id,
                prices_bps=tuple(self.prices_bps_of(snapshot)),
                quantities=snapshot.total_shares,
                market=snapshot,
            )
        )
        return snapshot

    async def archive(self, market_id: str) -> MarketSnapshot:
        """Soft delete. Refused while any unclaimed position still holds shares."""
        state = self._get_state(market_id)
        async with self._store.market_lock(market_id):
            if any(p.is_open for p in self._store.list_positions(market_id=market_id)):
                raise MarketHasOpenPositionsError(market_id)
            snapshot = state.archive()
        logger.info("Market archived: id=%s", market_id)
        self._events.publish(MarketArchived(market_id=market_id, market=snapshot))
        return snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self, market_id: str) -> MarketSnapshot:
        return self._get_state(market_id).read()

    def prices_bps_of(self, snapshot: MarketSnapshot) -> list[int]:
        b = self._pricing.liquidity_param(snapshot.liquidity)
        return to_basis_points(self._pricing.prices(snapshot.total_shares, b))

    def prices_bps(self, market_id: str) -> list[int]:
        return self.prices_bps_of(self.snapshot(market_id))

    def get_market(self, market_id: str) -> MarketDetail:
        snapshot = self.snapshot(market_id)
        return MarketDetail.from_domain(snapshot, self.prices_bps_of(snapshot), self._clock())

    def list_markets(self, active_only: bool = False) -> list[MarketDetail]:
        """Newest first; archived markets are never listed."""
        now = self._clock()
        snapshots = [
            s.read() for s in reversed(self._store.list_markets()) if not s.read().archived
        ]
        if active_only:
            snapshots = [m for m in snapshots if m.is_open(now)]
        snapshots.sort(key=lambda m: m.created_at, reverse=True)
        return [MarketDetail.from_domain(m, self.prices_bps_of(m), now) for m in snapshots]

    def search_markets(self, query: str) -> list[MarketDetail]:
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            m
            for m in self.list_markets()
            if needle in m.question.lower() or needle in m.id.lower()
        ]

    def market_stats(self) -> MarketStats:
        snapshots = [s.read() for s in self._store.list_markets() if not s.read().archived]
        resolved = sum(1 for m in snapshots if m.resolved)
        return MarketStats(
            total_markets=len(snapshots),
            active_markets=len(snapshots) - resolved,
            resolved_markets=resolved,
        )
