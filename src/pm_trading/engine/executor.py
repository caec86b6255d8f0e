"""OrderExecutor — validates and applies buy/sell intents per market.

Lifecycle of a submission:

    1. Order created PENDING and registered (cancel() can see it).
    2. Input validated (pydantic schemas); failure -> FAILED, no lock taken.
    3. Market lock acquired. A CANCELLED order stops here.
    4. Read snapshot -> price -> validate -> compute new position ->
       MarketState.apply_delta -> store position -> accrue fee.
       No await between acquiring the lock and committing.
    5. Lock released, then SharesChanged / OrderFinalized published.

Business-rule rejections leave the order FAILED with an error code and
return it. Invariant violations also FAIL the order but are re-raised.
"""

import logging
from collections.abc import Callable
from dataclasses import replace

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings
from src.pm_account.domain.models import Position
from src.pm_clearing.domain.fee import FeeVault, calc_fee
from src.pm_common.datetime_utils import unix_now, utc_now
from src.pm_common.enums import OrderDirection, OrderStatus
from src.pm_common.errors import (
    AlreadyClaimedError,
    AppError,
    InsufficientSharesError,
    InvalidOutcomeError,
    InvalidTransitionError,
    InvariantViolationError,
    MarketClosedError,
    MarketNotFoundError,
    OrderNotFoundError,
    SlippageExceededError,
    ValidationError,
)
from src.pm_common.events import EventBus, OrderFinalized, OrderUpdated, SharesChanged
from src.pm_common.fixed_point import to_basis_points
from src.pm_common.id_generator import generate_id
from src.pm_market.domain.models import MarketSnapshot, MarketState
from src.pm_order.application.schemas import BuyRequest, SellRequest
from src.pm_order.domain.models import Order
from src.pm_pricing.domain.lslmsr import LsLmsrPricing
from src.pm_store.domain.repository import EngineStoreProtocol
from src.pm_trading.domain.models import TradeQuote

logger = logging.getLogger(__name__)

_ApplyFn = Callable[[MarketState, Order], MarketSnapshot]


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def ensure_open(snapshot: MarketSnapshot, now: int) -> None:
    if snapshot.archived:
        raise MarketClosedError(snapshot.id, "archived")
    if snapshot.resolved:
        raise MarketClosedError(snapshot.id, "resolved")
    if now >= snapshot.end_time:
        raise MarketClosedError(snapshot.id, "past its end time")


def ensure_outcome(snapshot: MarketSnapshot, outcome: int) -> None:
    if not 0 <= outcome < snapshot.outcome_count:
        raise InvalidOutcomeError(outcome, snapshot.outcome_count)


class OrderExecutor:
    def __init__(
        self,
        store: EngineStoreProtocol,
        pricing: LsLmsrPricing,
        fees: FeeVault,
        events: EventBus,
        settings: Settings,
        clock: Callable[[], int] = unix_now,
    ) -> None:
        self._store = store
        self._pricing = pricing
        self._fees = fees
        self._events = events
        self._settings = settings
        self._clock = clock

    @property
    def fee_rate_bps(self) -> int:
        return self._settings.FEE_RATE_BPS

    def _get_state(self, market_id: str) -> MarketState:
        state = self._store.get_market(market_id)
        if state is None:
            raise MarketNotFoundError(market_id)
        return state

    # ------------------------------------------------------------------
    # Submissions
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
        state = self._get_state(market_id)
        order = self._new_order(
            market_id, user_id, OrderDirection.BUY, outcome, max_cost, min_shares, tx_reference
        )
        request = {
            "market_id": market_id,
            "user_id": user_id,
            "outcome": outcome,
            "max_cost": max_cost,
            "min_shares": min_shares,
            "tx_reference": tx_reference,
        }
        return await self._run(state, order, BuyRequest, request, self._apply_buy)

    async def submit_sell(
        self,
        market_id: str,
        user_id: str,
        outcome: int,
        shares: int,
        min_payout: int = 0,
        tx_reference: str | None = None,
    ) -> Order:
        state = self._get_state(market_id)
        order = self._new_order(
            market_id, user_id, OrderDirection.SELL, outcome, shares, min_payout, tx_reference
        )
        request = {
            "market_id": market_id,
            "user_id": user_id,
            "outcome": outcome,
            "shares": shares,
            "min_payout": min_payout,
            "tx_reference": tx_reference,
        }
        return await self._run(state, order, SellRequest, request, self._apply_sell)

    def _new_order(
        self,
        market_id: str,
        user_id: str,
        direction: OrderDirection,
        outcome: int,
        amount: int,
        expected_amount: int,
        tx_reference: str | None,
    ) -> Order:
        order = Order(
            id=generate_id(),
            market_id=market_id,
            user_id=user_id,
            direction=direction,
            outcome=outcome,
            amount=amount,
            expected_amount=expected_amount,
            tx_reference=tx_reference,
        )
        self._store.add_order(order)
        return order

    async def _run(
        self,
        state: MarketState,
        order: Order,
        schema: type[BaseModel],
        request: dict,
        apply: _ApplyFn,
    ) -> Order:
        try:
            schema.model_validate(request, context={"settings": self._settings})
        except PydanticValidationError as exc:
            err = ValidationError(_first_error(exc))
            order.mark_failed(err.code, err.message)
            self._finalize(order, None)
            return order

        fatal: InvariantViolationError | None = None
        committed: MarketSnapshot | None = None
        async with self._store.market_lock(order.market_id):
            if order.status is OrderStatus.CANCELLED:
                logger.info("Order %s cancelled before execution", order.id)
            else:
                try:
                    committed = apply(state, order)
                except InvariantViolationError as exc:
                    order.mark_failed(exc.code, exc.message)
                    fatal = exc
                except AppError as exc:
                    order.mark_failed(exc.code, exc.message)

        self._finalize(order, committed)
        if fatal is not None:
            logger.error("Invariant violation on order %s: %s", order.id, fatal.message)
            raise fatal
        return order

    def _finalize(self, order: Order, committed: MarketSnapshot | None) -> None:
        """Post-commit notifications; runs after the market lock is released."""
        if order.status is OrderStatus.FAILED:
            logger.warning(
                "Order %s rejected: [%s] %s", order.id, order.error_code, order.error_message
            )
        if committed is not None:
            self._events.publish(self._shares_changed(committed))
        position = self._store.get_position(order.market_id, order.user_id)
        self._events.publish(
            OrderFinalized(
                order=replace(order),
                position=replace(position, shares=list(position.shares)) if position else None,
            )
        )

    def _shares_changed(self, snapshot: MarketSnapshot) -> SharesChanged:
        b = self._pricing.liquidity_param(snapshot.liquidity)
        prices = to_basis_points(self._pricing.prices(snapshot.total_shares, b))
        return SharesChanged(
            market_id=snapshot.id,
            prices_bps=tuple(prices),
            quantities=snapshot.total_shares,
            market=snapshot,
        )

    # ------------------------------------------------------------------
    # Critical sections (caller holds the market lock)
    # ------------------------------------------------------------------

    def _load_position(self, snapshot: MarketSnapshot, user_id: str) -> Position:
        position = self._store.get_position(snapshot.id, user_id)
        if position is None:
            return Position.empty(snapshot.id, user_id, snapshot.outcome_count)
        if position.claimed:
            raise AlreadyClaimedError(snapshot.id, user_id)
        return position

    def _apply_buy(self, state: MarketState, order: Order) -> MarketSnapshot:
        snapshot = state.read()
        ensure_open(snapshot, self._clock())
        ensure_outcome(snapshot, order.outcome)

        b = self._pricing.liquidity_param(snapshot.liquidity)
        quantities = snapshot.total_shares
        shares = self._pricing.shares_for_budget(
            quantities,
            order.outcome,
            order.amount,
            b,
            fee_rate_bps=self.fee_rate_bps,
            max_shares=self._settings.MAX_SHARES,
        )
        wanted = max(order.expected_amount, self._settings.MIN_SHARES)
        if shares < wanted:
            raise SlippageExceededError(
                f"budget {order.amount} buys {shares} shares, expected at least {wanted}"
            )
        cost = self._pricing.buy_cost(quantities, order.outcome, shares, b)
        fee = calc_fee(cost, self.fee_rate_bps)
        if cost + fee > order.amount:
            raise SlippageExceededError(f"cost {cost} + fee {fee} exceeds max_cost {order.amount}")

        position = self._load_position(snapshot, order.user_id)
        held = list(position.shares)
        held[order.outcome] += shares
        new_position = replace(
            position,
            shares=held,
            total_cost=position.total_cost + cost,
            total_fees=position.total_fees + fee,
            updated_at=utc_now(),
        )

        committed = state.apply_delta(order.outcome, shares)
        self._store.put_position(new_position)
        self._fees.accrue(fee)
        order.mark_executed(actual_amount=shares, gross_value=cost, fee=fee)
        logger.info(
            "BUY executed: order=%s market=%s user=%s outcome=%d shares=%d cost=%d fee=%d",
            order.id,
            order.market_id,
            order.user_id,
            order.outcome,
            shares,
            cost,
            fee,
        )
        return committed

    def _apply_sell(self, state: MarketState, order: Order) -> MarketSnapshot:
        snapshot = state.read()
        ensure_open(snapshot, self._clock())
        ensure_outcome(snapshot, order.outcome)

        position = self._store.get_position(snapshot.id, order.user_id)
        held = position.shares[order.outcome] if position else 0
        if position is None or order.amount > held:
            raise InsufficientSharesError(order.amount, held)
        if position.claimed:
            raise AlreadyClaimedError(snapshot.id, order.user_id)

        b = self._pricing.liquidity_param(snapshot.liquidity)
        payout = self._pricing.sell_payout(snapshot.total_shares, order.outcome, order.amount, b)
        fee = calc_fee(payout, self.fee_rate_bps)
        net = payout - fee
        if net < order.expected_amount:
            raise SlippageExceededError(
                f"payout {net} after fee is below min_payout {order.expected_amount}"
            )

        remaining = list(position.shares)
        remaining[order.outcome] -= order.amount
        new_position = replace(
            position,
            shares=remaining,
            total_fees=position.total_fees + fee,
            total_proceeds=position.total_proceeds + net,
            updated_at=utc_now(),
        )

        committed = state.apply_delta(order.outcome, -order.amount)
        self._store.put_position(new_position)
        self._fees.accrue(fee)
        order.mark_executed(actual_amount=net, gross_value=payout, fee=fee)
        logger.info(
            "SELL executed: order=%s market=%s user=%s outcome=%d shares=%d payout=%d fee=%d",
            order.id,
            order.market_id,
            order.user_id,
            order.outcome,
            order.amount,
            payout,
            fee,
        )
        return committed

    # ------------------------------------------------------------------
    # Order control
    # ------------------------------------------------------------------

    def cancel(self, order_id: str) -> Order:
        """PENDING -> CANCELLED. Only possible while the order waits for its market lock."""
        order = self._store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        order.mark_cancelled()
        logger.info("Order %s cancelled", order_id)
        return order

    def attach_tx_reference(self, order_id: str, tx_reference: str) -> Order:
        """Record the external ledger transaction that settled an executed order."""
        order = self._store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not order.is_executed:
            raise InvalidTransitionError(order_id, order.status.value, "SETTLED")
        if order.tx_reference not in (None, tx_reference):
            raise ValidationError(f"order {order_id} already references {order.tx_reference}")
        order.tx_reference = tx_reference
        order.updated_at = utc_now()
        self._events.publish(OrderUpdated(order=replace(order)))
        return order

    # ------------------------------------------------------------------
    # Quotes (lock-free, against an immutable snapshot)
    # ------------------------------------------------------------------

    def quote_buy(self, market_id: str, outcome: int, shares: int) -> TradeQuote:
        snapshot = self._get_state(market_id).read()
        ensure_outcome(snapshot, outcome)
        if shares < 0:
            raise ValidationError(f"shares must be non-negative, got {shares}")
        b = self._pricing.liquidity_param(snapshot.liquidity)
        cost = self._pricing.buy_cost(snapshot.total_shares, outcome, shares, b)
        fee = calc_fee(cost, self.fee_rate_bps)
        after = list(snapshot.total_shares)
        after[outcome] += shares
        return self._quote(snapshot, outcome, shares, cost, fee, cost + fee, after, b)

    def quote_sell(self, market_id: str, outcome: int, shares: int) -> TradeQuote:
        snapshot = self._get_state(market_id).read()
        ensure_outcome(snapshot, outcome)
        available = snapshot.total_shares[outcome]
        if not 0 <= shares <= available:
            raise InsufficientSharesError(shares, available)
        b = self._pricing.liquidity_param(snapshot.liquidity)
        payout = self._pricing.sell_payout(snapshot.total_shares, outcome, shares, b)
        fee = calc_fee(payout, self.fee_rate_bps)
        after = list(snapshot.total_shares)
        after[outcome] -= shares
        return self._quote(snapshot, outcome, shares, payout, fee, payout - fee, after, b)

    def quote_budget(self, market_id: str, outcome: int, budget: int) -> int:
        """Shares a buy with ``budget`` would currently receive (fee included)."""
        snapshot = self._get_state(market_id).read()
        ensure_outcome(snapshot, outcome)
        b = self._pricing.liquidity_param(snapshot.liquidity)
        return self._pricing.shares_for_budget(
            snapshot.total_shares,
            outcome,
            budget,
            b,
            fee_rate_bps=self.fee_rate_bps,
            max_shares=self._settings.MAX_SHARES,
        )

    def _quote(
        self,
        snapshot: MarketSnapshot,
        outcome: int,
        shares: int,
        gross: int,
        fee: int,
        net: int,
        after: list[int],
        b: float,
    ) -> TradeQuote:
        return TradeQuote(
            market_id=snapshot.id,
            outcome=outcome,
            shares=shares,
            gross=gross,
            fee=fee,
            net=net,
            prices_before_bps=tuple(
                to_basis_points(self._pricing.prices(snapshot.total_shares, b))
            ),
            prices_after_bps=tuple(to_basis_points(self._pricing.prices(after, b))),
            version=snapshot.version,
        )
