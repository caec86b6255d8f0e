"""Order domain model — pure dataclass, no SQLAlchemy dependency.

Amount fields by direction:

    BUY:  amount = cost budget,     expected_amount = min shares,
          actual_amount = shares credited
    SELL: amount = shares to sell,  expected_amount = min payout,
          actual_amount = payout after fees

Status only moves PENDING -> EXECUTED | FAILED | CANCELLED.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import OrderDirection, OrderStatus
from src.pm_common.errors import InvalidTransitionError
from src.pm_common.fixed_point import BPS_DENOMINATOR


@dataclass
class Order:
    id: str
    market_id: str
    user_id: str
    direction: OrderDirection
    outcome: int
    amount: int
    expected_amount: int
    actual_amount: int = 0
    gross_value: int = 0    # buy: cost before fee / sell: payout before fee
    fee: int = 0
    status: OrderStatus = OrderStatus.PENDING
    tx_reference: str | None = None
    error_code: int | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_buy(self) -> bool:
        return self.direction is OrderDirection.BUY

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    @property
    def is_executed(self) -> bool:
        return self.status is OrderStatus.EXECUTED

    @property
    def slippage_bps(self) -> int:
        """|expected - actual| / expected in basis points; 0 if either side is 0."""
        if self.expected_amount == 0 or self.actual_amount == 0:
            return 0
        diff = abs(self.expected_amount - self.actual_amount)
        return diff * BPS_DENOMINATOR // self.expected_amount

    def _transition(self, target: OrderStatus) -> None:
        if self.status.is_terminal:
            raise InvalidTransitionError(self.id, self.status.value, target.value)
        self.status = target
        self.updated_at = utc_now()

    def mark_executed(self, actual_amount: int, gross_value: int, fee: int) -> None:
        self._transition(OrderStatus.EXECUTED)
        self.actual_amount = actual_amount
        self.gross_value = gross_value
        self.fee = fee

    def mark_failed(self, code: int, message: str) -> None:
        self._transition(OrderStatus.FAILED)
        self.error_code = code
        self.error_message = message

    def mark_cancelled(self) -> None:
        self._transition(OrderStatus.CANCELLED)
