"""Domain models for pm_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.pm_common.datetime_utils import utc_now


@dataclass
class Position:
    market_id: str
    user_id: str
    shares: list[int]
    total_cost: int = 0         # atomic units paid on buys, fees excluded
    total_fees: int = 0         # atomic units, buys and sells
    total_proceeds: int = 0     # atomic units received on sells, after fees
    claimed: bool = False
    payout: int = 0             # set once by claim
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def empty(cls, market_id: str, user_id: str, outcome_count: int) -> "Position":
        return cls(market_id=market_id, user_id=user_id, shares=[0] * outcome_count)

    @property
    def is_open(self) -> bool:
        return not self.claimed and any(s > 0 for s in self.shares)

    def shares_of(self, outcome: int) -> int:
        return self.shares[outcome]
