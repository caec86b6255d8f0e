"""Domain models for pm_market.

MarketSnapshot is an immutable view; MarketState owns the current snapshot
and swaps in a fully-computed replacement on every mutation, so readers
never observe a half-applied vector. Mutators must run under the
per-market lock (see pm_store); read() is safe without it.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketPhase
from src.pm_common.errors import (
    AlreadyResolvedError,
    NegativeBalanceError,
    OutcomeOutOfRangeError,
    ValidationError,
)


@dataclass(frozen=True)
class MarketSnapshot:
    id: str
    question: str
    outcomes: tuple[str, ...]
    liquidity: int
    total_shares: tuple[int, ...]
    end_time: int
    resolved: bool = False
    winning_outcome: int | None = None
    archived: bool = False
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    resolved_at: datetime | None = None

    @property
    def outcome_count(self) -> int:
        return len(self.outcomes)

    def is_open(self, now: int) -> bool:
        return not self.resolved and not self.archived and now < self.end_time

    def phase(self, now: int) -> MarketPhase:
        if self.archived:
            return MarketPhase.ARCHIVED
        if self.resolved:
            return MarketPhase.RESOLVED
        if now >= self.end_time:
            return MarketPhase.CLOSED
        return MarketPhase.OPEN


class MarketState:
    """Mutable holder of one market's authoritative snapshot."""

    def __init__(self, snapshot: MarketSnapshot) -> None:
        if len(snapshot.total_shares) != len(snapshot.outcomes):
            raise ValidationError(
                f"total_shares length {len(snapshot.total_shares)} != "
                f"outcome count {len(snapshot.outcomes)}"
            )
        if any(s < 0 for s in snapshot.total_shares):
            raise ValidationError("total_shares must be non-negative")
        if snapshot.resolved != (snapshot.winning_outcome is not None):
            raise ValidationError("winning_outcome must be set iff the market is resolved")
        self._snapshot = snapshot

    @property
    def market_id(self) -> str:
        return self._snapshot.id

    def read(self) -> MarketSnapshot:
        return self._snapshot

    def _check_outcome(self, outcome: int) -> None:
        count = self._snapshot.outcome_count
        if not 0 <= outcome < count:
            raise OutcomeOutOfRangeError(self._snapshot.id, outcome, count)

    def apply_delta(self, outcome: int, signed_delta: int) -> MarketSnapshot:
        self._check_outcome(outcome)
        current = self._snapshot
        new_balance = current.total_shares[outcome] + signed_delta
        if new_balance < 0:
            raise NegativeBalanceError(current.id, outcome, new_balance)

        shares = list(current.total_shares)
        shares[outcome] = new_balance
        self._snapshot = replace(
            current, total_shares=tuple(shares), version=current.version + 1
        )
        return self._snapshot

    def resolve(self, winning_outcome: int) -> MarketSnapshot:
        current = self._snapshot
        if current.resolved:
            raise AlreadyResolvedError(current.id)
        self._check_outcome(winning_outcome)
        self._snapshot = replace(
            current,
            resolved=True,
            winning_outcome=winning_outcome,
            resolved_at=utc_now(),
            version=current.version + 1,
        )
        return self._snapshot

    def add_liquidity(self, amount: int) -> MarketSnapshot:
        if amount <= 0:
            raise ValidationError(f"liquidity amount must be positive, got {amount}")
        current = self._snapshot
        self._snapshot = replace(
            current, liquidity=current.liquidity + amount, version=current.version + 1
        )
        return self._snapshot

    def archive(self) -> MarketSnapshot:
        current = self._snapshot
        if current.archived:
            return current
        self._snapshot = replace(current, archived=True, version=current.version + 1)
        return self._snapshot
