"""LS-LMSR cost function. Pure math, no state.

Notation:
    q: outcome quantity vector (non-negative ints, one per outcome)
    b: liquidity scale parameter, b = alpha * liquidity

    C(q)   = b * ln(Σ exp(q_i / b))
    p_i(q) = exp(q_i / b) / Σ exp(q_j / b)

Trade amounts are differences of C. Anything that moves a balance is
floor-truncated to an int; the real-valued differences are exposed as
*_exact for quoting and property checks.
"""

from collections.abc import Sequence

from src.pm_common.errors import InvalidLiquidityError, InvalidOutcomeError, ValidationError
from src.pm_common.fixed_point import bps_of, floor_to_int, log_sum_exp, softmax

DEFAULT_ALPHA = 0.02


def _check_inputs(quantities: Sequence[int], b: float) -> None:
    if b <= 0:
        raise InvalidLiquidityError(b)
    if not quantities:
        raise ValidationError("quantities must not be empty")
    for q in quantities:
        if q < 0:
            raise ValidationError(f"quantities must be non-negative, got {list(quantities)}")


def _check_outcome(quantities: Sequence[int], outcome: int) -> None:
    if not 0 <= outcome < len(quantities):
        raise InvalidOutcomeError(outcome, len(quantities))


def _with_delta(quantities: Sequence[int], outcome: int, delta: int) -> list[int]:
    moved = list(quantities)
    moved[outcome] += delta
    return moved


class LsLmsrPricing:
    """Prices trades against aggregate outcome demand.

    Stateless apart from ``alpha``; every method is a pure function of its
    arguments, so concurrent readers can share one instance.
    """

    def __init__(self, alpha: float = DEFAULT_ALPHA) -> None:
        if alpha <= 0:
            raise ValidationError(f"alpha must be positive, got {alpha}")
        self.alpha = alpha

    def liquidity_param(self, liquidity: int) -> float:
        b = self.alpha * liquidity
        if b <= 0:
            raise InvalidLiquidityError(b)
        return b

    # ------------------------------------------------------------------
    # Core functions
    # ------------------------------------------------------------------

    def cost(self, quantities: Sequence[int], b: float) -> float:
        _check_inputs(quantities, b)
        return b * log_sum_exp([q / b for q in quantities])

    def prices(self, quantities: Sequence[int], b: float) -> list[float]:
        """Instantaneous prices, each in [0, 1], summing to 1."""
        _check_inputs(quantities, b)
        return softmax([q / b for q in quantities])

    def buy_cost_exact(
        self, quantities: Sequence[int], outcome: int, delta: int, b: float
    ) -> float:
        _check_outcome(quantities, outcome)
        if delta < 0:
            raise ValidationError(f"delta must be non-negative, got {delta}")
        after = _with_delta(quantities, outcome, delta)
        return self.cost(after, b) - self.cost(quantities, b)

    def sell_payout_exact(
        self, quantities: Sequence[int], outcome: int, delta: int, b: float
    ) -> float:
        _check_outcome(quantities, outcome)
        if delta < 0:
            raise ValidationError(f"delta must be non-negative, got {delta}")
        # Clamped so the math stays defined; OrderExecutor rejects over-sells first.
        removed = min(delta, quantities[outcome])
        after = _with_delta(quantities, outcome, -removed)
        return self.cost(quantities, b) - self.cost(after, b)

    def buy_cost(self, quantities: Sequence[int], outcome: int, delta: int, b: float) -> int:
        return max(0, floor_to_int(self.buy_cost_exact(quantities, outcome, delta, b)))

    def sell_payout(
        self, quantities: Sequence[int], outcome: int, delta: int, b: float
    ) -> int:
        return max(0, floor_to_int(self.sell_payout_exact(quantities, outcome, delta, b)))

    # ------------------------------------------------------------------
    # Inverse
    # ------------------------------------------------------------------

    def shares_for_budget(
        self,
        quantities: Sequence[int],
        outcome: int,
        budget: int,
        b: float,
        fee_rate_bps: int = 0,
        max_shares: int | None = None,
    ) -> int:
        """Largest share count whose cost plus fee fits in ``budget``.

        Binary search over buy_cost, which is non-decreasing in shares.
        """
        _check_outcome(quantities, outcome)
        if budget <= 0:
            return 0

        def total(shares: int) -> int:
            cost = self.buy_cost(quantities, outcome, shares, b)
            return cost + bps_of(cost, fee_rate_bps)

        # Marginal price is below 1, so `budget` shares may still fit; grow
        # the bound until it overshoots.
        high = budget
        while total(high) <= budget:
            if max_shares is not None and high >= max_shares:
                return max_shares
            high *= 2
        low = 0
        while low < high:
            mid = (low + high + 1) // 2
            if total(mid) <= budget:
                low = mid
            else:
                high = mid - 1
        if max_shares is not None:
            return min(low, max_shares)
        return low
