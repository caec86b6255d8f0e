"""Integer-safe arithmetic helpers for atomic-unit balances.

Balances, costs, payouts and fees are int (atomic currency units).
Floats only appear inside the pricing math; anything that lands on a
balance goes through floor_to_int first, so the market maker never pays
out more than it collects.
"""

import math
from collections.abc import Sequence

BPS_DENOMINATOR = 10_000


def log_sum_exp(values: Sequence[float]) -> float:
    """ln(Σ exp(v)) with the max term factored out so exp() never overflows."""
    if not values:
        raise ValueError("log_sum_exp of an empty sequence")
    top = max(values)
    return top + math.log(math.fsum(math.exp(v - top) for v in values))


def softmax(values: Sequence[float]) -> list[float]:
    """Normalized exp(v_i) / Σ exp(v_j), max-shifted."""
    if not values:
        raise ValueError("softmax of an empty sequence")
    top = max(values)
    exps = [math.exp(v - top) for v in values]
    total = math.fsum(exps)
    return [e / total for e in exps]


def floor_to_int(x: float) -> int:
    """Deterministic truncation toward -inf. Never rounds up."""
    if math.isnan(x) or math.isinf(x):
        raise ValueError(f"cannot truncate non-finite value {x}")
    return math.floor(x)


def mul_div_floor(a: int, b: int, c: int) -> int:
    """floor(a * b / c) using integers only."""
    if c <= 0:
        raise ValueError(f"divisor must be positive, got {c}")
    return (a * b) // c


def bps_of(amount: int, rate_bps: int) -> int:
    """Fee with floor division: floor(amount * rate_bps / 10000)."""
    if amount <= 0 or rate_bps <= 0:
        return 0
    return mul_div_floor(amount, rate_bps, BPS_DENOMINATOR)


def to_basis_points(prices: Sequence[float]) -> list[int]:
    """Convert probabilities to integer basis points summing to exactly 10000.

    Each entry is round(p * 10000); if rounding leaves the total off by a
    few points, the difference is settled on the entries with the largest
    (or smallest) fractional remainders.
    """
    scaled = [p * BPS_DENOMINATOR for p in prices]
    rounded = [int(math.floor(s + 0.5)) for s in scaled]
    diff = BPS_DENOMINATOR - sum(rounded)
    if diff == 0 or not rounded:
        return rounded

    # Positive diff: bump the entries that lost the most to rounding.
    residuals = sorted(
        range(len(scaled)),
        key=lambda i: scaled[i] - rounded[i],
        reverse=diff > 0,
    )
    step = 1 if diff > 0 else -1
    for i in residuals[: abs(diff)]:
        rounded[i] += step
    return rounded


def format_atomic(amount: int, decimals: int = 9) -> str:
    """Render atomic units as a decimal string: 1500000000 -> '1.500000000'."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    return f"{sign}{whole:,}.{frac:0{decimals}d}"
