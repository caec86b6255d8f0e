"""Trade fees and the fee vault they accrue to."""

import logging

from src.pm_common.errors import InsufficientFeesError, ValidationError
from src.pm_common.fixed_point import bps_of

logger = logging.getLogger(__name__)


def calc_fee(trade_value: int, fee_bps: int) -> int:
    """Floor division fee: (trade_value x fee_bps) // 10000."""
    return bps_of(trade_value, fee_bps)


def validate_fee_rate(fee_bps: int, max_fee_bps: int) -> int:
    if not (0 <= fee_bps <= max_fee_bps):
        raise ValidationError(f"fee rate must be in [0, {max_fee_bps}] bps, got {fee_bps}")
    return fee_bps


class FeeVault:
    """Running total of fees charged across all markets of one engine."""

    def __init__(self) -> None:
        self.total_fees = 0
        self.total_collected = 0

    def accrue(self, amount: int) -> None:
        if amount < 0:
            raise ValidationError(f"fee amount must be non-negative, got {amount}")
        self.total_fees += amount

    def collect(self, amount: int) -> int:
        """Withdraw ``amount`` of accrued fees; returns what is left."""
        if amount <= 0:
            raise ValidationError(f"collect amount must be positive, got {amount}")
        if amount > self.total_fees:
            raise InsufficientFeesError(amount, self.total_fees)
        self.total_fees -= amount
        self.total_collected += amount
        logger.info("Fees collected: %d (remaining %d)", amount, self.total_fees)
        return self.total_fees
