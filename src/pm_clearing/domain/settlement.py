"""Market settlement: payout of a resolved market to one position.

payout = floor(shares[w] * liquidity / total_shares[w]), or 0 when nobody
holds the winning outcome. The liquidity pool is split pro rata among
winning shares; claim() is a one-shot terminal transition per position.
"""

import logging
from dataclasses import replace

from src.pm_account.domain.models import Position
from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import (
    AlreadyClaimedError,
    MarketNotResolvedError,
    OutcomeOutOfRangeError,
)
from src.pm_common.fixed_point import mul_div_floor
from src.pm_market.domain.models import MarketSnapshot

logger = logging.getLogger(__name__)


def compute_payout(market: MarketSnapshot, position: Position) -> int:
    if not market.resolved or market.winning_outcome is None:
        raise MarketNotResolvedError(market.id)
    winner = market.winning_outcome
    if not 0 <= winner < len(position.shares):
        raise OutcomeOutOfRangeError(market.id, winner, len(position.shares))

    winning_total = market.total_shares[winner]
    if winning_total == 0:
        return 0
    return mul_div_floor(position.shares[winner], market.liquidity, winning_total)


class SettlementCalculator:
    def claim(self, market: MarketSnapshot, position: Position) -> Position:
        """Return the claimed copy of ``position``; the caller stores it.

        Raises MarketNotResolvedError / AlreadyClaimedError without touching
        the input position.
        """
        if not market.resolved:
            raise MarketNotResolvedError(market.id)
        if position.claimed:
            raise AlreadyClaimedError(position.market_id, position.user_id)

        payout = compute_payout(market, position)
        logger.info(
            "Claim: market=%s user=%s winning_outcome=%s payout=%d",
            market.id,
            position.user_id,
            market.winning_outcome,
            payout,
        )
        return replace(
            position,
            shares=list(position.shares),
            claimed=True,
            payout=payout,
            updated_at=utc_now(),
        )
