"""Trading domain value objects: immutable results of quote calls."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TradeQuote:
    market_id: str
    outcome: int
    shares: int
    gross: int          # buy: cost before fee / sell: payout before fee
    fee: int
    net: int            # buy: gross + fee (what the buyer pays) / sell: gross - fee
    prices_before_bps: tuple[int, ...]
    prices_after_bps: tuple[int, ...]
    version: int        # market version the quote was computed against

    @property
    def average_price_bps(self) -> int:
        """Average gross price per share in basis points of one unit."""
        if self.shares == 0:
            return 0
        return self.gross * 10_000 // self.shares
