from src.pm_account.domain.models import Position


class TestPosition:
    def test_empty(self) -> None:
        p = Position.empty("mkt-1", "u1", 3)
        assert p.shares == [0, 0, 0]
        assert not p.is_open
        assert p.payout == 0

    def test_open_while_holding(self) -> None:
        p = Position(market_id="mkt-1", user_id="u1", shares=[0, 7])
        assert p.is_open
        assert p.shares_of(1) == 7

    def test_claimed_is_closed(self) -> None:
        p = Position(market_id="mkt-1", user_id="u1", shares=[0, 7], claimed=True)
        assert not p.is_open
