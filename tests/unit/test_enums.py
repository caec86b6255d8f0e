from src.pm_common.enums import MarketPhase, OrderDirection, OrderStatus


def test_order_direction_values() -> None:
    assert OrderDirection.BUY.value == "BUY"
    assert OrderDirection("SELL") is OrderDirection.SELL


def test_order_status_terminal() -> None:
    assert not OrderStatus.PENDING.is_terminal
    assert OrderStatus.EXECUTED.is_terminal
    assert OrderStatus.FAILED.is_terminal
    assert OrderStatus.CANCELLED.is_terminal


def test_market_phase_is_str() -> None:
    assert MarketPhase.OPEN == "OPEN"
    assert {p.value for p in MarketPhase} == {"OPEN", "CLOSED", "RESOLVED", "ARCHIVED"}
