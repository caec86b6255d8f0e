"""Global enums. Values are what gets persisted."""

from enum import Enum


class OrderDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class MarketPhase(str, Enum):
    """Derived lifecycle label, never stored on the snapshot."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"
