"""Unified error codes and custom exceptions.

Error code ranges:
  3xxx: Market
  4xxx: Order / input validation
  5xxx: Position / settlement
  6xxx: Fees
  9xxx: System (invariant violations are logic bugs upstream)
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, market_id: str, reason: str = "closed") -> None:
        super().__init__(3002, f"Market {market_id} is {reason}", 422)


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market already resolved: {market_id}", 409)


class MarketNotResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3004, f"Market is not resolved: {market_id}", 422)


class MarketAlreadyExistsError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3005, f"Market already exists: {market_id}", 409)


class MarketHasOpenPositionsError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3006, f"Market {market_id} still has open positions", 422)


# --- 4xxx: Order / input validation ---

class ValidationError(AppError):
    """Bad input, rejected before any mutation. Retrying with corrected input is safe."""

    def __init__(self, detail: str, code: int = 4000) -> None:
        super().__init__(code, f"Validation failed: {detail}", 400)


class InvalidLiquidityError(ValidationError):
    def __init__(self, value: float) -> None:
        super().__init__(f"liquidity parameter must be positive, got {value}", code=4010)


class InvalidOutcomeError(ValidationError):
    def __init__(self, outcome: int, outcome_count: int) -> None:
        super().__init__(
            f"outcome {outcome} out of range for {outcome_count} outcomes", code=4011
        )


class SlippageExceededError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Slippage exceeded: {detail}", 422)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class InvalidTransitionError(AppError):
    def __init__(self, order_id: str, status: str, target: str) -> None:
        super().__init__(
            4006, f"Order {order_id} in status {status} cannot move to {target}", 422
        )


# --- 5xxx: Position / settlement ---

class InsufficientSharesError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            5001,
            f"Insufficient shares: requested {requested}, available {available}",
            422,
        )


class AlreadyClaimedError(AppError):
    def __init__(self, market_id: str, user_id: str) -> None:
        super().__init__(5002, f"Position {market_id}/{user_id} already claimed", 409)


class PositionNotFoundError(AppError):
    def __init__(self, market_id: str, user_id: str) -> None:
        super().__init__(5003, f"Position not found: {market_id}/{user_id}", 404)


# --- 6xxx: Fees ---

class InsufficientFeesError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            6001,
            f"Insufficient collected fees: requested {requested}, available {available}",
            422,
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error", code: int = 9002) -> None:
        super().__init__(code, detail, 500)


class InvariantViolationError(InternalError):
    """Market state invariant broken. Indicates a bug upstream, aborts the mutation."""


class NegativeBalanceError(InvariantViolationError):
    def __init__(self, market_id: str, outcome: int, balance: int) -> None:
        super().__init__(
            f"Negative balance on market {market_id} outcome {outcome}: {balance}",
            code=9003,
        )


class OutcomeOutOfRangeError(InvariantViolationError):
    def __init__(self, market_id: str, outcome: int, outcome_count: int) -> None:
        super().__init__(
            f"Outcome {outcome} out of range on market {market_id} "
            f"({outcome_count} outcomes)",
            code=9004,
        )
