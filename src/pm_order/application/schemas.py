# src/pm_order/application/schemas.py
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from config.settings import Settings
from src.pm_order.domain.models import Order


def _limits(info: ValidationInfo) -> Settings:
    context = info.context or {}
    return context.get("settings") or Settings()


class _TradeRequest(BaseModel):
    market_id: str
    user_id: str
    outcome: int = Field(ge=0)
    tx_reference: str | None = None

    @field_validator("user_id")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if not v or v != v.strip() or " " in v:
            raise ValueError("user_id must be non-empty and contain no whitespace")
        return v


class BuyRequest(_TradeRequest):
    max_cost: int
    min_shares: int = Field(default=0, ge=0)

    @field_validator("max_cost")
    @classmethod
    def cost_bounds(cls, v: int, info: ValidationInfo) -> int:
        s = _limits(info)
        if not (s.MIN_COST <= v <= s.MAX_COST):
            raise ValueError(f"max_cost must be in [{s.MIN_COST}, {s.MAX_COST}], got {v}")
        return v


class SellRequest(_TradeRequest):
    shares: int
    min_payout: int = Field(default=0, ge=0)

    @field_validator("shares")
    @classmethod
    def share_bounds(cls, v: int, info: ValidationInfo) -> int:
        s = _limits(info)
        if not (s.MIN_SHARES <= v <= s.MAX_SHARES):
            raise ValueError(f"shares must be in [{s.MIN_SHARES}, {s.MAX_SHARES}], got {v}")
        return v


class OrderResponse(BaseModel):
    id: str
    market_id: str
    user_id: str
    direction: str
    outcome: int
    amount: int
    expected_amount: int
    actual_amount: int
    gross_value: int
    fee: int
    status: str
    slippage_bps: int
    tx_reference: str | None = None
    error_code: int | None = None
    error_message: str | None = None
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, o: Order) -> "OrderResponse":
        return cls(
            id=o.id,
            market_id=o.market_id,
            user_id=o.user_id,
            direction=o.direction.value,
            outcome=o.outcome,
            amount=o.amount,
            expected_amount=o.expected_amount,
            actual_amount=o.actual_amount,
            gross_value=o.gross_value,
            fee=o.fee,
            status=o.status.value,
            slippage_bps=o.slippage_bps,
            tx_reference=o.tx_reference,
            error_code=o.error_code,
            error_message=o.error_message,
            created_at=o.created_at.isoformat(),
            updated_at=o.updated_at.isoformat(),
        )


class OrderStats(BaseModel):
    total_orders: int
    unique_users: int
    executed_volume: int
    total_fees: int
    orders_by_direction: dict[str, int]
    orders_by_status: dict[str, int]
