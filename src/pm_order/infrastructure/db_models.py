"""SQLAlchemy ORM model for the orders table."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base
from src.pm_order.domain.models import Order


class OrderORM(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_market_user", "market_id", "user_id"),
        Index("ix_orders_status", "status"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    market_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    outcome: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expected_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    actual_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gross_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    tx_reference: Mapped[str | None] = mapped_column(Text)
    error_code: Mapped[int | None] = mapped_column(Integer)
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, o: Order) -> "OrderORM":
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
            tx_reference=o.tx_reference,
            error_code=o.error_code,
            error_message=o.error_message,
            created_at=o.created_at,
            updated_at=o.updated_at,
        )
