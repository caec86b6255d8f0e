"""SQLAlchemy ORM model for the positions table (one row per market/user)."""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_account.domain.models import Position
from src.pm_common.database import Base


class PositionORM(Base):
    __tablename__ = "positions"

    market_id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    shares: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    total_cost: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_fees: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_proceeds: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payout: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, p: Position) -> "PositionORM":
        return cls(
            market_id=p.market_id,
            user_id=p.user_id,
            shares=list(p.shares),
            total_cost=p.total_cost,
            total_fees=p.total_fees,
            total_proceeds=p.total_proceeds,
            claimed=p.claimed,
            payout=p.payout,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
