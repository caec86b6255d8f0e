"""SQLAlchemy ORM model for the markets table.

Outcome labels and the share vector are stored as JSON arrays; their
lengths always match.
"""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base
from src.pm_market.domain.models import MarketSnapshot


class MarketORM(Base):
    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    outcome_count: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    outcomes: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    liquidity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_shares: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    winning_outcome: Mapped[int | None] = mapped_column(SmallInteger)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @classmethod
    def from_domain(cls, m: MarketSnapshot) -> "MarketORM":
        return cls(
            id=m.id,
            question=m.question,
            outcome_count=m.outcome_count,
            outcomes=list(m.outcomes),
            liquidity=m.liquidity,
            total_shares=list(m.total_shares),
            end_time=m.end_time,
            resolved=m.resolved,
            winning_outcome=m.winning_outcome,
            archived=m.archived,
            version=m.version,
            created_at=m.created_at,
            resolved_at=m.resolved_at,
        )

    def to_domain(self) -> MarketSnapshot:
        return MarketSnapshot(
            id=self.id,
            question=self.question,
            outcomes=tuple(self.outcomes),
            liquidity=self.liquidity,
            total_shares=tuple(self.total_shares),
            end_time=self.end_time,
            resolved=self.resolved,
            winning_outcome=self.winning_outcome,
            archived=self.archived,
            version=self.version,
            created_at=self.created_at,
            resolved_at=self.resolved_at,
        )
