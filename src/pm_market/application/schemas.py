"""Pydantic schemas for market creation input and market read views.

Limits come from Settings and are passed in through the validation
context: CreateMarketRequest.model_validate(data, context={"settings": s}).
Basis-point prices are produced here, at the presentation boundary; the
pricing engine itself works in probabilities.
"""

from pydantic import BaseModel, ValidationInfo, field_validator, model_validator

from config.settings import Settings
from src.pm_common.fixed_point import format_atomic
from src.pm_market.domain.models import MarketSnapshot


def _limits(info: ValidationInfo) -> Settings:
    context = info.context or {}
    return context.get("settings") or Settings()


class CreateMarketRequest(BaseModel):
    market_id: str
    question: str
    outcomes: list[str]
    liquidity: int
    end_time: int
    now: int

    @field_validator("market_id")
    @classmethod
    def market_id_shape(cls, v: str, info: ValidationInfo) -> str:
        if not v or v != v.strip() or " " in v:
            raise ValueError("market_id must be non-empty and contain no whitespace")
        limit = _limits(info).MAX_MARKET_ID_LENGTH
        if len(v) > limit:
            raise ValueError(f"market_id longer than {limit} characters")
        return v

    @field_validator("question")
    @classmethod
    def question_length(cls, v: str, info: ValidationInfo) -> str:
        limit = _limits(info).MAX_QUESTION_LENGTH
        if not v.strip():
            raise ValueError("question must not be blank")
        if len(v) > limit:
            raise ValueError(f"question longer than {limit} characters")
        return v

    @field_validator("outcomes")
    @classmethod
    def outcome_labels(cls, v: list[str], info: ValidationInfo) -> list[str]:
        s = _limits(info)
        if not (s.MIN_OUTCOMES <= len(v) <= s.MAX_OUTCOMES):
            raise ValueError(
                f"market needs {s.MIN_OUTCOMES}-{s.MAX_OUTCOMES} outcomes, got {len(v)}"
            )
        for label in v:
            if not label.strip():
                raise ValueError("outcome labels must not be blank")
            if len(label) > s.MAX_OUTCOME_LABEL_LENGTH:
                raise ValueError(
                    f"outcome label longer than {s.MAX_OUTCOME_LABEL_LENGTH} characters"
                )
        if len(set(v)) != len(v):
            raise ValueError("outcome labels must be unique")
        return v

    @field_validator("liquidity")
    @classmethod
    def liquidity_bounds(cls, v: int, info: ValidationInfo) -> int:
        s = _limits(info)
        if not (s.MIN_LIQUIDITY <= v <= s.MAX_LIQUIDITY):
            raise ValueError(
                f"liquidity must be in [{s.MIN_LIQUIDITY}, {s.MAX_LIQUIDITY}], got {v}"
            )
        return v

    @model_validator(mode="after")
    def duration_bounds(self, info: ValidationInfo) -> "CreateMarketRequest":
        s = _limits(info)
        duration = self.end_time - self.now
        if duration <= 0:
            raise ValueError("end_time must be in the future")
        if duration < s.MIN_MARKET_DURATION:
            raise ValueError(f"market duration shorter than {s.MIN_MARKET_DURATION}s")
        if duration > s.MAX_MARKET_DURATION:
            raise ValueError(f"market duration longer than {s.MAX_MARKET_DURATION}s")
        return self


class MarketDetail(BaseModel):
    id: str
    question: str
    outcomes: list[str]
    liquidity: int
    liquidity_display: str
    total_shares: list[int]
    prices_bps: list[int]
    end_time: int
    phase: str
    resolved: bool
    winning_outcome: int | None
    archived: bool
    version: int
    created_at: str
    resolved_at: str | None

    @classmethod
    def from_domain(
        cls, m: MarketSnapshot, prices_bps: list[int], now: int
    ) -> "MarketDetail":
        return cls(
            id=m.id,
            question=m.question,
            outcomes=list(m.outcomes),
            liquidity=m.liquidity,
            liquidity_display=format_atomic(m.liquidity),
            total_shares=list(m.total_shares),
            prices_bps=prices_bps,
            end_time=m.end_time,
            phase=m.phase(now).value,
            resolved=m.resolved,
            winning_outcome=m.winning_outcome,
            archived=m.archived,
            version=m.version,
            created_at=m.created_at.isoformat(),
            resolved_at=m.resolved_at.isoformat() if m.resolved_at else None,
        )


class MarketStats(BaseModel):
    total_markets: int
    active_markets: int
    resolved_markets: int
