"""Core Pydantic models for the recommendation pipeline."""
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RiskLevel = Literal["low", "medium", "high"]
Horizon = Literal["short", "medium", "long"]
AssetPreference = Literal["stocks", "forex", "both"]
Liquidity = Literal["major", "minor", "exotic"]


# ── Gateway payloads ──────────────────────────────────────────────────────────

class Quote(BaseModel):
    current_price: float
    percent_change: float = 0.0
    previous_close: Optional[float] = None
    volume: float = 0.0


class StockProfile(BaseModel):
    name: str = ""
    exchange: str = ""
    industry: str = ""


class Technicals(BaseModel):
    rsi: float = Field(50.0, ge=0, le=100)
    volatility: float = Field(25.0, ge=0)   # annualised, percent
    beta: float = 1.0


class Candles(BaseModel):
    closes: list[float] = []
    highs: list[float] = []
    lows: list[float] = []


class ForexTechnicals(BaseModel):
    atr: float = 0.001            # ATR-14 as a fraction of price
    trend_strength: float = 0.0   # SMA10-SMA30 distance in ATR units, signed


class PairUniverse(BaseModel):
    major: list[str] = []
    minor: list[str] = []
    exotic: list[str] = []

    def liquidity(self, pair: str) -> Liquidity:
        if pair in self.major:
            return "major"
        if pair in self.minor:
            return "minor"
        return "exotic"


# ── Pipeline records ──────────────────────────────────────────────────────────

class InstrumentSnapshot(BaseModel):
    key: str
    display_name: str
    price: float
    volume: float = 0.0
    change24h: float = 0.0
    technicals: Technicals = Technicals()
    sentiment: float = Field(0.0, ge=-1, le=1)
    drawdown: float = Field(-5.0, le=0)
    prev_close: float
    fetched_at: datetime

    @property
    def usable(self) -> bool:
        return self.price > 0


class RiskAssessment(BaseModel):
    score: int = Field(ge=0, le=100)
    level: RiskLevel
    recommendation: str


class ConfidenceAssessment(BaseModel):
    score: int = Field(ge=0, le=100)


class BacktestResult(BaseModel):
    success_rate: float = Field(ge=0, le=1)
    sample_size: int = Field(ge=0)


class UserProfile(BaseModel):
    """Risk profile of the user a recommendation list is built for.

    Every field is optional and falls back to a documented default; an
    out-of-range value raises ``pydantic.ValidationError``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              extra="ignore")

    risk_tolerance: RiskLevel = "medium"
    investment_horizon: Horizon = "medium"
    investment_amount: float = Field(10000, gt=0)
    preferred_assets: AssetPreference = "both"


# ── Candidates ────────────────────────────────────────────────────────────────

class _Candidate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    change_24h: float = Field(alias="change24h")
    risk_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    reason: str = ""
    match_score: int = 0

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class StockCandidate(_Candidate):
    asset_class: Literal["stocks"] = Field("stocks", exclude=True)

    symbol: str
    name: str
    price: float
    projected_return: str
    timeframe: Literal["1W", "1M", "3M"]
    confidence_score: int = Field(ge=0, le=100)
    historical_accuracy: str

    # ranking inputs, not part of the serialised payload
    win_rate: float = Field(0.5, ge=0, le=1, exclude=True)
    volatility: float = Field(25.0, ge=0, exclude=True)


class ForexCandidate(_Candidate):
    asset_class: Literal["forex"] = Field("forex", exclude=True)

    pair: str
    rate: float
    pip_movement: str
    spread: str
    projected_pips: str

    win_rate: float = Field(0.5, ge=0, le=1, exclude=True)
    liquidity: Liquidity = Field("major", exclude=True)
    trend_strength: float = Field(0.0, exclude=True)


Candidate = Union[StockCandidate, ForexCandidate]
