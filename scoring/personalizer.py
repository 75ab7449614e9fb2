"""
Personalization Ranker.

Re-scores candidates against a user profile and returns them sorted by
descending match score (ties keep their original order).

Stocks:
  risk alignment     35% — distance between risk score and the tolerance target
  horizon alignment  15% — candidate timeframe vs. investment horizon
  confidence         25% — confidence score
  win rate           15% — backtest win rate
  amount fit         10% — large amounts prefer low volatility

Forex:
  risk alignment     40%
  horizon alignment  15% — forex projections are one-week (short horizon)
  trend signal       20% — |trend strength|, 5 ATRs saturates
  win rate           15%
  amount fit         10% — large amounts prefer liquid pairs
"""
import math

from common.logger import get_logger
from common.models import Candidate, ForexCandidate, StockCandidate, UserProfile

logger = get_logger("personalizer")

STOCK_WEIGHTS = {
    "risk":       0.35,
    "horizon":    0.15,
    "confidence": 0.25,
    "win_rate":   0.15,
    "amount":     0.10,
}

FOREX_WEIGHTS = {
    "risk":     0.40,
    "horizon":  0.15,
    "trend":    0.20,
    "win_rate": 0.15,
    "amount":   0.10,
}

assert abs(sum(STOCK_WEIGHTS.values()) - 1.0) < 0.001, "Weights must sum to 1.0"
assert abs(sum(FOREX_WEIGHTS.values()) - 1.0) < 0.001, "Weights must sum to 1.0"

RISK_TARGET = {"low": 20, "medium": 50, "high": 80}
HORIZON_INDEX = {"short": 0, "medium": 1, "long": 2}
TIMEFRAME_HORIZON = {"1W": "short", "1M": "medium", "3M": "long"}
LIQUIDITY_SCORE = {"major": 1.0, "minor": 0.6, "exotic": 0.2}


def risk_alignment(risk_score: float, tolerance: str) -> float:
    return 1 - min(abs(risk_score - RISK_TARGET[tolerance]) / 100, 1.0)


def horizon_alignment(candidate_horizon: str, user_horizon: str) -> float:
    return 1 - 0.5 * abs(HORIZON_INDEX[candidate_horizon] - HORIZON_INDEX[user_horizon])


def amount_weight(amount: float) -> float:
    """0 for $1k or less, 1 for $1M or more, log-linear in between."""
    return min(max((math.log10(max(amount, 1.0)) - 3) / 3, 0.0), 1.0)


def amount_fit(stability: float, amount: float) -> float:
    w = amount_weight(amount)
    return w * stability + (1 - w) * 0.5


def stock_match_score(c: StockCandidate, profile: UserProfile) -> int:
    parts = {
        "risk":       risk_alignment(c.risk_score, profile.risk_tolerance),
        "horizon":    horizon_alignment(TIMEFRAME_HORIZON[c.timeframe], profile.investment_horizon),
        "confidence": c.confidence_score / 100,
        "win_rate":   c.win_rate,
        "amount":     amount_fit(1 - min(c.volatility / 100, 1.0), profile.investment_amount),
    }
    return int(round(100 * sum(parts[k] * STOCK_WEIGHTS[k] for k in STOCK_WEIGHTS)))


def forex_match_score(c: ForexCandidate, profile: UserProfile) -> int:
    parts = {
        "risk":     risk_alignment(c.risk_score, profile.risk_tolerance),
        "horizon":  horizon_alignment("short", profile.investment_horizon),
        "trend":    min(abs(c.trend_strength) / 5, 1.0),
        "win_rate": c.win_rate,
        "amount":   amount_fit(LIQUIDITY_SCORE[c.liquidity], profile.investment_amount),
    }
    return int(round(100 * sum(parts[k] * FOREX_WEIGHTS[k] for k in FOREX_WEIGHTS)))


def _score(c: Candidate, profile: UserProfile) -> int:
    if isinstance(c, StockCandidate):
        return stock_match_score(c, profile)
    return forex_match_score(c, profile)


def rank_candidates(candidates: list[Candidate], profile: UserProfile) -> list[Candidate]:
    """Filter out asset classes the user excluded, score, and sort.

    Returns new candidate objects; the inputs are left untouched.
    """
    allowed = {"stocks", "forex"} if profile.preferred_assets == "both" else {profile.preferred_assets}
    kept = [c for c in candidates if c.asset_class in allowed]
    scored = [c.model_copy(update={"match_score": _score(c, profile)}) for c in kept]
    # sorted() is stable, so equal scores keep input order
    ranked = sorted(scored, key=lambda c: -c.match_score)
    if ranked:
        logger.info(f"Ranked {len(ranked)} candidates for {profile.risk_tolerance}-risk "
                    f"{profile.investment_horizon}-horizon profile, top match={ranked[0].match_score}")
    return ranked


def personalize_stock_recommendations(candidates: list[StockCandidate],
                                      profile: UserProfile) -> list[StockCandidate]:
    if profile.preferred_assets == "forex":
        return []
    return rank_candidates(candidates, profile)


def personalize_forex_recommendations(candidates: list[ForexCandidate],
                                      profile: UserProfile) -> list[ForexCandidate]:
    if profile.preferred_assets == "stocks":
        return []
    return rank_candidates(candidates, profile)
