"""
Risk Scorer.

Turns technical/sentiment inputs into a 0..100 risk score, a discrete level
(low < 33 <= medium < 66 <= high) and a short explanation.

Equities:
  volatility   30% — annualised volatility, 60% and above saturates
  beta         20% — market sensitivity, beta 2.0 saturates
  drawdown     20% — recent peak-to-trough decline, -30% saturates
  rsi          15% — distance from the neutral 50 (overbought and oversold)
  sentiment    15% — negative news raises risk, positive news lowers it

Currency pairs:
  atr          45% — daily ATR as a fraction of price, 1.5% saturates
  leverage     35% — 100x saturates
  spread       20% — 5 pips saturates
  x liquidity multiplier (major 1.0, minor 1.15, exotic 1.35)
  + trend adjustment: up to +10 for a flat/erratic market, down to -10 for a
    strong directional trend
"""
import re

from common.models import RiskAssessment
from scoring.base import clip_score, dominant_factor, level_from_score, weighted_sum

STOCK_WEIGHTS = {
    "volatility": 0.30,
    "beta":       0.20,
    "drawdown":   0.20,
    "rsi":        0.15,
    "sentiment":  0.15,
}

FOREX_WEIGHTS = {
    "atr":      0.45,
    "leverage": 0.35,
    "spread":   0.20,
}

assert abs(sum(STOCK_WEIGHTS.values()) - 1.0) < 0.001, "Weights must sum to 1.0"
assert abs(sum(FOREX_WEIGHTS.values()) - 1.0) < 0.001, "Weights must sum to 1.0"

LIQUIDITY_MULTIPLIER = {"major": 1.0, "minor": 1.15, "exotic": 1.35}
SPREAD_PIPS = {"major": 0.8, "minor": 1.5, "exotic": 3.0}
LEVERAGE_BY_TOLERANCE = {"low": 10, "medium": 50, "high": 100}

PAIR_RE = re.compile(r"^[A-Z]{3}_[A-Z]{3}$")

STOCK_REASONS = {
    "volatility": "price swings are {adj} ({volatility:.0f}% annualised volatility)",
    "beta":       "the stock moves {adj} with the market (beta {beta:.2f})",
    "drawdown":   "recent drawdown is {adj} ({drawdown:.1f}% from the peak)",
    "rsi":        "momentum is {adj} (RSI {rsi:.0f})",
    "sentiment":  "news sentiment is {adj} ({sentiment:+.2f})",
}

FOREX_REASONS = {
    "atr":       "daily range is {adj} (ATR {atr_pct:.2f}% of price)",
    "leverage":  "position uses {leverage:.0f}x leverage",
    "spread":    "trading costs are {adj} ({spread:.1f} pip spread)",
    "liquidity": "the pair is a thinly traded {liquidity} cross",
}

LEVEL_LEAD = {
    "low":    "Low risk: {factor}. Suitable for conservative positions.",
    "medium": "Moderate risk: {factor}. Size positions with care.",
    "high":   "High risk: {factor}. Only for aggressive, short-term exposure.",
}

ADJECTIVE = {"low": "contained", "medium": "moderate", "high": "elevated"}


def calculate_stock_risk(volatility: float, beta: float, rsi: float,
                         drawdown: float, sentiment: float) -> RiskAssessment:
    components = {
        "volatility": min(max(volatility, 0.0) / 60 * 100, 100),
        "beta":       min(max(beta, 0.0) / 2 * 100, 100),
        "drawdown":   min(abs(min(drawdown, 0.0)) / 30 * 100, 100),
        "rsi":        min(abs(rsi - 50) * 2, 100),
        "sentiment":  (1 - max(-1.0, min(sentiment, 1.0))) / 2 * 100,
    }
    score = clip_score(weighted_sum(components, STOCK_WEIGHTS))
    level = level_from_score(score)
    factor = dominant_factor(components, STOCK_WEIGHTS)
    text = STOCK_REASONS[factor].format(
        adj=ADJECTIVE[level_from_score(components[factor])],
        volatility=volatility, beta=beta, drawdown=drawdown, rsi=rsi, sentiment=sentiment,
    )
    return RiskAssessment(score=score, level=level,
                          recommendation=LEVEL_LEAD[level].format(factor=text))


def calculate_forex_risk(atr_volatility: float, leverage: float, liquidity: str,
                         trend_strength: float, spread_pips: float) -> RiskAssessment:
    if liquidity not in LIQUIDITY_MULTIPLIER:
        raise ValueError(f"Unknown liquidity tier: {liquidity!r}")

    components = {
        "atr":      min(max(atr_volatility, 0.0) / 0.015 * 100, 100),
        "leverage": min(max(leverage, 0.0), 100),
        "spread":   min(max(spread_pips, 0.0) / 5 * 100, 100),
    }
    base = weighted_sum(components, FOREX_WEIGHTS) * LIQUIDITY_MULTIPLIER[liquidity]
    # |trend| 0 -> +10, 3 -> 0, 6+ -> -10
    trend_adj = 10 * (1 - min(abs(trend_strength), 6.0) / 3)
    score = clip_score(base + trend_adj)
    level = level_from_score(score)

    factor = dominant_factor(components, FOREX_WEIGHTS)
    if liquidity == "exotic" and factor == "spread":
        factor = "liquidity"
    text = FOREX_REASONS[factor].format(
        adj=ADJECTIVE[level_from_score(components.get(factor, 100))],
        atr_pct=atr_volatility * 100, leverage=leverage,
        spread=spread_pips, liquidity=liquidity,
    )
    if abs(trend_strength) >= 3:
        text += ", offset by a strong directional trend"
    elif abs(trend_strength) < 1:
        text += " in a directionless market"
    return RiskAssessment(score=score, level=level,
                          recommendation=LEVEL_LEAD[level].format(factor=text))


def validate_pair(pair: str) -> str:
    if not isinstance(pair, str) or not PAIR_RE.match(pair):
        raise ValueError(f"Invalid currency pair code: {pair!r} (expected e.g. 'USD_JPY')")
    return pair


def pip_size(pair: str) -> float:
    return 0.01 if "JPY" in validate_pair(pair).split("_") else 0.0001


def calculate_pip_movement(old_rate: float, new_rate: float, pair: str) -> int:
    return int(round((new_rate - old_rate) / pip_size(pair)))


def format_pips(pips: int) -> str:
    return f"{'+' if pips >= 0 else ''}{pips} pips"


HORIZON_WEEKS = {"short": 1, "medium": 4, "long": 13}
TIMEFRAMES = {"short": "1W", "medium": "1M", "long": "3M"}


def estimate_projected_return(volatility: float, rsi: float, horizon: str) -> str:
    """Expected move over the horizon: volatility-scaled, tilted by RSI mean reversion."""
    weeks = HORIZON_WEEKS.get(horizon, HORIZON_WEEKS["medium"])
    sigma = max(volatility, 0.0) * (weeks / 52) ** 0.5
    tilt = (50 - min(max(rsi, 0.0), 100.0)) / 50
    projected = sigma * (0.25 + 0.5 * tilt)
    return f"{projected:+.1f}%"
