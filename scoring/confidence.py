"""
Confidence Estimator.

confidence = 100 * (0.20 * rsi_quality
                  + 0.15 * volatility_quality
                  + 0.10 * sentiment_support
                  + 0.35 * shrunk_win_rate
                  + 0.20 * reliability)

shrunk_win_rate pulls the backtest win rate towards a 0.5 prior with a
pseudo-count of PRIOR_TRADES, so a handful of lucky trades cannot dominate.
reliability = n / (n + PRIOR_TRADES) rewards larger samples. With
reliability weight >= half the win-rate weight the score is non-decreasing in
sample size for every fixed win rate.
"""
from common.models import ConfidenceAssessment
from scoring.base import clip_score

WEIGHTS = {
    "rsi":         0.20,
    "volatility":  0.15,
    "sentiment":   0.10,
    "win_rate":    0.35,
    "reliability": 0.20,
}

assert abs(sum(WEIGHTS.values()) - 1.0) < 0.001, "Weights must sum to 1.0"
assert WEIGHTS["reliability"] >= WEIGHTS["win_rate"] / 2

PRIOR_WIN_RATE = 0.5
PRIOR_TRADES = 20


def shrink_win_rate(win_rate: float, sample_size: int) -> float:
    n = max(sample_size, 0)
    return (win_rate * n + PRIOR_WIN_RATE * PRIOR_TRADES) / (n + PRIOR_TRADES)


def sentiment_support(rsi: float, sentiment: float) -> float:
    """Sentiment magnitude, counted only when it agrees with the RSI-implied action.

    RSI below 50 implies a buy (mean reversion up), above 50 a sell; at exactly
    50 either direction counts.
    """
    action = 50 - rsi
    if action == 0 or action * sentiment > 0:
        return min(abs(sentiment), 1.0)
    return 0.0


def compute_confidence_score(rsi: float, volatility: float, sentiment: float,
                             historical_win_rate: float, sample_size: int) -> ConfidenceAssessment:
    n = max(int(sample_size), 0)
    components = {
        "rsi":         1 - min(abs(rsi - 50) / 50, 1.0),
        "volatility":  1 - min(max(volatility, 0.0) / 100, 1.0),
        "sentiment":   sentiment_support(rsi, sentiment),
        "win_rate":    shrink_win_rate(min(max(historical_win_rate, 0.0), 1.0), n),
        "reliability": n / (n + PRIOR_TRADES),
    }
    raw = 100 * sum(components[k] * WEIGHTS[k] for k in WEIGHTS)
    return ConfidenceAssessment(score=clip_score(raw))
