"""Shared helpers for the 0..100 scorers."""
import numpy as np

LOW_RISK_CEILING = 33
HIGH_RISK_FLOOR = 66


def clip_score(value: float) -> int:
    """Clamp to [0, 100] and round to the integer score reported to callers."""
    return int(round(float(np.clip(value, 0, 100))))


def level_from_score(score: float) -> str:
    if score < LOW_RISK_CEILING:   return "low"
    if score < HIGH_RISK_FLOOR:    return "medium"
    return "high"


def weighted_sum(components: dict[str, float], weights: dict[str, float]) -> float:
    return sum(components[k] * weights[k] for k in weights)


def dominant_factor(components: dict[str, float], weights: dict[str, float]) -> str:
    """Factor contributing the most weighted points. Ties go to the first listed."""
    return max(weights, key=lambda k: components[k] * weights[k])
