"""Technical indicators computed from daily candles.

Shared by the Finnhub gateway (RSI, volatility, beta, ATR, trend strength)
and by the instrument cache refresh path (drawdown).
"""
import numpy as np
import pandas as pd

TRADING_DAYS = 252


def rsi(closes: list[float], period: int = 14) -> float:
    """Wilder-style RSI on simple rolling means. Neutral 50 when history is short."""
    close = pd.Series(closes, dtype=float)
    if len(close) <= period:
        return 50.0
    delta = close.diff()
    gain = delta.clip(lower=0).rolling(period).mean()
    loss = (-delta.clip(upper=0)).rolling(period).mean()
    rs = gain / (loss + 1e-10)
    value = 100 - (100 / (1 + rs))
    return float(np.clip(value.iloc[-1], 0, 100))


def annualized_volatility(closes: list[float]) -> float:
    """Annualised standard deviation of daily returns, in percent."""
    close = pd.Series(closes, dtype=float)
    if len(close) < 3:
        return 25.0
    returns = close.pct_change().dropna()
    std = returns.std()
    if np.isnan(std):
        return 25.0
    return float(std * np.sqrt(TRADING_DAYS) * 100)


def beta(closes: list[float], benchmark: list[float]) -> float:
    """Slope of the instrument's daily returns against the benchmark's."""
    n = min(len(closes), len(benchmark))
    if n < 3:
        return 1.0
    asset = pd.Series(closes[-n:], dtype=float).pct_change().dropna()
    bench = pd.Series(benchmark[-n:], dtype=float).pct_change().dropna()
    var = bench.var()
    if var == 0 or np.isnan(var):
        return 1.0
    return float(asset.cov(bench) / var)


def calculate_drawdown(closes: list[float]) -> float:
    """Largest peak-to-trough decline over the window, in percent (<= 0)."""
    close = pd.Series(closes, dtype=float)
    close = close[close > 0]
    if close.empty:
        return 0.0
    peak = close.cummax()
    drawdowns = (close - peak) / peak * 100
    return float(min(drawdowns.min(), 0.0))


def atr_fraction(highs: list[float], lows: list[float], closes: list[float],
                 period: int = 14) -> float | None:
    """ATR as a fraction of the last close."""
    n = min(len(highs), len(lows), len(closes))
    if n <= period:
        return None
    high = pd.Series(highs[-n:], dtype=float)
    low = pd.Series(lows[-n:], dtype=float)
    close = pd.Series(closes[-n:], dtype=float)
    tr = pd.concat([
        high - low,
        (high - close.shift()).abs(),
        (low - close.shift()).abs(),
    ], axis=1).max(axis=1)
    atr = tr.rolling(period).mean().iloc[-1]
    last = close.iloc[-1]
    if last <= 0 or np.isnan(atr):
        return None
    return float(atr / last)


def trend_strength(closes: list[float], atr: float, fast: int = 10, slow: int = 30) -> float:
    """Distance between the fast and slow SMA, measured in ATRs. Signed."""
    close = pd.Series(closes, dtype=float)
    if len(close) < slow or atr <= 0:
        return 0.0
    ma_fast = close.rolling(fast).mean().iloc[-1]
    ma_slow = close.rolling(slow).mean().iloc[-1]
    return float((ma_fast - ma_slow) / (atr * close.iloc[-1]))
