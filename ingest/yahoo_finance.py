"""Yahoo Finance candle source via yfinance."""
from typing import Optional

from common.logger import get_logger
from common.models import Candles

logger = get_logger("YahooFinance")

PERIOD_FOR_COUNT = [(5, "5d"), (22, "1mo"), (66, "3mo"), (130, "6mo"), (260, "1y")]


def _period(count: int) -> str:
    for days, period in PERIOD_FOR_COUNT:
        if count <= days:
            return period
    return "2y"


def fetch_daily_candles(ticker: str, count: int = 30, timeout: float = 10) -> Optional[Candles]:
    """Last ``count`` daily candles. Blocking; call through asyncio.to_thread."""
    try:
        import yfinance as yf
        logger.info(f"Fetching {ticker} candles from Yahoo Finance...")
        df = yf.download(ticker, period=_period(count), progress=False, auto_adjust=True,
                         timeout=timeout)
        if df.empty:
            raise ValueError("Empty response")
        # recent yfinance versions return (field, ticker) MultiIndex columns
        df.columns = [(c[0] if isinstance(c, tuple) else c).lower() for c in df.columns]
        df = df[["high", "low", "close"]].dropna().tail(count)
        logger.info(f"Got {len(df)} rows for {ticker}")
        return Candles(closes=df["close"].tolist(), highs=df["high"].tolist(),
                       lows=df["low"].tolist())
    except Exception as e:
        logger.warning(f"Yahoo Finance failed for {ticker}: {e}")
        return None
