"""Finnhub REST gateway (quotes, profiles, sentiment, candles, forex).

Every outbound HTTP request, including the Yahoo Finance candle fallback,
holds one of ``max_in_flight`` slots for as long as it runs. A request whose
caller already timed out keeps its slot until the socket returns, so the
ceiling holds for orphaned worker threads too.
"""
import asyncio
import threading
import time
from typing import Callable, Optional

import requests

from common.models import Candles, ForexTechnicals, PairUniverse, Quote, StockProfile, Technicals
from config.settings import (CACHE_TTL_SECONDS, FINNHUB_API_KEY, FOREX_PAIRS,
                             GATEWAY_MAX_IN_FLIGHT, GATEWAY_TIMEOUT_SECONDS, TRENDING_STOCKS)
from ingest.base import MarketDataGateway
from ingest.yahoo_finance import fetch_daily_candles
from scoring import indicators

BENCHMARK = "SPY"
FOREX_EXCHANGE = "OANDA"
RESOLUTION_SECONDS = {"D": 86_400, "W": 7 * 86_400, "60": 3_600}
TECHNICALS_WINDOW = 90


class FinnhubGateway(MarketDataGateway):
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(self, api_key: str | None = None, timeout: float = GATEWAY_TIMEOUT_SECONDS,
                 session: requests.Session | None = None,
                 max_in_flight: int = GATEWAY_MAX_IN_FLIGHT,
                 benchmark_ttl: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__()
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be >= 1, got {max_in_flight}")
        self.api_key = api_key if api_key is not None else FINNHUB_API_KEY
        self.timeout = timeout
        self.session = session or requests.Session()
        self._http_slots = threading.BoundedSemaphore(max_in_flight)
        self.benchmark_ttl = benchmark_ttl
        self.clock = clock
        self._benchmark: Optional[Candles] = None
        self._benchmark_at: Optional[float] = None
        self._benchmark_lock = asyncio.Lock()

    # ── transport ─────────────────────────────────────────────────────────────

    def _bounded(self, fn, *args, **kwargs):
        with self._http_slots:
            return fn(*args, **kwargs)

    def _get(self, path: str, params: dict):
        resp = self._bounded(self.session.get, f"{self.BASE_URL}{path}",
                             params={**params, "token": self.api_key},
                             timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    async def _request(self, path: str, **params):
        if not self.api_key:
            self.logger.warning(f"FINNHUB_API_KEY not set, skipping {path}")
            return None
        try:
            return await asyncio.to_thread(self._get, path, params)
        except Exception as e:
            self.logger.warning(f"Finnhub {path} failed for {params}: {e}")
            return None

    async def _candles(self, path: str, symbol: str, resolution: str, count: int) -> Optional[Candles]:
        to_ts = int(time.time())
        # calendar padding for weekends and holidays
        span = RESOLUTION_SECONDS.get(resolution, 86_400) * (int(count * 1.6) + 7)
        data = await self._request(path, symbol=symbol, resolution=resolution,
                                   **{"from": to_ts - span, "to": to_ts})
        if not data or data.get("s") != "ok" or not data.get("c"):
            return None
        return Candles(closes=data["c"][-count:], highs=data.get("h", [])[-count:],
                       lows=data.get("l", [])[-count:])

    # ── equities ──────────────────────────────────────────────────────────────

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        data = await self._request("/quote", symbol=symbol)
        if not data or data.get("c") is None:
            return None
        return Quote(current_price=float(data["c"]), percent_change=float(data.get("dp") or 0),
                     previous_close=data.get("pc"), volume=float(data.get("v") or 0))

    async def get_stock_profile(self, symbol: str) -> Optional[StockProfile]:
        data = await self._request("/stock/profile2", symbol=symbol)
        if not data:
            return None
        return StockProfile(name=data.get("name") or symbol, exchange=data.get("exchange") or "",
                            industry=data.get("finnhubIndustry") or "")

    async def benchmark_candles(self) -> Optional[Candles]:
        """SPY daily candles, fetched at most once per ``benchmark_ttl``."""
        async with self._benchmark_lock:
            now = self.clock()
            if self._benchmark_at is None or now - self._benchmark_at >= self.benchmark_ttl:
                self._benchmark = await self.get_stock_candles(BENCHMARK, "D", TECHNICALS_WINDOW)
                self._benchmark_at = now
            return self._benchmark

    async def get_technical_indicators(self, symbol: str) -> Optional[Technicals]:
        candles, bench = await asyncio.gather(
            self.get_stock_candles(symbol, "D", TECHNICALS_WINDOW),
            self.benchmark_candles(),
        )
        if candles is None or len(candles.closes) < 15:
            return None
        return Technicals(
            rsi=indicators.rsi(candles.closes),
            volatility=indicators.annualized_volatility(candles.closes),
            beta=indicators.beta(candles.closes, bench.closes) if bench else 1.0,
        )

    async def get_news_sentiment(self, symbol: str) -> Optional[float]:
        data = await self._request("/news-sentiment", symbol=symbol)
        if not data or not data.get("sentiment"):
            return None
        s = data["sentiment"]
        score = float(s.get("bullishPercent", 0)) - float(s.get("bearishPercent", 0))
        return max(-1.0, min(score, 1.0))

    async def get_stock_candles(self, symbol: str, resolution: str = "D",
                                count: int = 30) -> Optional[Candles]:
        candles = await self._candles("/stock/candle", symbol, resolution, count)
        if candles is None and resolution == "D":
            candles = await asyncio.to_thread(self._bounded, fetch_daily_candles, symbol, count,
                                            timeout=self.timeout)
        return candles

    async def get_trending_stocks(self) -> list[str]:
        return list(TRENDING_STOCKS)

    # ── forex ─────────────────────────────────────────────────────────────────

    async def get_forex_quote(self, pair: str) -> Optional[Quote]:
        candles = await self._candles("/forex/candle", f"{FOREX_EXCHANGE}:{pair}", "D", 2)
        if candles is None:
            return None
        current = candles.closes[-1]
        previous = candles.closes[-2] if len(candles.closes) > 1 else current
        change = (current - previous) / previous * 100 if previous else 0.0
        return Quote(current_price=current, percent_change=change, previous_close=previous)

    async def calculate_forex_technicals(self, pair: str) -> Optional[ForexTechnicals]:
        candles = await self._candles("/forex/candle", f"{FOREX_EXCHANGE}:{pair}", "D", 60)
        if candles is None:
            return None
        atr = indicators.atr_fraction(candles.highs, candles.lows, candles.closes)
        if atr is None:
            return None
        return ForexTechnicals(atr=atr, trend_strength=indicators.trend_strength(candles.closes, atr))

    async def get_major_forex_pairs(self) -> PairUniverse:
        return PairUniverse(**FOREX_PAIRS)
