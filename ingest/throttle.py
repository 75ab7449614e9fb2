"""Bounded, timed access to a market data gateway.

All pipeline traffic goes through ``ThrottledGateway``: at most
``max_in_flight`` gateway calls run at once, and each call is cut off after
``timeout`` seconds. A timed-out or failing call is reported as unavailable
(``None``), never raised.
"""
import asyncio
from typing import Any, Optional

from common.logger import get_logger
from common.models import Candles, ForexTechnicals, PairUniverse, Quote, StockProfile, Technicals
from config.settings import GATEWAY_MAX_IN_FLIGHT, GATEWAY_TIMEOUT_SECONDS
from ingest.base import MarketDataGateway


class ThrottledGateway(MarketDataGateway):
    def __init__(self, inner: MarketDataGateway,
                 max_in_flight: int = GATEWAY_MAX_IN_FLIGHT,
                 timeout: float = GATEWAY_TIMEOUT_SECONDS):
        super().__init__()
        if max_in_flight < 1:
            raise ValueError(f"max_in_flight must be >= 1, got {max_in_flight}")
        self.inner = inner
        self.max_in_flight = max_in_flight
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_in_flight)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _call(self, name: str, *args: Any, default: Any = None, **kwargs: Any) -> Any:
        async with self._semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                coro = getattr(self.inner, name)(*args, **kwargs)
                return await asyncio.wait_for(coro, timeout=self.timeout)
            except asyncio.TimeoutError:
                self.logger.warning(f"⏱ {name}{args} timed out after {self.timeout}s")
                return default
            except Exception as e:
                self.logger.warning(f"{name}{args} failed: {e}")
                return default
            finally:
                self.in_flight -= 1

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        return await self._call("get_quote", symbol)

    async def get_stock_profile(self, symbol: str) -> Optional[StockProfile]:
        return await self._call("get_stock_profile", symbol)

    async def get_technical_indicators(self, symbol: str) -> Optional[Technicals]:
        return await self._call("get_technical_indicators", symbol)

    async def get_news_sentiment(self, symbol: str) -> Optional[float]:
        return await self._call("get_news_sentiment", symbol)

    async def get_stock_candles(self, symbol: str, resolution: str = "D",
                                count: int = 30) -> Optional[Candles]:
        return await self._call("get_stock_candles", symbol, resolution, count)

    async def get_forex_quote(self, pair: str) -> Optional[Quote]:
        return await self._call("get_forex_quote", pair)

    async def calculate_forex_technicals(self, pair: str) -> Optional[ForexTechnicals]:
        return await self._call("calculate_forex_technicals", pair)

    async def get_major_forex_pairs(self) -> PairUniverse:
        return await self._call("get_major_forex_pairs", default=PairUniverse())

    async def get_trending_stocks(self) -> list[str]:
        return await self._call("get_trending_stocks", default=[])
