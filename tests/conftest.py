"""Pytest configuration and in-memory collaborators (no network in tests)."""
import sys
from collections import Counter
from pathlib import Path

import pytest

# Ensure project root is importable regardless of where pytest is invoked
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from common.models import (Candles, ForexTechnicals, PairUniverse, Quote,  # noqa: E402
                           StockProfile, Technicals)
from ingest.base import MarketDataGateway  # noqa: E402
from storage.database import MemoryCacheStore  # noqa: E402


class FakeGateway(MarketDataGateway):
    """Gateway backed by dicts. Missing keys are unavailable (None)."""

    def __init__(self):
        super().__init__()
        self.quotes: dict[str, Quote] = {}
        self.profiles: dict[str, StockProfile] = {}
        self.technicals: dict[str, Technicals] = {}
        self.sentiment: dict[str, float] = {}
        self.candles: dict[str, Candles] = {}
        self.forex_quotes: dict[str, Quote] = {}
        self.forex_technicals: dict[str, ForexTechnicals] = {}
        self.universe = PairUniverse()
        self.trending: list[str] = []
        self.calls: Counter = Counter()

    def add_stock(self, symbol, price=100.0, change=1.0, rsi=50.0, volatility=25.0,
                  beta=1.0, sentiment=0.0, closes=None, name=None):
        self.quotes[symbol] = Quote(current_price=price, percent_change=change,
                                    previous_close=price / (1 + change / 100), volume=1_000_000)
        self.profiles[symbol] = StockProfile(name=name or f"{symbol} Inc.")
        self.technicals[symbol] = Technicals(rsi=rsi, volatility=volatility, beta=beta)
        self.sentiment[symbol] = sentiment
        if closes is not None:
            self.candles[symbol] = Candles(closes=closes)
        self.trending.append(symbol)

    async def get_quote(self, symbol):
        self.calls["get_quote"] += 1
        return self.quotes.get(symbol)

    async def get_stock_profile(self, symbol):
        self.calls["get_stock_profile"] += 1
        return self.profiles.get(symbol)

    async def get_technical_indicators(self, symbol):
        self.calls["get_technical_indicators"] += 1
        return self.technicals.get(symbol)

    async def get_news_sentiment(self, symbol):
        self.calls["get_news_sentiment"] += 1
        return self.sentiment.get(symbol)

    async def get_stock_candles(self, symbol, resolution="D", count=30):
        self.calls["get_stock_candles"] += 1
        return self.candles.get(symbol)

    async def get_forex_quote(self, pair):
        self.calls["get_forex_quote"] += 1
        return self.forex_quotes.get(pair)

    async def calculate_forex_technicals(self, pair):
        self.calls["calculate_forex_technicals"] += 1
        return self.forex_technicals.get(pair)

    async def get_major_forex_pairs(self):
        return self.universe

    async def get_trending_stocks(self):
        return list(self.trending)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


class FakeClock:
    def __init__(self, now: float = 1_800_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
