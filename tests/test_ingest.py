"""Tests for the gateway layer: throttling, timeouts and Finnhub payload parsing."""
import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from common.models import PairUniverse, Quote
from ingest.finnhub import FinnhubGateway
from ingest.throttle import ThrottledGateway


class SlowGateway:
    """Counts concurrent calls; each call takes ``delay`` seconds."""

    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.running = 0
        self.peak = 0

    async def get_quote(self, symbol):
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(self.delay)
            return Quote(current_price=1.0)
        finally:
            self.running -= 1

    async def get_stock_profile(self, symbol):
        raise requests.ConnectionError("reset by peer")

    async def get_major_forex_pairs(self):
        raise requests.HTTPError("500")


@pytest.mark.asyncio
class TestThrottledGateway:
    async def test_in_flight_ceiling(self):
        inner = SlowGateway()
        gw = ThrottledGateway(inner, max_in_flight=3, timeout=1.0)
        results = await asyncio.gather(*(gw.get_quote(f"S{i}") for i in range(12)))
        assert all(r.current_price == 1.0 for r in results)
        assert inner.peak == 3
        assert gw.peak_in_flight == 3
        assert gw.in_flight == 0

    async def test_timeout_is_unavailable(self):
        gw = ThrottledGateway(SlowGateway(delay=1.0), max_in_flight=2, timeout=0.01)
        assert await gw.get_quote("AAPL") is None
        assert gw.in_flight == 0

    async def test_errors_are_unavailable(self):
        gw = ThrottledGateway(SlowGateway(), max_in_flight=2, timeout=1.0)
        assert await gw.get_stock_profile("AAPL") is None
        assert await gw.get_major_forex_pairs() == PairUniverse()


def test_ceiling_must_be_positive():
    with pytest.raises(ValueError):
        ThrottledGateway(SlowGateway(), max_in_flight=0)


def make_gateway(payload, api_key="test-key"):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    session = MagicMock()
    session.get.return_value = response
    return FinnhubGateway(api_key=api_key, session=session), session


@pytest.mark.asyncio
class TestFinnhubGateway:
    async def test_quote(self):
        gw, session = make_gateway({"c": 190.5, "dp": 1.25, "pc": 188.15})
        q = await gw.get_quote("AAPL")
        assert q.current_price == 190.5
        assert q.percent_change == 1.25
        assert q.previous_close == 188.15
        params = session.get.call_args.kwargs["params"]
        assert params["symbol"] == "AAPL" and params["token"] == "test-key"

    async def test_profile_empty_is_unavailable(self):
        gw, _ = make_gateway({})
        assert await gw.get_stock_profile("ZZZZ") is None

    async def test_sentiment_is_bullish_minus_bearish(self):
        gw, _ = make_gateway({"sentiment": {"bullishPercent": 0.7, "bearishPercent": 0.2}})
        assert await gw.get_news_sentiment("AAPL") == pytest.approx(0.5)

    async def test_http_error_is_unavailable(self):
        gw, session = make_gateway({})
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("403")
        assert await gw.get_quote("AAPL") is None

    async def test_missing_api_key_skips_request(self):
        gw, session = make_gateway({"c": 1.0}, api_key="")
        assert await gw.get_quote("AAPL") is None
        session.get.assert_not_called()

    async def test_forex_quote_from_daily_candles(self):
        gw, _ = make_gateway({"s": "ok", "c": [110.00, 110.25], "h": [110.5, 110.6], "l": [109.8, 109.9]})
        q = await gw.get_forex_quote("USD_JPY")
        assert q.current_price == 110.25
        assert q.previous_close == 110.00

    async def test_no_data_candles_fall_back_to_yahoo(self, monkeypatch):
        from ingest import finnhub
        from common.models import Candles

        gw, _ = make_gateway({"s": "no_data"})
        monkeypatch.setattr(finnhub, "fetch_daily_candles",
                            lambda symbol, count, timeout=None: Candles(closes=[1.0, 2.0]))
        candles = await gw.get_stock_candles("AAPL", "D", 30)
        assert candles.closes == [1.0, 2.0]

    async def test_curated_universes(self):
        gw, _ = make_gateway({})
        universe = await gw.get_major_forex_pairs()
        assert "EUR_USD" in universe.major
        assert universe.liquidity("USD_TRY") == "exotic"
        assert "AAPL" in await gw.get_trending_stocks()


CANDLES = {"s": "ok",
           "c": [100 + (i % 5) for i in range(40)],
           "h": [101 + (i % 5) for i in range(40)],
           "l": [99 + (i % 5) for i in range(40)]}


class SlowSession:
    """requests.Session stand-in that records how many get() calls overlap."""

    def __init__(self, delay: float, payload: dict):
        self.delay = delay
        self.payload = payload
        self.lock = threading.Lock()
        self.running = 0
        self.peak = 0
        self.started = 0

    def get(self, url, params=None, timeout=None):
        with self.lock:
            self.running += 1
            self.started += 1
            self.peak = max(self.peak, self.running)
        try:
            time.sleep(self.delay)
            response = MagicMock()
            response.json.return_value = self.payload
            return response
        finally:
            with self.lock:
                self.running -= 1


async def wait_for_requests(session: SlowSession, count: int, limit: float = 5.0) -> None:
    deadline = time.monotonic() + limit
    while (session.started < count or session.running) and time.monotonic() < deadline:
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
class TestHttpCeiling:
    async def test_technicals_stay_within_ceiling(self):
        session = SlowSession(delay=0.05, payload=CANDLES)
        finnhub = FinnhubGateway(api_key="k", session=session, max_in_flight=2)
        gw = ThrottledGateway(finnhub, max_in_flight=2, timeout=5.0)

        results = await asyncio.gather(*(gw.get_technical_indicators(f"S{i}") for i in range(4)))
        assert all(r is not None for r in results)
        assert session.peak <= 2

    async def test_timed_out_requests_keep_their_slot(self):
        session = SlowSession(delay=0.3, payload={"c": 1.0})
        finnhub = FinnhubGateway(api_key="k", session=session, max_in_flight=2)
        gw = ThrottledGateway(finnhub, max_in_flight=2, timeout=0.05)

        results = await asyncio.gather(*(gw.get_quote(f"S{i}") for i in range(8)))
        assert results == [None] * 8
        await wait_for_requests(session, 8)
        assert session.started == 8
        assert session.peak <= 2

    async def test_yahoo_fallback_shares_slots(self, monkeypatch):
        from ingest import finnhub as finnhub_module

        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def slow_yahoo(symbol, count, timeout=None):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.05)
            with lock:
                state["running"] -= 1
            return None

        monkeypatch.setattr(finnhub_module, "fetch_daily_candles", slow_yahoo)
        gw = FinnhubGateway(api_key="k", session=SlowSession(0.0, {"s": "no_data"}), max_in_flight=1)
        await asyncio.gather(*(gw.get_stock_candles(f"S{i}") for i in range(4)))
        assert state["peak"] == 1


def test_http_ceiling_must_be_positive():
    with pytest.raises(ValueError):
        FinnhubGateway(api_key="k", max_in_flight=0)


@pytest.mark.asyncio
class TestBenchmarkCandles:
    async def test_fetched_once_across_symbols(self):
        gw, session = make_gateway(CANDLES)
        results = await asyncio.gather(*(gw.get_technical_indicators(f"S{i}") for i in range(6)))
        assert all(r is not None for r in results)
        symbols = [c.kwargs["params"]["symbol"] for c in session.get.call_args_list]
        assert symbols.count("SPY") == 1
        assert len(symbols) == 7

    async def test_refetched_after_ttl(self):
        now = [1000.0]
        gw, session = make_gateway(CANDLES)
        gw.benchmark_ttl = 300
        gw.clock = lambda: now[0]

        await gw.get_technical_indicators("AAPL")
        now[0] += 299
        await gw.get_technical_indicators("MSFT")
        now[0] += 1
        await gw.get_technical_indicators("NVDA")

        symbols = [c.kwargs["params"]["symbol"] for c in session.get.call_args_list]
        assert symbols.count("SPY") == 2
