"""Instrument Cache.

Time-bounded snapshot store in front of the market data gateway. An entry
younger than the TTL is served as-is; anything older (or missing) triggers one
refresh through the gateway.

Cached records do not keep drawdown or previous close. On a cache hit the
snapshot is rebuilt with ``drawdown = -5`` and
``prev_close = price / (1 + change24h / 100)``, so fresh and cached snapshots
of the same instrument can differ in those two fields.
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from common.logger import get_logger
from common.models import InstrumentSnapshot, Technicals
from config.settings import CACHE_TTL_SECONDS
from ingest.base import MarketDataGateway
from scoring.indicators import calculate_drawdown
from storage.database import CacheStore

logger = get_logger("cache")

DEFAULT_DRAWDOWN = -5.0
DRAWDOWN_WINDOW = 30


class InstrumentCache:
    def __init__(self, gateway: MarketDataGateway, store: CacheStore,
                 ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def is_fresh(self, updated_at: Optional[datetime]) -> bool:
        if updated_at is None:
            return False
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return self.clock() - updated_at.timestamp() < self.ttl_seconds

    async def get_or_refresh(self, key: str) -> Optional[InstrumentSnapshot]:
        """Snapshot for ``key``, or None when the instrument is unavailable."""
        try:
            cached = await self.store.find_one(key)
        except Exception as e:
            logger.error(f"Cache read failed for {key}: {e}")
            cached = None

        if cached and self.is_fresh(cached.get("updated_at")):
            logger.debug(f"Cache hit for {key}")
            return self._from_record(key, cached)

        logger.info(f"Cache {'stale' if cached else 'miss'} for {key}, refreshing")
        return await self.refresh(key)

    async def refresh(self, key: str) -> Optional[InstrumentSnapshot]:
        quote, profile, technicals, sentiment = await asyncio.gather(
            self.gateway.get_quote(key),
            self.gateway.get_stock_profile(key),
            self.gateway.get_technical_indicators(key),
            self.gateway.get_news_sentiment(key),
        )
        if not quote or not profile or not technicals or not quote.current_price:
            logger.warning(f"⚠️ {key}: quote/profile/technicals unavailable, skipping")
            return None

        candles = await self.gateway.get_stock_candles(key, "D", DRAWDOWN_WINDOW)
        drawdown = calculate_drawdown(candles.closes) if candles and candles.closes else DEFAULT_DRAWDOWN

        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        snapshot = InstrumentSnapshot(
            key=key,
            display_name=profile.name or key,
            price=quote.current_price,
            volume=quote.volume or 0.0,
            change24h=quote.percent_change or 0.0,
            technicals=technicals,
            sentiment=max(-1.0, min(sentiment or 0.0, 1.0)),
            drawdown=drawdown,
            prev_close=quote.previous_close or quote.current_price,
            fetched_at=now,
        )

        try:
            await self.store.upsert(key, {
                "name": snapshot.display_name,
                "price": snapshot.price,
                "volume": snapshot.volume,
                "change24h": snapshot.change24h,
                "technicals": snapshot.technicals.model_dump(),
                "sentiment": snapshot.sentiment,
                "updated_at": now,
            })
        except Exception as e:
            logger.error(f"❌ Cache write failed for {key}: {e}")

        return snapshot

    def _from_record(self, key: str, record: dict) -> Optional[InstrumentSnapshot]:
        price = record.get("price") or 0.0
        if price <= 0:
            return None
        change = record.get("change24h") or 0.0
        tech = {k: v for k, v in (record.get("technicals") or {}).items() if v is not None}
        updated_at = record["updated_at"]
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return InstrumentSnapshot(
            key=key,
            display_name=record.get("name") or key,
            price=price,
            volume=record.get("volume") or 0.0,
            change24h=change,
            technicals=Technicals(**tech),
            sentiment=record.get("sentiment") or 0.0,
            drawdown=DEFAULT_DRAWDOWN,
            prev_close=price / (1 + change / 100) if change > -100 else price,
            fetched_at=updated_at,
        )
