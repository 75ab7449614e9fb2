"""Market data gateway interface.

Every method returns ``None`` (or an empty collection) when the data is
unavailable; implementations log and swallow transport errors.
"""
from abc import ABC, abstractmethod
from typing import Optional

from common.logger import get_logger
from common.models import Candles, ForexTechnicals, PairUniverse, Quote, StockProfile, Technicals


class MarketDataGateway(ABC):
    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def get_quote(self, symbol: str) -> Optional[Quote]: ...

    @abstractmethod
    async def get_stock_profile(self, symbol: str) -> Optional[StockProfile]: ...

    @abstractmethod
    async def get_technical_indicators(self, symbol: str) -> Optional[Technicals]: ...

    @abstractmethod
    async def get_news_sentiment(self, symbol: str) -> Optional[float]:
        """Aggregate news sentiment in [-1, 1]."""

    @abstractmethod
    async def get_stock_candles(self, symbol: str, resolution: str = "D",
                                count: int = 30) -> Optional[Candles]: ...

    @abstractmethod
    async def get_forex_quote(self, pair: str) -> Optional[Quote]: ...

    @abstractmethod
    async def calculate_forex_technicals(self, pair: str) -> Optional[ForexTechnicals]: ...

    @abstractmethod
    async def get_major_forex_pairs(self) -> PairUniverse: ...

    @abstractmethod
    async def get_trending_stocks(self) -> list[str]: ...
