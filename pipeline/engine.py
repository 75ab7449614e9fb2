"""
Recommendation engine.

Wires the pipeline together:
  instruments → BatchScheduler → (InstrumentCache → gateway) per instrument
  → Risk / Confidence / Backtest → candidates → Personalization Ranker → top N

All collaborators are injected; ``build_engine()`` assembles the production
set from settings.
"""
import asyncio
from typing import Optional, Union

from common.logger import get_logger, new_request_id
from common.models import Candidate, ForexCandidate, StockCandidate, UserProfile
from config.settings import (BATCH_DELAY_SECONDS, BATCH_SIZE, CACHE_TTL_SECONDS, DATABASE_URL,
                             GATEWAY_MAX_IN_FLIGHT, GATEWAY_TIMEOUT_SECONDS, STOCK_UNIVERSE_LIMIT,
                             TOP_N)
from ingest.base import MarketDataGateway
from pipeline.batch import BatchScheduler
from scoring.backtest import format_accuracy, simulate_backtest_performance
from scoring.confidence import compute_confidence_score
from scoring.personalizer import (personalize_forex_recommendations,
                                  personalize_stock_recommendations, rank_candidates)
from scoring.risk import (LEVERAGE_BY_TOLERANCE, SPREAD_PIPS, TIMEFRAMES, calculate_forex_risk,
                          calculate_pip_movement, calculate_stock_risk, estimate_projected_return,
                          format_pips, validate_pair)
from storage.cache import InstrumentCache

logger = get_logger("engine")

STOCK_STRATEGY = "mean-reversion"
FOREX_STRATEGY = "trend-following"
MINOR_PAIRS_LIMIT = 5
EXOTIC_PAIRS_LIMIT = 3
DEFAULT_TREND_PIPS = 5

ProfileInput = Union[UserProfile, dict]


def as_profile(profile: Optional[ProfileInput]) -> UserProfile:
    """Validate caller input; raises pydantic.ValidationError on a malformed profile."""
    if isinstance(profile, UserProfile):
        return profile
    return UserProfile.model_validate(profile or {})


class RecommendationEngine:
    def __init__(self, gateway: MarketDataGateway, cache: InstrumentCache,
                 scheduler: BatchScheduler, universe_limit: int = STOCK_UNIVERSE_LIMIT):
        self.gateway = gateway
        self.cache = cache
        self.scheduler = scheduler
        self.universe_limit = universe_limit

    # ── per-instrument compute ────────────────────────────────────────────────

    async def process_stock(self, symbol: str, profile: UserProfile) -> Optional[StockCandidate]:
        snap = await self.cache.get_or_refresh(symbol)
        if snap is None or not snap.usable:
            return None

        tech = snap.technicals
        perf = simulate_backtest_performance(snap.key, STOCK_STRATEGY)
        risk = calculate_stock_risk(volatility=tech.volatility, beta=tech.beta, rsi=tech.rsi,
                                    drawdown=snap.drawdown, sentiment=snap.sentiment)
        confidence = compute_confidence_score(rsi=tech.rsi, volatility=tech.volatility,
                                              sentiment=snap.sentiment,
                                              historical_win_rate=perf.success_rate,
                                              sample_size=perf.sample_size)
        horizon = profile.investment_horizon
        return StockCandidate(
            symbol=snap.key,
            name=snap.display_name,
            price=snap.price,
            change_24h=round(snap.change24h, 2),
            risk_score=risk.score,
            risk_level=risk.level,
            projected_return=estimate_projected_return(tech.volatility, tech.rsi, horizon),
            timeframe=TIMEFRAMES[horizon],
            reason=risk.recommendation,
            confidence_score=confidence.score,
            historical_accuracy=format_accuracy(perf),
            win_rate=perf.success_rate,
            volatility=tech.volatility,
        )

    async def process_forex_pair(self, pair: str, profile: UserProfile,
                                 liquidity: str) -> Optional[ForexCandidate]:
        quote, technicals = await asyncio.gather(
            self.gateway.get_forex_quote(pair),
            self.gateway.calculate_forex_technicals(pair),
        )
        if not quote or not quote.current_price:
            logger.warning(f"⚠️ {pair}: quote unavailable, skipping")
            return None

        spread = SPREAD_PIPS[liquidity]
        trend = technicals.trend_strength if technicals else 0.0
        risk = calculate_forex_risk(
            atr_volatility=technicals.atr if technicals else 0.001,
            leverage=LEVERAGE_BY_TOLERANCE[profile.risk_tolerance],
            liquidity=liquidity,
            trend_strength=trend,
            spread_pips=spread,
        )
        old_rate = quote.previous_close or quote.current_price
        pips = calculate_pip_movement(old_rate, quote.current_price, pair)
        perf = simulate_backtest_performance(pair, FOREX_STRATEGY, liquidity)
        return ForexCandidate(
            pair=pair.replace("_", "/"),
            rate=quote.current_price,
            change_24h=round(quote.percent_change or 0.0, 2),
            pip_movement=format_pips(pips),
            risk_score=risk.score,
            risk_level=risk.level,
            spread=f"{spread} pips",
            # a flat 0.0 trend also falls back to DEFAULT_TREND_PIPS
            projected_pips=f"+{round(abs(trend or DEFAULT_TREND_PIPS) * 10)} pips (1W)",
            reason=risk.recommendation,
            win_rate=perf.success_rate,
            liquidity=liquidity,
            trend_strength=trend,
        )

    # ── requests ──────────────────────────────────────────────────────────────

    async def analyze_stocks(self, symbols: list[str], profile: UserProfile) -> list[StockCandidate]:
        return await self.scheduler.process(symbols, lambda s: self.process_stock(s, profile))

    async def analyze_forex(self, profile: UserProfile) -> list[ForexCandidate]:
        universe = await self.gateway.get_major_forex_pairs()
        pairs = (universe.major + universe.minor[:MINOR_PAIRS_LIMIT]
                 + universe.exotic[:EXOTIC_PAIRS_LIMIT])
        for pair in pairs:
            validate_pair(pair)
        return await self.scheduler.process(
            pairs, lambda p: self.process_forex_pair(p, profile, universe.liquidity(p)))

    async def generate_stock_recommendations(self, profile: Optional[ProfileInput] = None,
                                             top_n: int = TOP_N) -> list[StockCandidate]:
        profile = as_profile(profile)
        new_request_id()
        symbols = (await self.gateway.get_trending_stocks())[:self.universe_limit]
        logger.info(f"🔄 Analyzing {len(symbols)} stocks")
        candidates = await self.analyze_stocks(symbols, profile)
        ranked = personalize_stock_recommendations(candidates, profile)
        logger.info(f"🏁 {len(candidates)}/{len(symbols)} stocks usable, returning top {top_n}")
        return ranked[:top_n]

    async def generate_forex_recommendations(self, profile: Optional[ProfileInput] = None,
                                             top_n: int = TOP_N) -> list[ForexCandidate]:
        profile = as_profile(profile)
        new_request_id()
        candidates = await self.analyze_forex(profile)
        ranked = personalize_forex_recommendations(candidates, profile)
        logger.info(f"🏁 {len(candidates)} pairs usable, returning top {top_n}")
        return ranked[:top_n]

    async def generate_recommendations(self, profile: Optional[ProfileInput] = None,
                                       top_n: int = TOP_N) -> list[Candidate]:
        """Stocks and/or forex according to ``preferred_assets``, ranked together."""
        profile = as_profile(profile)
        new_request_id()
        candidates: list[Candidate] = []
        if profile.preferred_assets in ("stocks", "both"):
            symbols = (await self.gateway.get_trending_stocks())[:self.universe_limit]
            candidates += await self.analyze_stocks(symbols, profile)
        if profile.preferred_assets in ("forex", "both"):
            candidates += await self.analyze_forex(profile)
        return rank_candidates(candidates, profile)[:top_n]


def build_engine(database_url: str = DATABASE_URL) -> RecommendationEngine:
    from ingest.finnhub import FinnhubGateway
    from ingest.throttle import ThrottledGateway
    from storage.database import create_cache_store

    gateway = ThrottledGateway(FinnhubGateway(max_in_flight=GATEWAY_MAX_IN_FLIGHT),
                               max_in_flight=GATEWAY_MAX_IN_FLIGHT,
                               timeout=GATEWAY_TIMEOUT_SECONDS)
    cache = InstrumentCache(gateway, create_cache_store(database_url), ttl_seconds=CACHE_TTL_SECONDS)
    scheduler = BatchScheduler(BATCH_SIZE, BATCH_DELAY_SECONDS)
    return RecommendationEngine(gateway, cache, scheduler)
