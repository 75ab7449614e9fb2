"""Configuration loader."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")

FINNHUB_API_KEY = os.getenv("FINNHUB_API_KEY", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DATABASE_URL = os.getenv("DATABASE_URL", "none").strip()

# Instrument cache: entries younger than this are served without a refresh
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "300"))

BATCH_SIZE = int(os.getenv("BATCH_SIZE", "5"))
BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "0.5"))

# quote + profile + technicals + sentiment + candles
GATEWAY_FANOUT = int(os.getenv("GATEWAY_FANOUT", "5"))
GATEWAY_MAX_IN_FLIGHT = int(os.getenv("GATEWAY_MAX_IN_FLIGHT", str(BATCH_SIZE * GATEWAY_FANOUT)))
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

STOCK_UNIVERSE_LIMIT = int(os.getenv("STOCK_UNIVERSE_LIMIT", "30"))
TOP_N = int(os.getenv("TOP_N", "10"))

DEFAULT_PROFILE = {
    "risk_tolerance": "medium",
    "investment_horizon": "medium",
    "investment_amount": 10000,
    "preferred_assets": "both",
}

TRENDING_STOCKS = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "AMD", "NFLX", "INTC",
    "JPM", "V", "MA", "BAC", "WMT", "KO", "PEP", "DIS", "CSCO", "ORCL",
    "CRM", "ADBE", "PYPL", "UBER", "SHOP", "COIN", "PLTR", "SNOW", "XOM", "CVX",
    "JNJ", "PFE", "MRK", "T", "VZ",
]

FOREX_PAIRS = {
    "major": ["EUR_USD", "GBP_USD", "USD_JPY", "USD_CHF", "AUD_USD", "USD_CAD", "NZD_USD"],
    "minor": ["EUR_GBP", "EUR_JPY", "GBP_JPY", "EUR_CHF", "AUD_JPY", "GBP_CHF", "EUR_AUD", "CAD_JPY"],
    "exotic": ["USD_TRY", "USD_ZAR", "USD_MXN", "USD_SGD", "USD_HKD", "EUR_TRY"],
}
