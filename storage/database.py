"""Cache storage backends.

Backend is selected from the DATABASE_URL setting:
  - DATABASE_URL=none (or unset) → CSV file data/instruments.csv (default)
  - DATABASE_URL=memory          → in-process dict, lost on exit
  - DATABASE_URL=postgresql://... → PostgreSQL via SQLAlchemy async + asyncpg

Every backend stores one flat record per instrument key:
symbol, name, price, volume, change24h, rsi, volatility, beta, sentiment,
updated_at (timezone-aware UTC). ``find_one`` returns that record as a dict
with the three technicals nested under ``technicals``.
"""
import asyncio
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from common.logger import get_logger
from config.settings import DATABASE_URL

logger = get_logger("database")

DATA_DIR = Path(__file__).parent.parent / "data"

FIELDS = ["symbol", "name", "price", "volume", "change24h",
          "rsi", "volatility", "beta", "sentiment", "updated_at"]
TECHNICAL_FIELDS = ("rsi", "volatility", "beta")


def _flatten(key: str, fields: dict) -> dict:
    tech = fields.get("technicals") or {}
    row = {k: fields.get(k) for k in FIELDS if k not in TECHNICAL_FIELDS}
    row.update({k: tech.get(k) for k in TECHNICAL_FIELDS})
    row["symbol"] = key
    row["updated_at"] = fields.get("updated_at") or datetime.now(timezone.utc)
    return row


def _nest(row: dict) -> dict:
    record = {k: row[k] for k in FIELDS if k not in TECHNICAL_FIELDS}
    for k in ("price", "volume", "change24h", "sentiment"):
        record[k] = _to_float(record[k])
    record["name"] = row["name"] if isinstance(row["name"], str) else None
    record["technicals"] = {k: _to_float(row[k]) for k in TECHNICAL_FIELDS}
    return record


def _to_float(val) -> Optional[float]:
    return float(val) if val is not None and not pd.isna(val) else None


class CacheStore(ABC):
    @abstractmethod
    async def find_one(self, key: str) -> Optional[dict]: ...

    @abstractmethod
    async def upsert(self, key: str, fields: dict) -> None: ...


class MemoryCacheStore(CacheStore):
    def __init__(self):
        self.rows: dict[str, dict] = {}

    async def find_one(self, key: str) -> Optional[dict]:
        row = self.rows.get(key)
        return _nest(row) if row else None

    async def upsert(self, key: str, fields: dict) -> None:
        self.rows[key] = _flatten(key, fields)


# ── CSV backend (sync helpers run via asyncio.to_thread) ──────────────────────

def _read_csv(path: Path) -> pd.DataFrame:
    # tickers such as NA or NULL must stay strings
    return pd.read_csv(path, dtype={"symbol": str}, keep_default_na=False,
                       na_values={c: [""] for c in FIELDS if c != "symbol"})


def _csv_find_one(key: str, path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    df = _read_csv(path)
    df = df[df["symbol"] == key]
    if df.empty:
        return None
    row = df.iloc[-1].to_dict()
    row["updated_at"] = pd.to_datetime(row["updated_at"], utc=True).to_pydatetime()
    return _nest(row)


def _csv_upsert(key: str, fields: dict, path: Path) -> None:
    row = _flatten(key, fields)
    row["updated_at"] = row["updated_at"].isoformat()
    df = pd.DataFrame([row], columns=FIELDS)
    if path.exists():
        existing = _read_csv(path)
        df = pd.concat([existing[existing["symbol"] != key], df], ignore_index=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


class CsvCacheStore(CacheStore):
    def __init__(self, data_dir: Path = DATA_DIR):
        self.path = Path(data_dir) / "instruments.csv"
        # serialises read-modify-write of the single file, not instrument keys
        self._file_lock = threading.Lock()

    def _locked(self, fn, *args):
        with self._file_lock:
            return fn(*args)

    async def find_one(self, key: str) -> Optional[dict]:
        return await asyncio.to_thread(self._locked, _csv_find_one, key, self.path)

    async def upsert(self, key: str, fields: dict) -> None:
        await asyncio.to_thread(self._locked, _csv_upsert, key, fields, self.path)


# ── PostgreSQL backend ────────────────────────────────────────────────────────

def normalize_pg_url(url: str) -> str:
    """Force the asyncpg driver onto postgres:// and postgresql:// URLs."""
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://") and "+asyncpg" not in url:
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class PostgresCacheStore(CacheStore):
    def __init__(self, url: str):
        from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

        self.url = normalize_pg_url(url)
        self.engine = create_async_engine(self.url, echo=False, pool_pre_ping=True,
                                          pool_size=5, max_overflow=10)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        logger.info(f"[PG] Backend: {self.url.split('@')[-1]}")

    async def init_db(self) -> None:
        """Create the table (idempotent). Prefer Alembic for production migrations."""
        from storage.models import Base
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("[PG] Tables ensured")

    async def find_one(self, key: str) -> Optional[dict]:
        from sqlalchemy import select
        from storage.models import InstrumentCacheDB

        async with self.session_factory() as session:
            row = (await session.execute(
                select(InstrumentCacheDB).where(InstrumentCacheDB.symbol == key)
            )).scalar_one_or_none()
        if row is None:
            return None
        return _nest({k: getattr(row, k) for k in FIELDS})

    async def upsert(self, key: str, fields: dict) -> None:
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        from storage.models import InstrumentCacheDB

        row = _flatten(key, fields)
        stmt = (
            pg_insert(InstrumentCacheDB)
            .values(**row)
            .on_conflict_do_update(
                index_elements=["symbol"],
                set_={k: v for k, v in row.items() if k != "symbol"},
            )
        )
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(stmt)

    async def close(self) -> None:
        await self.engine.dispose()


def create_cache_store(url: str = DATABASE_URL, data_dir: Path = DATA_DIR) -> CacheStore:
    url = (url or "none").strip()
    if url.lower() in ("none", "", "null"):
        logger.info(f"[CSV] Backend: {data_dir}/instruments.csv")
        return CsvCacheStore(data_dir)
    if url.lower() == "memory":
        return MemoryCacheStore()
    return PostgresCacheStore(url)
