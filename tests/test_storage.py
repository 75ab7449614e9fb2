"""Tests for the cache storage backends.

Coverage:
  - memory and CSV backends: find_one / upsert round trip, overwrite, isolation
  - backend selection from DATABASE_URL
  - PostgreSQL URL normalisation (no DB required)
"""
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from storage import database
from storage.database import (CsvCacheStore, MemoryCacheStore, PostgresCacheStore,
                              create_cache_store, normalize_pg_url)


def make_fields(price: float = 190.0, rsi: float = 55.0) -> dict:
    return {
        "name": "Apple Inc.",
        "price": price,
        "volume": 1_000_000.0,
        "change24h": 1.5,
        "technicals": {"rsi": rsi, "volatility": 28.0, "beta": 1.2},
        "sentiment": 0.3,
        "updated_at": datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
    }


@pytest.fixture(params=["memory", "csv"])
def backend(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryCacheStore()
    return CsvCacheStore(tmp_path)


@pytest.mark.asyncio
class TestStores:
    async def test_find_missing_returns_none(self, backend) -> None:
        assert await backend.find_one("AAPL") is None

    async def test_upsert_then_find(self, backend) -> None:
        await backend.upsert("AAPL", make_fields())
        record = await backend.find_one("AAPL")
        assert record["symbol"] == "AAPL"
        assert record["name"] == "Apple Inc."
        assert record["price"] == pytest.approx(190.0)
        assert record["technicals"] == {"rsi": 55.0, "volatility": 28.0, "beta": 1.2}
        assert record["updated_at"] == datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    async def test_upsert_overwrites(self, backend) -> None:
        await backend.upsert("AAPL", make_fields(price=190.0))
        await backend.upsert("AAPL", make_fields(price=200.0, rsi=70.0))
        record = await backend.find_one("AAPL")
        assert record["price"] == pytest.approx(200.0)
        assert record["technicals"]["rsi"] == pytest.approx(70.0)

    async def test_keys_isolated(self, backend) -> None:
        await backend.upsert("AAPL", make_fields(price=190.0))
        await backend.upsert("MSFT", make_fields(price=410.0))
        assert (await backend.find_one("AAPL"))["price"] == pytest.approx(190.0)
        assert (await backend.find_one("MSFT"))["price"] == pytest.approx(410.0)


@pytest.mark.asyncio
async def test_csv_keeps_one_row_per_symbol(tmp_path: Path) -> None:
    store = CsvCacheStore(tmp_path)
    for price in (1.0, 2.0, 3.0):
        await store.upsert("AAPL", make_fields(price=price))
    df = pd.read_csv(tmp_path / "instruments.csv")
    assert len(df) == 1
    assert "drawdown" not in df.columns


@pytest.mark.asyncio
@pytest.mark.parametrize("symbol", ["NA", "NULL", "NAN"])
async def test_csv_keeps_na_like_tickers(tmp_path: Path, symbol: str) -> None:
    store = CsvCacheStore(tmp_path)
    await store.upsert(symbol, make_fields(price=10.0))
    await store.upsert(symbol, make_fields(price=12.0))
    record = await store.find_one(symbol)
    assert record is not None
    assert record["symbol"] == symbol
    assert record["price"] == pytest.approx(12.0)
    assert len(pd.read_csv(tmp_path / "instruments.csv", keep_default_na=False)) == 1


class TestBackendSelection:
    def test_none_selects_csv(self, tmp_path: Path) -> None:
        assert isinstance(create_cache_store("none", tmp_path), CsvCacheStore)
        assert isinstance(create_cache_store("", tmp_path), CsvCacheStore)

    def test_memory(self) -> None:
        assert isinstance(create_cache_store("memory"), MemoryCacheStore)

    def test_postgres(self, monkeypatch) -> None:
        created = []

        class FakePG:
            def __init__(self, url):
                created.append(url)

        monkeypatch.setattr(database, "PostgresCacheStore", FakePG)
        store = create_cache_store("postgresql://user:pw@db/advisor")
        assert isinstance(store, FakePG)
        assert created == ["postgresql://user:pw@db/advisor"]


class TestPostgresUrl:
    @pytest.mark.parametrize("raw,expected", [
        ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
    ])
    def test_normalize(self, raw, expected) -> None:
        assert normalize_pg_url(raw) == expected

    def test_store_uses_asyncpg_driver(self) -> None:
        pytest.importorskip("asyncpg")
        store = PostgresCacheStore("postgres://u:p@localhost/db")
        assert store.url.startswith("postgresql+asyncpg://")
