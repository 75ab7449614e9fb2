"""SQLAlchemy ORM models for the instrument cache."""
from sqlalchemy import Column, DECIMAL, Index, Integer, String, TIMESTAMP
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class InstrumentCacheDB(Base):
    """Last known snapshot per instrument. Drawdown and previous close are
    deliberately absent: they are only known on a fresh fetch."""
    __tablename__ = "instrument_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), unique=True, nullable=False)
    name = Column(String(100))
    price = Column(DECIMAL(20, 8), nullable=False)
    volume = Column(DECIMAL(30, 2))
    change24h = Column(DECIMAL(10, 4))

    rsi = Column(DECIMAL(6, 2))
    volatility = Column(DECIMAL(10, 4))
    beta = Column(DECIMAL(8, 4))
    sentiment = Column(DECIMAL(6, 4))

    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_instrument_cache_updated", "updated_at"),
    )
