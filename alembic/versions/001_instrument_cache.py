"""Instrument cache table.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "instrument_cache",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("symbol", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("price", sa.DECIMAL(precision=20, scale=8), nullable=False),
        sa.Column("volume", sa.DECIMAL(precision=30, scale=2), nullable=True),
        sa.Column("change24h", sa.DECIMAL(precision=10, scale=4), nullable=True),
        # technicals
        sa.Column("rsi", sa.DECIMAL(precision=6, scale=2), nullable=True),
        sa.Column("volatility", sa.DECIMAL(precision=10, scale=4), nullable=True),
        sa.Column("beta", sa.DECIMAL(precision=8, scale=4), nullable=True),
        sa.Column("sentiment", sa.DECIMAL(precision=6, scale=4), nullable=True),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("symbol"),
    )
    op.create_index("idx_instrument_cache_updated", "instrument_cache", ["updated_at"])


def downgrade() -> None:
    op.drop_index("idx_instrument_cache_updated", table_name="instrument_cache")
    op.drop_table("instrument_cache")
