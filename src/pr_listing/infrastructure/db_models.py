"""SQLAlchemy ORM models for pr_listing.

These map to existing tables created by Alembic migrations.
Used for type reference only — persistence.py uses raw text() SQL.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pr_common.database import Base


class ListingORM(Base):
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    current_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    original_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    minimum_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reduction_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reduction_strategy: Mapped[str] = mapped_column(Text, nullable=False)
    reduction_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    reduction_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reduction_interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    last_price_reduction: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_price_reduction: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reduction_stalled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    listing_status: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class MarketSnapshotORM(Base):
    __tablename__ = "market_snapshots"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(Text, nullable=False)
    average_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    suggested_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: written by the external market-data collector; read-only here
