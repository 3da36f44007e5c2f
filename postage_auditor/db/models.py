"""SQLAlchemy database models for Postage Auditor."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class EnrichedItemDB(Base):
    """Cached enrichment record, one row per listing."""

    __tablename__ = "enriched_items"

    item_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    brand: Mapped[str] = mapped_column(String(200), default="")
    country_of_origin: Mapped[str] = mapped_column(String(100), default="")

    # Empty string when the listing declares no usable shipping option
    shipping_cost: Mapped[str] = mapped_column(String(20), default="")
    shipping_currency: Mapped[str] = mapped_column(String(3), default="")

    images_json: Mapped[str] = mapped_column(Text, default="[]")
    resolved_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)


class TariffRateDB(Base):
    """US import tariff rate for a country of origin."""

    __tablename__ = "tariff_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class BrandCountryDB(Base):
    """Default country of origin for a brand."""

    __tablename__ = "brand_country_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    brand: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)


class ApiLogDB(Base):
    """Upstream API call log for diagnostics and the daily budget."""

    __tablename__ = "api_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    api_name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # trading, browse
    endpoint: Mapped[str] = mapped_column(String(200), default="")
    method: Mapped[str] = mapped_column(String(10), default="GET")

    request_params: Mapped[str] = mapped_column(Text, default="")
    response_status: Mapped[int] = mapped_column(Integer, default=0)
    response_size_bytes: Mapped[int] = mapped_column(Integer, default=0)

    duration_ms: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str] = mapped_column(Text, default="")
    success: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    __table_args__ = (Index("ix_api_logs_api_time", "api_name", "created_at"),)
