"""Repository pattern for database operations."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import case, delete, desc, func, select

from postage_auditor.core.reference import (
    DEFAULT_BRAND_COUNTRIES,
    DEFAULT_TARIFF_RATES,
    ReferenceTables,
    build_tables,
)

from .models import ApiLogDB, BrandCountryDB, TariffRateDB
from .session import session_scope

logger = logging.getLogger(__name__)


class Repository:
    """Data access repository for reference data and API logs."""

    # ==================== Tariff Rates ====================

    def get_tariff_rates(self) -> dict[str, Decimal]:
        """Get all tariff rates keyed by country."""
        with session_scope() as session:
            rows = session.execute(select(TariffRateDB)).scalars().all()
            return {row.country: Decimal(row.rate) for row in rows}

    def upsert_tariff_rate(self, country: str, rate: Decimal) -> None:
        """Create or update the tariff rate for a country."""
        country = country.strip()
        if not country:
            raise ValueError("country must not be empty")
        if rate < 0:
            raise ValueError(f"tariff rate must not be negative: {rate}")

        with session_scope() as session:
            db_rate = session.execute(
                select(TariffRateDB).where(TariffRateDB.country == country)
            ).scalar_one_or_none()

            if db_rate:
                db_rate.rate = rate
                db_rate.updated_at = datetime.now()
            else:
                session.add(TariffRateDB(country=country, rate=rate))

    def delete_tariff_rate(self, country: str) -> bool:
        """Delete a country's tariff rate. Returns True if a row was removed."""
        with session_scope() as session:
            result = session.execute(delete(TariffRateDB).where(TariffRateDB.country == country))
            return bool(result.rowcount)

    # ==================== Brand Countries ====================

    def get_brand_countries(self) -> dict[str, str]:
        """Get the brand -> default country mapping."""
        with session_scope() as session:
            rows = session.execute(select(BrandCountryDB)).scalars().all()
            return {row.brand: row.country for row in rows}

    def upsert_brand_country(self, brand: str, country: str) -> None:
        """Create or update a brand's default country of origin."""
        brand = brand.strip()
        country = country.strip()
        if not brand or not country:
            raise ValueError("brand and country must not be empty")

        with session_scope() as session:
            db_mapping = session.execute(
                select(BrandCountryDB).where(BrandCountryDB.brand == brand)
            ).scalar_one_or_none()

            if db_mapping:
                db_mapping.country = country
                db_mapping.updated_at = datetime.now()
            else:
                session.add(BrandCountryDB(brand=brand, country=country))

    def delete_brand_country(self, brand: str) -> bool:
        """Delete a brand mapping. Returns True if a row was removed."""
        with session_scope() as session:
            result = session.execute(delete(BrandCountryDB).where(BrandCountryDB.brand == brand))
            return bool(result.rowcount)

    # ==================== Reference Tables ====================

    def seed_reference_data(self) -> dict[str, int]:
        """Populate empty reference tables from the static defaults.

        Tables that already hold rows are left untouched.
        """
        seeded = {"tariff_rates": 0, "brand_country_mappings": 0}
        with session_scope() as session:
            if not session.execute(select(func.count(TariffRateDB.id))).scalar():
                for country, rate in DEFAULT_TARIFF_RATES.items():
                    session.add(TariffRateDB(country=country, rate=rate))
                seeded["tariff_rates"] = len(DEFAULT_TARIFF_RATES)

            if not session.execute(select(func.count(BrandCountryDB.id))).scalar():
                for brand, country in DEFAULT_BRAND_COUNTRIES.items():
                    session.add(BrandCountryDB(brand=brand, country=country))
                seeded["brand_country_mappings"] = len(DEFAULT_BRAND_COUNTRIES)

        if any(seeded.values()):
            logger.info(f"Seeded reference data: {seeded}")
        return seeded

    def load_reference_tables(self) -> ReferenceTables:
        """Read the current tariff and brand tables into a calculation snapshot."""
        tariff_rates = self.get_tariff_rates()
        if not tariff_rates:
            logger.warning("No tariff rates stored, using built-in defaults")
            tariff_rates = DEFAULT_TARIFF_RATES
        return build_tables(tariff_rates, self.get_brand_countries())

    # ==================== API Logs ====================

    def save_api_log(
        self,
        api_name: str,
        endpoint: str,
        method: str,
        request_params: str,
        response_status: int,
        response_size: int,
        duration_ms: int,
        success: bool,
        error_message: str = "",
    ) -> None:
        """Save an API call log entry."""
        with session_scope() as session:
            db_log = ApiLogDB(
                api_name=api_name,
                endpoint=endpoint,
                method=method,
                request_params=request_params,
                response_status=response_status,
                response_size_bytes=response_size,
                duration_ms=duration_ms,
                success=success,
                error_message=error_message,
            )
            session.add(db_log)

    def get_api_logs(
        self,
        api_name: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Get API logs with optional filtering."""
        with session_scope() as session:
            query = select(ApiLogDB)
            if api_name:
                query = query.where(ApiLogDB.api_name == api_name)
            if since:
                query = query.where(ApiLogDB.created_at >= since)
            query = query.order_by(desc(ApiLogDB.created_at)).limit(limit)

            result = session.execute(query).scalars().all()
            return [
                {
                    "id": db.id,
                    "api_name": db.api_name,
                    "endpoint": db.endpoint,
                    "method": db.method,
                    "response_status": db.response_status,
                    "duration_ms": db.duration_ms,
                    "success": db.success,
                    "error_message": db.error_message,
                    "created_at": db.created_at.isoformat(),
                }
                for db in result
            ]

    def get_call_usage_stats(self, hours: int = 24, daily_budget: int | None = None) -> dict:
        """Get upstream call counts for the past N hours."""
        with session_scope() as session:
            since = datetime.now() - timedelta(hours=hours)
            totals = session.execute(
                select(
                    func.count(ApiLogDB.id).label("total_calls"),
                    func.sum(case((ApiLogDB.success == True, 1), else_=0)).label("success_count"),
                ).where(ApiLogDB.created_at >= since)
            ).one()
            per_api = session.execute(
                select(ApiLogDB.api_name, func.count(ApiLogDB.id).label("count"))
                .where(ApiLogDB.created_at >= since)
                .group_by(ApiLogDB.api_name)
            ).all()

        total_calls = totals.total_calls or 0
        success_count = totals.success_count or 0
        stats = {
            "hours": hours,
            "total_calls": total_calls,
            "success_count": success_count,
            "failure_count": total_calls - success_count,
            "by_api": {row.api_name: row.count for row in per_api},
        }
        if daily_budget is not None:
            stats["daily_budget"] = daily_budget
            stats["remaining"] = max(daily_budget - total_calls, 0)
        return stats
