"""Expected postage per listing, compared with what the listing declares."""

from __future__ import annotations

import logging
from decimal import Decimal

from .config import Settings
from .models import (
    BatchCalculationResult,
    BatchItem,
    CooStatus,
    DiffStatus,
    EnrichedItemRecord,
)
from .reference import ReferenceTables
from .shipping import ShippingCalculator

logger = logging.getLogger(__name__)


class BatchCalculationService:
    """Runs the calculator at the configured reference assumption for many listings."""

    def __init__(self, settings: Settings, tables: ReferenceTables) -> None:
        self.config = settings.batch
        self.calculator = ShippingCalculator(tables)

    def calculate_batch(
        self,
        items: list[BatchItem],
        enrichment: dict[str, EnrichedItemRecord],
    ) -> dict[str, BatchCalculationResult]:
        """Calculate every item that has an enrichment record.

        Items still being enriched are left out of the result.
        """
        results = {}
        for item in items:
            record = enrichment.get(item.item_id)
            if record is None:
                continue
            results[item.item_id] = self.calculate_item(item, record)

        skipped = len(items) - len(results)
        logger.debug(f"Batch calculated {len(results)} items, {skipped} awaiting enrichment")
        return results

    def calculate_item(self, item: BatchItem, record: EnrichedItemRecord) -> BatchCalculationResult:
        calc = self.calculator
        expected_coo = calc.brand_country(record.brand)
        listing_coo = record.country_of_origin.strip()

        if not listing_coo:
            coo_status = CooStatus.MISSING
        elif listing_coo == expected_coo:
            coo_status = CooStatus.MATCH
        else:
            coo_status = CooStatus.MISMATCH

        result = calc.calculate_usa_shipping(
            item_value=item.price,
            weight_band=self.config.weight_band,
            brand=record.brand,
            country_of_origin=listing_coo,
            include_extra_cover=item.price > self.config.extra_cover_value_threshold,
            discount_band=self.config.discount_band,
            ceil_extra_cover=self.config.extra_cover_ceiling_units,
        )
        expected = result.total
        declared = record.shipping_cost.amount if record.shipping_cost else Decimal("0")

        if coo_status == CooStatus.MISSING:
            diff = None
            diff_status = DiffStatus.MISSING_ORIGIN
        else:
            diff = declared - expected
            threshold = expected * (1 - self.config.tolerance)
            diff_status = DiffStatus.OK if declared >= threshold else DiffStatus.BAD

        return BatchCalculationResult(
            item_id=item.item_id,
            expected_coo=expected_coo,
            coo_status=coo_status,
            calculated_cost=expected,
            declared_shipping=declared,
            diff=diff,
            diff_status=diff_status,
            result=result,
        )
