"""Core data models for Postage Auditor."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class EnrichmentStatus(str, Enum):
    """Outcome of enriching a single listing."""

    RESOLVED = "resolved"
    FAILED = "failed"


class CooStatus(str, Enum):
    """How a listing's country of origin compares to its brand default."""

    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING = "missing"


class DiffStatus(str, Enum):
    """Classification of declared shipping against expected postage."""

    OK = "ok"
    BAD = "bad"
    MISSING_ORIGIN = "missingOrigin"


@dataclass(frozen=True)
class Money:
    """An amount in a given currency."""

    amount: Decimal
    currency: str = "AUD"

    @classmethod
    def parse(cls, value: str | None, currency: str | None) -> "Money | None":
        """Parse an upstream amount string, returning None when unusable."""
        if value is None or not str(value).strip():
            return None
        try:
            amount = Decimal(str(value).strip())
        except ArithmeticError:
            return None
        if not amount.is_finite():
            return None
        return cls(amount=amount, currency=(currency or "AUD").strip() or "AUD")

    def to_dict(self) -> dict[str, Any]:
        return {"value": str(self.amount), "currency": self.currency}


@dataclass
class EnrichedItemRecord:
    """Attributes resolved for one listing that the bulk feed lacks.

    An empty ``brand`` or ``country_of_origin`` means the listing was read
    successfully but carries no such value.
    """

    item_id: str
    brand: str = ""
    country_of_origin: str = ""
    shipping_cost: Money | None = None
    images: list[str] = field(default_factory=list)
    resolved_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "brand": self.brand,
            "countryOfOrigin": self.country_of_origin,
            "shippingCost": str(self.shipping_cost.amount) if self.shipping_cost else "",
            "shippingCurrency": self.shipping_cost.currency if self.shipping_cost else "",
            "images": list(self.images),
            "enrichedAt": self.resolved_at.isoformat(),
        }


@dataclass
class EnrichmentResult:
    """Per-item result of an enrichment call: a record or an error marker."""

    item_id: str
    status: EnrichmentStatus
    record: EnrichedItemRecord | None = None
    error: str = ""
    from_cache: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.status == EnrichmentStatus.RESOLVED

    @classmethod
    def resolved(cls, record: EnrichedItemRecord, from_cache: bool = False) -> "EnrichmentResult":
        return cls(
            item_id=record.item_id,
            status=EnrichmentStatus.RESOLVED,
            record=record,
            from_cache=from_cache,
        )

    @classmethod
    def failed(cls, item_id: str, error: str) -> "EnrichmentResult":
        return cls(item_id=item_id, status=EnrichmentStatus.FAILED, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "cached": self.from_cache}
        if self.record is not None:
            data.update(self.record.to_dict())
        else:
            data["itemId"] = self.item_id
            data["error"] = self.error
        return data


@dataclass
class CalculationInputs:
    """Echo of the resolved parameters behind a calculation."""

    item_value: Decimal
    weight_band: str
    brand: str
    country_of_origin: str
    tariff_rate: Decimal
    include_extra_cover: bool
    discount_band: int
    zone: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemValueAUD": float(self.item_value),
            "weightBand": self.weight_band,
            "brandName": self.brand,
            "countryOfOrigin": self.country_of_origin,
            "tariffRate": float(self.tariff_rate),
            "includeExtraCover": self.include_extra_cover,
            "discountBand": self.discount_band,
            "zone": self.zone,
        }


@dataclass
class CalculationBreakdown:
    """Individual cost components, each rounded to cents."""

    base_postage: Decimal = Decimal("0")
    extra_cover: Decimal = Decimal("0")
    postage_subtotal: Decimal = Decimal("0")
    tariff_duty: Decimal = Decimal("0")
    processing_fee: Decimal = Decimal("0")
    duty_subtotal: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, float]:
        return {
            "ausPostShipping": float(self.base_postage),
            "extraCover": float(self.extra_cover),
            "shippingSubtotal": float(self.postage_subtotal),
            "tariffDuties": float(self.tariff_duty),
            "zonosFees": float(self.processing_fee),
            "dutiesSubtotal": float(self.duty_subtotal),
        }


@dataclass
class CalculationResult:
    """Complete postage calculation for one zone."""

    inputs: CalculationInputs
    breakdown: CalculationBreakdown
    total: Decimal
    extra_cover_recommended: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputs": self.inputs.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "totalShipping": float(self.total),
            "warnings": {"extraCoverRecommended": self.extra_cover_recommended},
        }


@dataclass
class ZoneCalculationResult(CalculationResult):
    """Calculation result tagged with its destination zone."""

    zone_id: str = ""
    zone_name: str = ""
    has_tariffs: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "zoneId": self.zone_id,
                "zoneName": self.zone_name,
                "hasTariffs": self.has_tariffs,
            }
        )
        return data


@dataclass
class BatchItem:
    """A listing and its item price as supplied by the caller."""

    item_id: str
    price: Decimal


@dataclass
class BatchCalculationResult:
    """Expected postage for one listing, classified against what it declares."""

    item_id: str
    expected_coo: str
    coo_status: CooStatus
    calculated_cost: Decimal
    declared_shipping: Decimal
    diff: Decimal | None
    diff_status: DiffStatus
    result: CalculationResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "expectedCoo": self.expected_coo,
            "cooStatus": self.coo_status.value,
            "calculatedCost": float(self.calculated_cost),
            "declaredShipping": float(self.declared_shipping),
            "diff": float(self.diff) if self.diff is not None else None,
            "diffStatus": self.diff_status.value,
        }
