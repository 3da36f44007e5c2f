"""Postage, insurance and US duty calculation for Postage Auditor."""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from .models import (
    CalculationBreakdown,
    CalculationInputs,
    CalculationResult,
    ZoneCalculationResult,
)
from .reference import (
    USA_ZONE,
    WEIGHT_BAND_ORDER,
    ZONE_ORDER,
    ReferenceTables,
    ZoneDefinition,
    default_tables,
)

CENT = Decimal("0.01")


class CalculationInputError(ValueError):
    """Raised for an unknown zone or weight band."""

    pass


def round2(value: Decimal) -> Decimal:
    """Round half away from zero to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def weight_band_for_grams(weight_grams: int) -> str:
    """Map a parcel weight to its weight band name."""
    if weight_grams < 250:
        return "XSmall"
    if weight_grams < 500:
        return "Small"
    if weight_grams < 1000:
        return "Medium"
    if weight_grams < 1500:
        return "Large"
    return "XLarge"


class ShippingCalculator:
    """Calculates expected postage from a snapshot of reference tables.

    Every method is a pure function of its arguments and ``tables``.
    """

    def __init__(self, tables: ReferenceTables | None = None) -> None:
        """Initialize with reference tables (static defaults if omitted)."""
        self.tables = tables or default_tables()

    def get_zone(self, zone: str) -> ZoneDefinition:
        """Look up a zone by id ("3-USA & Canada") or number ("3")."""
        zones = self.tables.zones
        if zone in zones:
            return zones[zone]
        for zone_id, definition in zones.items():
            if zone_id.split("-", 1)[0] == zone:
                return definition
        raise CalculationInputError(f"unknown zone: {zone}")

    # ==================== Components ====================

    def base_postage(self, zone: str, weight_band: str, discount_band: int = 0) -> Decimal:
        """Base x (1 + handling) x (1 - discount), rounded once at the end."""
        zone_data = self.get_zone(zone)
        band = zone_data.weight_bands.get(weight_band)
        if band is None:
            raise CalculationInputError(f"unknown weight band: {weight_band}")

        discount = zone_data.discount_bands.get(discount_band, Decimal("0"))
        price = band.base_price * (1 + zone_data.handling_fee_rate) * (1 - discount)
        return round2(price)

    def extra_cover(
        self,
        item_value: Decimal,
        discount_band: int = 0,
        ceil_units: bool = False,
    ) -> Decimal:
        """Insurance cost per $100 of value above the threshold.

        ``ceil_units`` charges every started $100, which is how listing-level
        estimates are priced; the interactive calculator uses the continuous
        unit count.
        """
        terms = self.tables.extra_cover
        if item_value <= terms.threshold:
            return Decimal("0.00")

        discount = terms.discount_bands.get(discount_band, Decimal("0"))
        units = (item_value - terms.threshold) / 100
        if ceil_units:
            units = units.to_integral_value(rounding=ROUND_CEILING)
        return round2(units * terms.price_per_100 * (1 - discount))

    def tariff_rate(self, country_of_origin: str) -> Decimal:
        return self.tables.tariffs.rate_for(country_of_origin)

    def tariff_duty(self, item_value: Decimal, country_of_origin: str) -> Decimal:
        return round2(item_value * self.tariff_rate(country_of_origin))

    def processing_fee(self, tariff_duty: Decimal) -> Decimal:
        terms = self.tables.processing_fee
        return round2(tariff_duty * terms.percent + terms.flat_fee)

    def extra_cover_warning(self, item_value: Decimal, has_extra_cover: bool) -> bool:
        """True when the item is valuable enough to need cover but has none."""
        return item_value >= self.tables.extra_cover.warning_threshold and not has_extra_cover

    def brand_country(self, brand: str) -> str:
        """Default country for a brand, or the table default."""
        return self.tables.brand_countries.get(brand) or self.tables.tariffs.default_country

    def resolve_country_of_origin(self, brand: str = "", override: str = "") -> str:
        """Override, else brand mapping, else table default."""
        if override:
            return override
        return self.brand_country(brand)

    # ==================== Full calculations ====================

    def calculate_usa_shipping(
        self,
        item_value: Decimal,
        weight_band: str,
        brand: str = "",
        country_of_origin: str = "",
        include_extra_cover: bool = False,
        discount_band: int = 0,
        ceil_extra_cover: bool = False,
    ) -> CalculationResult:
        """Calculate postage plus US duty for the USA & Canada zone."""
        coo = self.resolve_country_of_origin(brand, country_of_origin)
        result = self._calculate_zone(
            self.get_zone(USA_ZONE),
            item_value=item_value,
            weight_band=weight_band,
            brand=brand,
            coo=coo,
            include_extra_cover=include_extra_cover,
            discount_band=discount_band,
            ceil_extra_cover=ceil_extra_cover,
            has_tariffs=True,
        )
        return CalculationResult(
            inputs=result.inputs,
            breakdown=result.breakdown,
            total=result.total,
            extra_cover_recommended=result.extra_cover_recommended,
        )

    def calculate_all_zones(
        self,
        item_value: Decimal,
        weight_band: str,
        brand: str = "",
        country_of_origin: str = "",
        include_extra_cover: bool = False,
        discount_band: int = 0,
    ) -> list[ZoneCalculationResult]:
        """Calculate every configured zone in display order.

        Only the USA zone attracts duty; the country of origin is resolved
        once and shared by all zones.
        """
        coo = self.resolve_country_of_origin(brand, country_of_origin)
        results = []
        for zone_id in ZONE_ORDER:
            zone = self.tables.zones.get(zone_id)
            if zone is None:
                continue
            try:
                results.append(
                    self._calculate_zone(
                        zone,
                        item_value=item_value,
                        weight_band=weight_band,
                        brand=brand,
                        coo=coo,
                        include_extra_cover=include_extra_cover,
                        discount_band=discount_band,
                        ceil_extra_cover=False,
                        has_tariffs=zone_id == USA_ZONE,
                    )
                )
            except CalculationInputError as e:
                raise CalculationInputError(f"zone {zone_id}: {e}") from e
        return results

    def _calculate_zone(
        self,
        zone: ZoneDefinition,
        item_value: Decimal,
        weight_band: str,
        brand: str,
        coo: str,
        include_extra_cover: bool,
        discount_band: int,
        ceil_extra_cover: bool,
        has_tariffs: bool,
    ) -> ZoneCalculationResult:
        base_postage = self.base_postage(zone.zone_id, weight_band, discount_band)
        extra_cover = Decimal("0.00")
        if include_extra_cover:
            extra_cover = self.extra_cover(item_value, discount_band, ceil_units=ceil_extra_cover)
        postage_subtotal = base_postage + extra_cover

        tariff_rate = Decimal("0")
        tariff_duty = processing_fee = Decimal("0.00")
        if has_tariffs:
            tariff_rate = self.tariff_rate(coo)
            tariff_duty = self.tariff_duty(item_value, coo)
            processing_fee = self.processing_fee(tariff_duty)
        duty_subtotal = tariff_duty + processing_fee

        return ZoneCalculationResult(
            inputs=CalculationInputs(
                item_value=item_value,
                weight_band=weight_band,
                brand=brand,
                country_of_origin=coo,
                tariff_rate=tariff_rate,
                include_extra_cover=include_extra_cover,
                discount_band=discount_band,
                zone=zone.zone_id,
            ),
            breakdown=CalculationBreakdown(
                base_postage=base_postage,
                extra_cover=extra_cover,
                postage_subtotal=postage_subtotal,
                tariff_duty=tariff_duty,
                processing_fee=processing_fee,
                duty_subtotal=duty_subtotal,
            ),
            total=round2(postage_subtotal + duty_subtotal),
            extra_cover_recommended=self.extra_cover_warning(item_value, include_extra_cover),
            zone_id=zone.zone_id,
            zone_name=zone.name,
            has_tariffs=has_tariffs,
        )

    # ==================== Listings ====================

    def weight_bands(self, zone: str = USA_ZONE) -> list[dict]:
        """Weight bands of a zone in display order."""
        zone_data = self.get_zone(zone)
        return [
            {
                "key": key,
                "label": zone_data.weight_bands[key].label,
                "maxWeight": zone_data.weight_bands[key].max_weight_grams,
                "basePrice": float(zone_data.weight_bands[key].base_price),
            }
            for key in WEIGHT_BAND_ORDER
            if key in zone_data.weight_bands
        ]

    def tariff_countries(self) -> list[dict]:
        """Countries with a tariff rate, sorted by name."""
        return [
            {
                "country": country,
                "rate": float(rate),
                "ratePercent": int((rate * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            }
            for country, rate in sorted(self.tables.tariffs.rates.items())
        ]
