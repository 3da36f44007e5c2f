"""Reference tables for postage and duty calculation.

Zone, Extra Cover and processing-fee terms are static. Tariff rates and brand
defaults are seeded from the values here and afterwards live in the database,
where they can be edited between calculations.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class WeightBand:
    """Weight category with its base price in AUD."""

    label: str
    max_weight_grams: int
    base_price: Decimal


@dataclass(frozen=True)
class ZoneDefinition:
    """Australia Post international rates for one destination zone."""

    zone_id: str
    handling_fee_rate: Decimal
    discount_bands: dict[int, Decimal]
    weight_bands: dict[str, WeightBand]

    @property
    def name(self) -> str:
        """Display name, e.g. "1-New Zealand" -> "New Zealand"."""
        prefix, sep, rest = self.zone_id.partition("-")
        return rest if sep and rest else self.zone_id


@dataclass(frozen=True)
class TariffTable:
    """US import tariff rates keyed by country of origin."""

    rates: dict[str, Decimal]
    default_country: str = "China"

    def rate_for(self, country: str) -> Decimal:
        if country in self.rates:
            return self.rates[country]
        return self.rates.get(self.default_country, Decimal("0"))


@dataclass(frozen=True)
class ExtraCoverTerms:
    """Extra Cover (insurance) pricing."""

    price_per_100: Decimal
    threshold: Decimal
    warning_threshold: Decimal
    discount_bands: dict[int, Decimal]


@dataclass(frozen=True)
class ProcessingFeeTerms:
    """Customs clearance fee charged on top of the duty."""

    percent: Decimal
    flat_fee: Decimal


@dataclass(frozen=True)
class ReferenceTables:
    """Snapshot of every table a calculation reads."""

    zones: dict[str, ZoneDefinition]
    tariffs: TariffTable
    brand_countries: dict[str, str]
    extra_cover: ExtraCoverTerms
    processing_fee: ProcessingFeeTerms


USA_ZONE = "3-USA & Canada"

# Display order for multi-zone results
ZONE_ORDER = ("1-New Zealand", USA_ZONE, "4-UK & Ireland")

WEIGHT_BAND_ORDER = ("XSmall", "Small", "Medium", "Large", "XLarge")

DEFAULT_COUNTRY = "China"

_STANDARD_DISCOUNTS = {
    0: Decimal("0"),
    1: Decimal("0.05"),
    2: Decimal("0.15"),
    3: Decimal("0.20"),
    4: Decimal("0.25"),
    5: Decimal("0.30"),
}


def _bands(xsmall: str, small: str, medium: str, large: str, xlarge: str) -> dict[str, WeightBand]:
    return {
        "XSmall": WeightBand("XSmall [< 250g]", 250, Decimal(xsmall)),
        "Small": WeightBand("Small [250 - 500g]", 500, Decimal(small)),
        "Medium": WeightBand("Medium [500 - 1kg]", 1000, Decimal(medium)),
        "Large": WeightBand("Large [1 - 1.5kg]", 1500, Decimal(large)),
        "XLarge": WeightBand("XLarge [1.5kg - 2kg]", 2000, Decimal(xlarge)),
    }


POSTAL_ZONES: dict[str, ZoneDefinition] = {
    USA_ZONE: ZoneDefinition(
        zone_id=USA_ZONE,
        handling_fee_rate=Decimal("0.02"),
        discount_bands=dict(_STANDARD_DISCOUNTS),
        weight_bands=_bands("22.30", "29.00", "42.20", "55.55", "68.85"),
    ),
    "4-UK & Ireland": ZoneDefinition(
        zone_id="4-UK & Ireland",
        handling_fee_rate=Decimal("0.02"),
        discount_bands=dict(_STANDARD_DISCOUNTS),
        weight_bands=_bands("27.50", "34.40", "48.30", "62.15", "76.00"),
    ),
    "1-New Zealand": ZoneDefinition(
        zone_id="1-New Zealand",
        handling_fee_rate=Decimal("0.02"),
        discount_bands={
            0: Decimal("0"),
            1: Decimal("0.05"),
            2: Decimal("0.20"),
            3: Decimal("0.25"),
            4: Decimal("0.30"),
            5: Decimal("0.35"),
        },
        weight_bands=_bands("16.30", "19.65", "26.40", "33.15", "39.90"),
    ),
}

# US IEEPA reciprocal tariff rates
DEFAULT_TARIFF_RATES: dict[str, Decimal] = {
    "China": Decimal("0.20"),
    "Malaysia": Decimal("0.19"),
    "Indonesia": Decimal("0.19"),
    "Vietnam": Decimal("0.20"),
    "Japan": Decimal("0.15"),
    "India": Decimal("0.50"),
    "Mexico": Decimal("0.25"),
    "Australia": Decimal("0.10"),
    "United States": Decimal("0.00"),
}

DEFAULT_BRAND_COUNTRIES: dict[str, str] = {
    "Ada + Lou": "Indonesia",
    "Aje": "China",
    "Arnhem": "Indonesia",
    "Auguste": "China",
    "Blue Illusion": "China",
    "Camilla Franks": "India",
    "Coven & Co": "China",
    "Fillyboo": "Indonesia",
    "Free People": "China",
    "Ghanda": "Australia",
    "Innika Choo [Bali]": "Indonesia",
    "Innika Choo [China]": "China",
    "Innika Choo [India]": "India",
    "Jen's Pirate Booty": "Mexico",
    "Kivari": "China",
    "Kip & Co": "India",
    "Lack of Color": "China",
    "Lele Sadoughi": "United States",
    "Love Bonfire": "China",
    "LoveShackFancy": "China",
    "Nine Lives Bazaar": "China",
    "Reebok x Maison": "Vietnam",
    "Sabbi": "Australia",
    "Selkie": "China",
    "Spell": "China",
    "Tree of Life": "India",
    "Wildfox": "China",
}

EXTRA_COVER = ExtraCoverTerms(
    price_per_100=Decimal("4.00"),
    threshold=Decimal("100"),
    warning_threshold=Decimal("250"),
    discount_bands={0: Decimal("0"), **{band: Decimal("0.40") for band in range(1, 6)}},
)

PROCESSING_FEE = ProcessingFeeTerms(percent=Decimal("0.10"), flat_fee=Decimal("1.69"))


def default_tables() -> ReferenceTables:
    """Reference tables built purely from the static defaults."""
    return build_tables(DEFAULT_TARIFF_RATES, DEFAULT_BRAND_COUNTRIES)


def build_tables(
    tariff_rates: dict[str, Decimal],
    brand_countries: dict[str, str],
    default_country: str = DEFAULT_COUNTRY,
) -> ReferenceTables:
    """Combine editable tariff/brand tables with the static terms."""
    return ReferenceTables(
        zones=POSTAL_ZONES,
        tariffs=TariffTable(rates=dict(tariff_rates), default_country=default_country),
        brand_countries=dict(brand_countries),
        extra_cover=EXTRA_COVER,
        processing_fee=PROCESSING_FEE,
    )
