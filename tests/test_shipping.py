"""Tests for the postage and duty calculator."""

from decimal import Decimal

import pytest

from postage_auditor.core.reference import build_tables
from postage_auditor.core.shipping import (
    CalculationInputError,
    ShippingCalculator,
    round2,
    weight_band_for_grams,
)


class TestBasePostage:
    """Tests for zone base postage."""

    def test_usa_medium_no_discount(self, calculator: ShippingCalculator) -> None:
        assert calculator.base_postage("3", "Medium", 0) == Decimal("43.04")

    def test_full_zone_id(self, calculator: ShippingCalculator) -> None:
        assert calculator.base_postage("3-USA & Canada", "Medium", 0) == Decimal("43.04")

    def test_discount_band(self, calculator: ShippingCalculator) -> None:
        # 42.20 x 1.02 x 0.80
        assert calculator.base_postage("3", "Medium", 3) == Decimal("34.44")

    def test_new_zealand_has_own_discounts(self, calculator: ShippingCalculator) -> None:
        # 26.40 x 1.02 x 0.75
        assert calculator.base_postage("1", "Medium", 3) == Decimal("20.20")

    def test_unknown_discount_band_means_no_discount(self, calculator: ShippingCalculator) -> None:
        assert calculator.base_postage("3", "Medium", 9) == Decimal("43.04")

    def test_unknown_zone(self, calculator: ShippingCalculator) -> None:
        with pytest.raises(CalculationInputError):
            calculator.base_postage("7", "Medium", 0)

    def test_unknown_weight_band(self, calculator: ShippingCalculator) -> None:
        with pytest.raises(CalculationInputError):
            calculator.base_postage("3", "Huge", 0)

    def test_input_error_is_value_error(self) -> None:
        assert issubclass(CalculationInputError, ValueError)


class TestExtraCover:
    """Tests for Extra Cover pricing."""

    def test_at_threshold_is_free(self, calculator: ShippingCalculator) -> None:
        assert calculator.extra_cover(Decimal("100"), 0) == Decimal("0.00")

    def test_continuous_units(self, calculator: ShippingCalculator) -> None:
        assert calculator.extra_cover(Decimal("150"), 0) == Decimal("2.00")
        assert calculator.extra_cover(Decimal("300"), 0) == Decimal("8.00")

    def test_ceiling_units(self, calculator: ShippingCalculator) -> None:
        assert calculator.extra_cover(Decimal("150"), 0, ceil_units=True) == Decimal("4.00")
        assert calculator.extra_cover(Decimal("100.01"), 0, ceil_units=True) == Decimal("4.00")
        assert calculator.extra_cover(Decimal("300"), 0, ceil_units=True) == Decimal("8.00")

    def test_discounted_bands(self, calculator: ShippingCalculator) -> None:
        assert calculator.extra_cover(Decimal("150"), 3) == Decimal("1.20")
        assert calculator.extra_cover(Decimal("150"), 3, ceil_units=True) == Decimal("2.40")

    def test_warning(self, calculator: ShippingCalculator) -> None:
        assert calculator.extra_cover_warning(Decimal("500"), False) is True
        assert calculator.extra_cover_warning(Decimal("200"), False) is False
        assert calculator.extra_cover_warning(Decimal("250"), False) is True
        assert calculator.extra_cover_warning(Decimal("500"), True) is False


class TestDuty:
    """Tests for tariff and processing fee."""

    def test_tariff_duty(self, calculator: ShippingCalculator) -> None:
        assert calculator.tariff_duty(Decimal("125"), "India") == Decimal("62.50")

    def test_unknown_country_uses_default_rate(self, calculator: ShippingCalculator) -> None:
        assert calculator.tariff_rate("Atlantis") == Decimal("0.20")

    def test_processing_fee(self, calculator: ShippingCalculator) -> None:
        assert calculator.processing_fee(Decimal("62.50")) == Decimal("7.94")
        assert calculator.processing_fee(Decimal("0")) == Decimal("1.69")

    def test_round_half_up(self) -> None:
        assert round2(Decimal("1.005")) == Decimal("1.01")
        assert round2(Decimal("43.044")) == Decimal("43.04")


class TestCountryOfOrigin:
    """Tests for COO resolution."""

    def test_override_wins(self, calculator: ShippingCalculator) -> None:
        assert calculator.resolve_country_of_origin("Camilla Franks", "Japan") == "Japan"

    def test_brand_default(self, calculator: ShippingCalculator) -> None:
        assert calculator.resolve_country_of_origin("Camilla Franks", "") == "India"

    def test_table_default(self, calculator: ShippingCalculator) -> None:
        assert calculator.resolve_country_of_origin("No Such Brand", "") == "China"

    def test_edited_tables(self) -> None:
        tables = build_tables({"China": Decimal("0.30")}, {"Acme": "China"})
        calc = ShippingCalculator(tables)
        assert calc.tariff_duty(Decimal("100"), calc.resolve_country_of_origin("Acme")) == Decimal("30.00")


class TestUsaShipping:
    """Tests for the full USA calculation."""

    def test_india_no_cover(self, calculator: ShippingCalculator) -> None:
        result = calculator.calculate_usa_shipping(
            item_value=Decimal("125"),
            weight_band="Medium",
            country_of_origin="India",
            include_extra_cover=False,
        )
        b = result.breakdown
        assert b.base_postage == Decimal("43.04")
        assert b.extra_cover == Decimal("0.00")
        assert b.tariff_duty == Decimal("62.50")
        assert b.processing_fee == Decimal("7.94")
        assert result.total == Decimal("113.48")
        assert result.extra_cover_recommended is False
        assert result.inputs.tariff_rate == Decimal("0.50")

    def test_china_large_with_cover(self, calculator: ShippingCalculator) -> None:
        result = calculator.calculate_usa_shipping(
            item_value=Decimal("300"),
            weight_band="Large",
            country_of_origin="China",
            include_extra_cover=True,
        )
        b = result.breakdown
        assert b.base_postage == Decimal("56.66")
        assert b.extra_cover == Decimal("8.00")
        assert b.tariff_duty == Decimal("60.00")
        assert b.processing_fee == Decimal("7.69")
        assert result.total == Decimal("132.35")
        assert result.extra_cover_recommended is False

    def test_total_is_sum_of_rounded_parts(self, calculator: ShippingCalculator) -> None:
        result = calculator.calculate_usa_shipping(Decimal("187.37"), "Small", include_extra_cover=True)
        b = result.breakdown
        assert b.postage_subtotal == b.base_postage + b.extra_cover
        assert b.duty_subtotal == b.tariff_duty + b.processing_fee
        assert result.total == b.postage_subtotal + b.duty_subtotal

    def test_brand_resolves_country(self, calculator: ShippingCalculator) -> None:
        result = calculator.calculate_usa_shipping(Decimal("125"), "Medium", brand="Camilla Franks")
        assert result.inputs.country_of_origin == "India"
        assert result.total == Decimal("113.48")

    def test_high_value_without_cover_warns(self, calculator: ShippingCalculator) -> None:
        result = calculator.calculate_usa_shipping(Decimal("500"), "Medium")
        assert result.extra_cover_recommended is True
        assert result.to_dict()["warnings"]["extraCoverRecommended"] is True

    def test_idempotent(self, calculator: ShippingCalculator) -> None:
        first = calculator.calculate_usa_shipping(Decimal("212.10"), "XLarge", "Aje", "", True, 2)
        second = calculator.calculate_usa_shipping(Decimal("212.10"), "XLarge", "Aje", "", True, 2)
        assert first.to_dict() == second.to_dict()

    def test_result_dict_shape(self, calculator: ShippingCalculator) -> None:
        data = calculator.calculate_usa_shipping(Decimal("125"), "Medium", country_of_origin="India").to_dict()
        assert data["totalShipping"] == 113.48
        assert data["breakdown"]["ausPostShipping"] == 43.04
        assert data["breakdown"]["zonosFees"] == 7.94
        assert data["inputs"]["countryOfOrigin"] == "India"


class TestAllZones:
    """Tests for the multi-zone calculation."""

    def test_zone_order_and_tariffs(self, calculator: ShippingCalculator) -> None:
        results = calculator.calculate_all_zones(Decimal("125"), "Medium", country_of_origin="India")
        assert [r.zone_id for r in results] == ["1-New Zealand", "3-USA & Canada", "4-UK & Ireland"]
        assert [r.has_tariffs for r in results] == [False, True, False]

    def test_non_usa_zones_have_no_duty(self, calculator: ShippingCalculator) -> None:
        nz, usa, uk = calculator.calculate_all_zones(Decimal("125"), "Medium", country_of_origin="India")
        assert nz.breakdown.tariff_duty == Decimal("0.00")
        assert nz.breakdown.processing_fee == Decimal("0.00")
        assert nz.total == Decimal("26.93")
        assert uk.total == Decimal("49.27")
        assert usa.total == Decimal("113.48")

    def test_zone_names(self, calculator: ShippingCalculator) -> None:
        results = calculator.calculate_all_zones(Decimal("50"), "Small")
        assert [r.zone_name for r in results] == ["New Zealand", "USA & Canada", "UK & Ireland"]

    def test_unknown_band_fails(self, calculator: ShippingCalculator) -> None:
        with pytest.raises(CalculationInputError):
            calculator.calculate_all_zones(Decimal("50"), "Tiny")


class TestListings:
    """Tests for weight band and tariff listings."""

    @pytest.mark.parametrize(
        "grams,band",
        [(0, "XSmall"), (249, "XSmall"), (250, "Small"), (999, "Medium"), (1000, "Large"), (1500, "XLarge")],
    )
    def test_weight_band_for_grams(self, grams: int, band: str) -> None:
        assert weight_band_for_grams(grams) == band

    def test_weight_bands(self, calculator: ShippingCalculator) -> None:
        bands = calculator.weight_bands()
        assert [b["key"] for b in bands] == ["XSmall", "Small", "Medium", "Large", "XLarge"]
        assert bands[2]["basePrice"] == 42.20

    def test_tariff_countries(self, calculator: ShippingCalculator) -> None:
        countries = calculator.tariff_countries()
        names = [c["country"] for c in countries]
        assert names == sorted(names)
        india = next(c for c in countries if c["country"] == "India")
        assert india["ratePercent"] == 50
