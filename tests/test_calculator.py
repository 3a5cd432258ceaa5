from decimal import Decimal

import pytest

from common.exceptions import InvalidAttribute
from modules.pricing.calculator import (
    MetalType, TROY_OUNCE_GRAMS,
    apply_charges, compute_base_value, purity_fraction, purity_label, purity_tiers,
    spot_per_ounce_to_gram,
)


class TestPurity:

    @pytest.mark.parametrize("tier,fraction", [
        (24, "0.999"), (22, "0.917"), (18, "0.75"), (14, "0.583"), (10, "0.417"),
    ])
    def test_gold_karats(self, tier, fraction):
        assert purity_fraction(MetalType.GOLD, tier) == Decimal(fraction)

    def test_silver_and_platinum_fineness(self):
        assert purity_fraction("silver", 925) == Decimal("0.925")
        assert purity_fraction("platinum", 950) == Decimal("0.95")

    def test_unknown_tier_rejected(self):
        with pytest.raises(InvalidAttribute) as exc:
            purity_fraction("gold", 21)
        assert exc.value.field == "metal_purity"

    @pytest.mark.parametrize("tier", [22.7, "22.5", Decimal("18.1"), "abc", None])
    def test_fractional_or_bad_tier_rejected(self, tier):
        with pytest.raises(InvalidAttribute) as exc:
            purity_fraction("gold", tier)
        assert exc.value.field == "metal_purity"

    def test_integral_tier_forms_accepted(self):
        assert purity_fraction("gold", 22.0) == Decimal("0.917")
        assert purity_fraction("gold", "22") == Decimal("0.917")

    def test_unknown_metal_rejected(self):
        with pytest.raises(InvalidAttribute) as exc:
            purity_fraction("copper", 22)
        assert exc.value.field == "metal_type"

    def test_tiers_sorted_highest_first(self):
        assert purity_tiers("gold") == [24, 22, 18, 14, 10]
        assert purity_tiers("copper") == []

    def test_labels(self):
        assert purity_label("gold", 22) == "22K"
        assert purity_label("silver", 925) == "925"


class TestBaseValue:

    def test_ring(self):
        assert compute_base_value(Decimal("5.5"), Decimal("0.917"), Decimal("6000")) == Decimal("30261.0000")

    def test_zero_rate_is_allowed(self):
        assert compute_base_value("2", "0.75", "0") == 0

    @pytest.mark.parametrize("weight", [0, -1, None, "abc"])
    def test_weight_must_be_positive(self, weight):
        with pytest.raises(InvalidAttribute):
            compute_base_value(weight, "0.917", "6000")

    @pytest.mark.parametrize("fraction", [0, "1.01", -0.5])
    def test_fraction_bounds(self, fraction):
        with pytest.raises(InvalidAttribute):
            compute_base_value("1", fraction, "6000")

    def test_negative_rate(self):
        with pytest.raises(InvalidAttribute):
            compute_base_value("1", "0.917", "-1")


class TestCharges:

    def test_making_then_tax(self):
        result = apply_charges(Decimal("30261"), Decimal("15"), Decimal("3"))
        assert result.making_charge == Decimal("4539.15")
        assert result.taxable_amount == Decimal("34800.15")
        assert result.tax_amount == Decimal("1044.0045")
        assert result.loaded_price == Decimal("35844.1545")

    def test_zero_percentages(self):
        result = apply_charges("100", "0", "0")
        assert result.loaded_price == Decimal("100")

    @pytest.mark.parametrize("making,tax", [("-1", "3"), ("15", "101"), ("x", "3")])
    def test_percent_out_of_range(self, making, tax):
        with pytest.raises(InvalidAttribute):
            apply_charges("100", making, tax)

    def test_negative_base(self):
        with pytest.raises(InvalidAttribute):
            apply_charges("-5", "15", "3")


def test_spot_conversion():
    assert spot_per_ounce_to_gram(TROY_OUNCE_GRAMS * 6000) == Decimal("6000")
