"""Tests for pure-weight derivation and obligation vector construction."""

from decimal import Decimal

import pytest

from bullion_kernel.domain.purity import (
    CalcMode,
    ObligationInputs,
    build_obligation_vector,
    compute_pure_weight,
    describe_obligation,
)
from bullion_kernel.domain.values import AssetVector, MetalType
from bullion_kernel.exceptions import InvalidVectorError, ValidationError


class TestComputePureWeight:
    def test_touch_mode(self):
        assert compute_pure_weight(Decimal("10"), Decimal("91.6"), CalcMode.TOUCH) == Decimal("9.160")

    def test_wastage_mode(self):
        assert compute_pure_weight(Decimal("10"), Decimal("8"), CalcMode.WASTAGE) == Decimal("10.800")

    def test_rounds_to_three_places(self):
        assert compute_pure_weight(Decimal("3.333"), Decimal("91.6"), CalcMode.TOUCH) == Decimal("3.053")

    def test_respects_places(self):
        assert compute_pure_weight(
            Decimal("3.333"), Decimal("91.6"), CalcMode.TOUCH, places=2
        ) == Decimal("3.05")

    def test_touch_above_hundred_rejected(self):
        with pytest.raises(ValidationError) as exc:
            compute_pure_weight(Decimal("10"), Decimal("100.1"), CalcMode.TOUCH)
        assert exc.value.field == "wastage_percent"

    def test_wastage_above_hundred_allowed(self):
        assert compute_pure_weight(Decimal("1"), Decimal("150"), CalcMode.WASTAGE) == Decimal("2.500")

    @pytest.mark.parametrize("gross, pct", [("-1", "91.6"), ("1", "-5")])
    def test_negative_inputs_rejected(self, gross, pct):
        with pytest.raises(ValidationError):
            compute_pure_weight(Decimal(gross), Decimal(pct), CalcMode.TOUCH)


class TestBuildObligationVector:
    def _inputs(self, **overrides):
        base = dict(
            gross_weight=Decimal("10"),
            wastage_percent=Decimal("91.6"),
            calc_mode=CalcMode.TOUCH,
            metal_type=MetalType.GOLD,
        )
        base.update(overrides)
        return ObligationInputs(**base)

    def test_gold_with_making_charge(self):
        v = build_obligation_vector(self._inputs(making_charge=Decimal("500")))
        assert v == AssetVector(gold="9.160", cash="500.00")

    def test_silver_goes_to_silver_dimension(self):
        v = build_obligation_vector(self._inputs(metal_type=MetalType.SILVER))
        assert v == AssetVector(silver="9.160")

    def test_cash_only(self):
        v = build_obligation_vector(
            self._inputs(gross_weight=Decimal("0"), manual_cash=Decimal("1000"))
        )
        assert v == AssetVector(cash="1000.00")

    def test_making_and_manual_cash_sum(self):
        v = build_obligation_vector(
            self._inputs(making_charge=Decimal("250.255"), manual_cash=Decimal("100"))
        )
        assert v.cash == Decimal("350.26")

    def test_empty_obligation_rejected(self):
        with pytest.raises(InvalidVectorError):
            build_obligation_vector(self._inputs(gross_weight=Decimal("0")))

    def test_zero_touch_on_positive_gross_rejected(self):
        with pytest.raises(InvalidVectorError) as exc:
            build_obligation_vector(self._inputs(wastage_percent=Decimal("0")))
        assert exc.value.dimension == "GOLD"

    def test_negative_making_charge_rejected(self):
        with pytest.raises(ValidationError) as exc:
            build_obligation_vector(self._inputs(making_charge=Decimal("-1")))
        assert exc.value.field == "making_charge"


class TestDescribeObligation:
    def test_item_and_cash(self):
        inputs = ObligationInputs(
            gross_weight=Decimal("10"),
            wastage_percent=Decimal("91.6"),
            calc_mode=CalcMode.TOUCH,
            metal_type=MetalType.GOLD,
            making_charge=Decimal("500"),
        )
        vector = build_obligation_vector(inputs)
        assert describe_obligation(inputs, vector) == "Item (10.000g Au) + Cash 500.00"

    def test_silver_symbol(self):
        inputs = ObligationInputs(
            gross_weight=Decimal("2"),
            wastage_percent=Decimal("5"),
            calc_mode=CalcMode.WASTAGE,
            metal_type=MetalType.SILVER,
        )
        assert describe_obligation(inputs, build_obligation_vector(inputs)) == "Item (2.000g Ag)"
