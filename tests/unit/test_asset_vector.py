"""Tests for AssetVector and the dimension enums."""

from decimal import Decimal

import pytest

from bullion_kernel.domain.values import (
    AssetVector,
    Dimension,
    Direction,
    MetalRestriction,
    MetalType,
)


class TestConstruction:
    def test_defaults_to_zero(self):
        v = AssetVector()
        assert v.is_zero
        assert v == AssetVector.zero()

    def test_coerces_int_and_str(self):
        v = AssetVector(gold=1, silver="2.5", cash=Decimal("3"))
        assert v.gold == Decimal("1")
        assert v.silver == Decimal("2.5")
        assert isinstance(v.cash, Decimal)

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            AssetVector(gold=1.5)

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError):
            AssetVector(cash=Decimal("NaN"))

    def test_rejects_garbage_string(self):
        with pytest.raises(ValueError):
            AssetVector(silver="ten grams")

    def test_is_immutable(self):
        v = AssetVector(gold=1)
        with pytest.raises(AttributeError):
            v.gold = Decimal("2")

    def test_of_metal(self):
        assert AssetVector.of_metal(MetalType.GOLD, Decimal("4")) == AssetVector(gold=4)
        assert AssetVector.of_metal(MetalType.SILVER, Decimal("4")) == AssetVector(silver=4)


class TestArithmetic:
    def test_add_sub_neg(self):
        a = AssetVector(gold="9.160", cash="500")
        b = AssetVector(gold="5", silver="1", cash="100")
        assert a + b == AssetVector(gold="14.160", silver="1", cash="600")
        assert a - b == AssetVector(gold="4.160", silver="-1", cash="400")
        assert -a == AssetVector(gold="-9.160", cash="-500")

    def test_scaled_by_direction_sign(self):
        v = AssetVector(gold="2", cash="10")
        assert v.scaled(Direction.LEND.sign) == -v
        assert v.scaled(Direction.BORROW.sign) == v

    def test_clamp_at_zero(self):
        v = AssetVector(gold="-0.004", silver="3", cash="-1")
        assert v.clamp_at_zero() == AssetVector(silver="3")

    def test_rounded_half_up(self):
        v = AssetVector(gold="1.2345", silver="0.0005", cash="10.005")
        assert v.rounded() == AssetVector(gold="1.235", silver="0.001", cash="10.01")

    def test_with_metal_moved(self):
        v = AssetVector(gold="4", silver="1", cash="7")
        moved = v.with_metal_moved(MetalType.GOLD, MetalType.SILVER)
        assert moved == AssetVector(silver="5", cash="7")
        assert v.with_metal_moved(MetalType.GOLD, MetalType.GOLD) is v

    def test_within_tolerance(self):
        tol = AssetVector(gold="0.005", silver="0.005", cash="1.00")
        assert AssetVector(gold="-0.005", cash="0.99").within(tol)
        assert not AssetVector(silver="0.006").within(tol)

    def test_get_and_items(self):
        v = AssetVector(gold=1, silver=2, cash=3)
        assert v.get(Dimension.SILVER) == 2
        assert v.metal(MetalType.GOLD) == 1
        assert [d for d, _ in v.items()] == [Dimension.GOLD, Dimension.SILVER, Dimension.CASH]

    def test_to_dict_uses_strings(self):
        assert AssetVector(gold="1.500").to_dict() == {"gold": "1.500", "silver": "0", "cash": "0"}


class TestEnums:
    @pytest.mark.parametrize(
        "restriction, metal, allowed",
        [
            (MetalRestriction.BOTH, MetalType.GOLD, True),
            (MetalRestriction.BOTH, MetalType.SILVER, True),
            (MetalRestriction.GOLD, MetalType.SILVER, False),
            (MetalRestriction.SILVER, MetalType.SILVER, True),
            (MetalRestriction.SILVER, MetalType.GOLD, False),
        ],
    )
    def test_restriction_allows(self, restriction, metal, allowed):
        assert restriction.allows(metal) is allowed

    def test_default_metal(self):
        assert MetalRestriction.SILVER.default_metal is MetalType.SILVER
        assert MetalRestriction.BOTH.default_metal is MetalType.GOLD

    def test_direction_signs(self):
        assert Direction.BORROW.sign == 1
        assert Direction.LEND.sign == -1
