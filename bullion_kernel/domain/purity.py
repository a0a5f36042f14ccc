"""
Purity -- pure weight derivation and obligation vector construction.

Two calculation modes are in use at the counter:

    TOUCH    pure = gross * touch% / 100          (touch is the purity)
    WASTAGE  pure = gross * (1 + wastage% / 100)  (wastage is a surcharge)

Both are selectable per obligation; the account carries a default.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from bullion_kernel.db.types import round_cash, round_weight
from bullion_kernel.domain.values import ZERO, AssetVector, Dimension, MetalType
from bullion_kernel.exceptions import InvalidVectorError, ValidationError

HUNDRED = Decimal("100")


class CalcMode(str, Enum):
    TOUCH = "TOUCH"
    WASTAGE = "WASTAGE"


def compute_pure_weight(
    gross_weight: Decimal,
    percent: Decimal,
    mode: CalcMode,
    places: int = 3,
) -> Decimal:
    """
    Derive the refined-equivalent weight of ``gross_weight``.

    Raises:
        ValidationError: On a negative gross weight or percentage, or a
            touch above 100%.
    """
    if gross_weight < ZERO:
        raise ValidationError("gross_weight", f"must not be negative, got {gross_weight}")
    if percent < ZERO:
        raise ValidationError("wastage_percent", f"must not be negative, got {percent}")

    if mode is CalcMode.TOUCH:
        if percent > HUNDRED:
            raise ValidationError("wastage_percent", f"touch cannot exceed 100%, got {percent}")
        pure = gross_weight * percent / HUNDRED
    else:
        pure = gross_weight * (1 + percent / HUNDRED)
    return round_weight(pure, places)


@dataclass(frozen=True)
class ObligationInputs:
    """The counter-side inputs an obligation's vector is computed from."""

    gross_weight: Decimal
    wastage_percent: Decimal
    calc_mode: CalcMode
    metal_type: MetalType
    making_charge: Decimal = ZERO
    manual_cash: Decimal = ZERO


def build_obligation_vector(
    inputs: ObligationInputs,
    weight_places: int = 3,
    cash_places: int = 2,
) -> AssetVector:
    """
    Compute an obligation's original vector.

    The pure weight lands in the metal type's dimension; making charge and
    manual cash together form the cash dimension.

    Raises:
        ValidationError: On negative inputs.
        InvalidVectorError: If a positive gross weight yields no pure weight,
            or the obligation carries no value in any dimension.
    """
    if inputs.making_charge < ZERO:
        raise ValidationError("making_charge", f"must not be negative, got {inputs.making_charge}")
    if inputs.manual_cash < ZERO:
        raise ValidationError("manual_cash", f"must not be negative, got {inputs.manual_cash}")

    pure = compute_pure_weight(
        inputs.gross_weight, inputs.wastage_percent, inputs.calc_mode, weight_places
    )
    if inputs.gross_weight > ZERO and pure <= ZERO:
        raise InvalidVectorError(
            inputs.metal_type.value,
            f"gross weight {inputs.gross_weight} yields pure weight {pure}",
        )

    cash = round_cash(inputs.making_charge + inputs.manual_cash, cash_places)
    vector = AssetVector.of_metal(inputs.metal_type, pure) + AssetVector(cash=cash)
    if vector.is_zero:
        raise InvalidVectorError(Dimension.CASH.value, "obligation carries no metal and no cash")
    return vector


def describe_obligation(inputs: ObligationInputs, vector: AssetVector) -> str:
    """Default description, e.g. ``Item (10.000g Au) + Cash 500.00``."""
    parts = []
    if inputs.gross_weight > ZERO:
        parts.append(f"Item ({round_weight(inputs.gross_weight)}g {inputs.metal_type.symbol})")
    if vector.cash > ZERO:
        parts.append(f"Cash {vector.cash}")
    return " + ".join(parts)
