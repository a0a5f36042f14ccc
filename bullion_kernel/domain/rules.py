"""
Ledger rules -- rounding precision and settlement tolerances.

A frozen value handed to the ledger facade.  ``bullion_config`` builds one
from YAML; tests construct it directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from bullion_kernel.db.types import (
    CASH_DECIMAL_PLACES,
    RATE_DECIMAL_PLACES,
    WEIGHT_DECIMAL_PLACES,
)
from bullion_kernel.domain.values import AssetVector

DEFAULT_TOLERANCE = AssetVector(gold=Decimal("0.005"), silver=Decimal("0.005"), cash=Decimal("1.00"))


@dataclass(frozen=True)
class LedgerRules:
    """
    Precision and tolerance the ledger applies to every write.

    ``tolerance`` is the per-dimension epsilon below which an outstanding
    amount counts as settled, and by which a payment may overshoot.
    """

    weight_places: int = WEIGHT_DECIMAL_PLACES
    cash_places: int = CASH_DECIMAL_PLACES
    rate_places: int = RATE_DECIMAL_PLACES
    tolerance: AssetVector = field(default=DEFAULT_TOLERANCE)

    def __post_init__(self) -> None:
        for name in ("weight_places", "cash_places", "rate_places"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.tolerance.has_negative():
            raise ValueError(f"tolerance must not be negative, got {self.tolerance}")

    def round_vector(self, vector: AssetVector) -> AssetVector:
        return vector.rounded(self.weight_places, self.cash_places)
