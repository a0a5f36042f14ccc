"""
Values -- Immutable, self-validating ledger value objects.

Responsibility:
    Provides the AssetVector (pure gold weight, silver weight, cash) that
    every obligation, settlement and balance in the ledger is expressed in,
    plus the enums naming its dimensions and the directions of debt.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic; floats are rejected at construction.
    - Vectors are immutable; every operation returns a new vector.

Failure modes:
    - TypeError on float or non-numeric components.
    - ValueError on non-finite components.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

from bullion_kernel.db.types import round_cash, round_weight, to_decimal

ZERO = Decimal("0")


class Dimension(str, Enum):
    """One unit of account in the asset vector."""

    GOLD = "GOLD"
    SILVER = "SILVER"
    CASH = "CASH"


class MetalType(str, Enum):
    """Which metal dimension an obligation's pure weight lives in."""

    GOLD = "GOLD"
    SILVER = "SILVER"

    @property
    def dimension(self) -> Dimension:
        return Dimension(self.value)

    @property
    def symbol(self) -> str:
        return "Au" if self is MetalType.GOLD else "Ag"


class MetalRestriction(str, Enum):
    """Metal dimensions an account may carry."""

    GOLD = "GOLD"
    SILVER = "SILVER"
    BOTH = "BOTH"

    def allows(self, metal: MetalType) -> bool:
        return self is MetalRestriction.BOTH or self.value == metal.value

    @property
    def default_metal(self) -> MetalType:
        return MetalType.SILVER if self is MetalRestriction.SILVER else MetalType.GOLD


class Direction(str, Enum):
    """
    Direction of a debt relative to the business.

    BORROW: the counterparty handed us value; we owe them.
    LEND: we handed the counterparty value; they owe us.
    """

    BORROW = "BORROW"
    LEND = "LEND"

    @property
    def sign(self) -> int:
        """Sign of an obligation's contribution to the net balance (+ = we owe)."""
        return 1 if self is Direction.BORROW else -1


@dataclass(frozen=True, slots=True)
class AssetVector:
    """
    The (pure gold, silver, cash) triple.

    Contract:
        All arithmetic in the ledger is vector arithmetic over this triple.
        Weights are grams of pure metal; cash is in the shop's currency.

    Guarantees:
        - Immutable and hashable.
        - Components are always Decimal (ints and numeric strings are
          coerced, floats are rejected).

    Non-goals:
        - Does NOT auto-round; callers use rounded() explicitly.
        - Does NOT forbid negative components; deltas and balances are
          signed.  Sign rules for stored obligations live in the services.
    """

    gold: Decimal = ZERO
    silver: Decimal = ZERO
    cash: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("gold", "silver", "cash"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))

    @classmethod
    def zero(cls) -> AssetVector:
        return cls()

    @classmethod
    def of_metal(cls, metal: MetalType, weight: Decimal) -> AssetVector:
        """Vector carrying ``weight`` in the given metal's dimension."""
        if metal is MetalType.GOLD:
            return cls(gold=weight)
        return cls(silver=weight)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AssetVector:
        return cls(
            gold=data.get("gold", ZERO),
            silver=data.get("silver", ZERO),
            cash=data.get("cash", ZERO),
        )

    def get(self, dimension: Dimension) -> Decimal:
        if dimension is Dimension.GOLD:
            return self.gold
        if dimension is Dimension.SILVER:
            return self.silver
        return self.cash

    def metal(self, metal: MetalType) -> Decimal:
        return self.get(metal.dimension)

    def items(self) -> Iterator[tuple[Dimension, Decimal]]:
        yield Dimension.GOLD, self.gold
        yield Dimension.SILVER, self.silver
        yield Dimension.CASH, self.cash

    def __add__(self, other: AssetVector) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return AssetVector(
            self.gold + other.gold, self.silver + other.silver, self.cash + other.cash
        )

    def __sub__(self, other: AssetVector) -> AssetVector:
        if not isinstance(other, AssetVector):
            return NotImplemented
        return AssetVector(
            self.gold - other.gold, self.silver - other.silver, self.cash - other.cash
        )

    def __neg__(self) -> AssetVector:
        return AssetVector(-self.gold, -self.silver, -self.cash)

    def scaled(self, factor: int | Decimal) -> AssetVector:
        f = Decimal(factor)
        return AssetVector(self.gold * f, self.silver * f, self.cash * f)

    def clamp_at_zero(self) -> AssetVector:
        return AssetVector(max(self.gold, ZERO), max(self.silver, ZERO), max(self.cash, ZERO))

    def rounded(self, weight_places: int = 3, cash_places: int = 2) -> AssetVector:
        return AssetVector(
            round_weight(self.gold, weight_places),
            round_weight(self.silver, weight_places),
            round_cash(self.cash, cash_places),
        )

    def with_metal_moved(self, source: MetalType, target: MetalType) -> AssetVector:
        """Move the whole weight of ``source`` into ``target``."""
        if source is target:
            return self
        moved = self.metal(source)
        return self - AssetVector.of_metal(source, moved) + AssetVector.of_metal(target, moved)

    @property
    def is_zero(self) -> bool:
        return self.gold == ZERO and self.silver == ZERO and self.cash == ZERO

    def has_negative(self) -> bool:
        return self.gold < ZERO or self.silver < ZERO or self.cash < ZERO

    def within(self, tolerance: AssetVector) -> bool:
        """True if every component's magnitude is within the tolerance."""
        return all(abs(value) <= tolerance.get(dim) for dim, value in self.items())

    def to_dict(self) -> dict[str, str]:
        return {"gold": str(self.gold), "silver": str(self.silver), "cash": str(self.cash)}

    def __str__(self) -> str:
        return f"[Au {self.gold} g | Ag {self.silver} g | cash {self.cash}]"
