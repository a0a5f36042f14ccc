"""
Outstanding calculator -- the single source of truth for balances.

Responsibility:
    Derives, from immutable records, how much of each obligation remains
    unpaid, whether it is settled, what a payment applies as, and the net
    balance of an account.  Nothing here is cached; callers recompute on
    every read.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Sign convention:
    A positive net balance means we owe the counterparty.  BORROW
    obligations contribute +original, LEND obligations -original; a
    settlement moves its direction's balance back toward zero.

Invariants enforced:
    - outstanding(O) = max(0, O.original - sum(applied)) per dimension.
    - A payment may never push any dimension below zero by more than the
      tolerance (OverSettlementError names the dimension).
    - Cash stands in for metal only at an explicit, positive rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from bullion_kernel.db.types import round_weight
from bullion_kernel.domain.dtos import (
    ObligationRecord,
    ObligationStatus,
    ObligationView,
    PaymentMode,
    SettlementRecord,
)
from bullion_kernel.domain.values import ZERO, AssetVector, Dimension, Direction, MetalType
from bullion_kernel.exceptions import (
    InvalidConversionRateError,
    MissingConversionRateError,
    OverSettlementError,
    ValidationError,
)


@dataclass(frozen=True)
class PaymentApplication:
    """How a payment is credited once cash conversion has been resolved."""

    mode: PaymentMode
    paid: AssetVector
    applied: AssetVector
    metal_rate: Decimal | None
    converted_weight: Decimal
    target_metal: MetalType


def apply_payment(
    mode: PaymentMode,
    paid: AssetVector,
    target_metal: MetalType,
    metal_rate: Decimal | None = None,
    cash_owed: bool = True,
    weight_places: int = 3,
) -> PaymentApplication:
    """
    Resolve a payment into the vector credited against the target.

    METAL   gold/silver applied as paid; cash must be zero.
    CASH    metal must be zero.  With a rate, cash / rate is credited as
            ``target_metal`` weight; without one, cash pays the cash
            dimension, which is only allowed when cash is owed.
    BOTH    metal applied as paid; any cash is converted and needs a rate.

    Args:
        mode: Payment mode selected by the operator.
        paid: What physically changed hands.
        target_metal: Metal dimension receiving converted cash.
        metal_rate: Cash per gram, when cash stands in for metal.
        cash_owed: Whether the target carries a cash component at all.
        weight_places: Rounding of the converted weight.

    Raises:
        ValidationError: Negative, empty, or mode-inconsistent payment.
        MissingConversionRateError: Cash must be converted but no rate given.
        InvalidConversionRateError: Rate is zero or negative.
    """
    for dimension, value in paid.items():
        if value < ZERO:
            raise ValidationError(dimension.value, f"payment must not be negative, got {value}")
    if paid.is_zero:
        raise ValidationError("payment", "payment carries no gold, silver or cash")
    if metal_rate is not None and metal_rate <= ZERO:
        raise InvalidConversionRateError(metal_rate)

    metal_paid = AssetVector(gold=paid.gold, silver=paid.silver)

    if mode is PaymentMode.METAL:
        if paid.cash != ZERO:
            raise ValidationError(Dimension.CASH.value, "METAL payments cannot carry cash")
        return PaymentApplication(mode, paid, metal_paid, None, ZERO, target_metal)

    if mode is PaymentMode.CASH and not metal_paid.is_zero:
        raise ValidationError(
            Dimension.GOLD.value if paid.gold else Dimension.SILVER.value,
            "CASH payments cannot carry metal",
        )

    if paid.cash == ZERO:
        return PaymentApplication(mode, paid, metal_paid, metal_rate, ZERO, target_metal)

    if metal_rate is None:
        if mode is PaymentMode.BOTH or not cash_owed:
            raise MissingConversionRateError(mode.value, target_metal.value)
        return PaymentApplication(mode, paid, AssetVector(cash=paid.cash), None, ZERO, target_metal)

    converted = round_weight(paid.cash / metal_rate, weight_places)
    applied = metal_paid + AssetVector.of_metal(target_metal, converted)
    return PaymentApplication(mode, paid, applied, metal_rate, converted, target_metal)


def settled_amount(
    obligation: ObligationRecord,
    settlements: Iterable[SettlementRecord],
) -> AssetVector:
    """Everything credited against ``obligation``, including moved metal."""
    total = obligation.settled_transfer
    for settlement in settlements:
        if settlement.obligation_id == obligation.id:
            total = total + settlement.applied
    return total


def metal_at(obligation: ObligationRecord, entry_seq: int) -> MetalType:
    """Metal the obligation carried when the entry ``entry_seq`` was recorded."""
    metal = obligation.revisions[0].previous_metal_type if obligation.revisions else obligation.metal_type
    for revision in obligation.revisions:
        if revision.entry_seq < entry_seq:
            metal = revision.new_metal_type
    return metal


def inverse_applied(obligation: ObligationRecord, settlement: SettlementRecord) -> AssetVector:
    """
    Vector that undoes ``settlement`` against ``obligation`` as it stands now.

    A metal-type edit moves settled metal into the new metal's dimension,
    so the inverse of an earlier payment is credited there too.
    """
    undo = -settlement.applied
    source = metal_at(obligation, settlement.entry_seq)
    target = obligation.metal_type
    if source is target:
        return undo
    moved = undo.metal(source)
    return undo - AssetVector.of_metal(source, moved) + AssetVector.of_metal(target, moved)


def remaining(
    obligation: ObligationRecord,
    settlements: Iterable[SettlementRecord],
) -> AssetVector:
    """Unclamped original minus settled; may dip below zero within tolerance."""
    return obligation.original - settled_amount(obligation, settlements)


def outstanding(
    obligation: ObligationRecord,
    settlements: Iterable[SettlementRecord],
) -> AssetVector:
    return remaining(obligation, settlements).clamp_at_zero()


def is_settled(outstanding_vector: AssetVector, tolerance: AssetVector) -> bool:
    return all(value <= tolerance.get(dim) for dim, value in outstanding_vector.items())


def obligation_status(
    obligation: ObligationRecord,
    outstanding_vector: AssetVector,
    tolerance: AssetVector,
) -> ObligationStatus:
    if obligation.is_reversed:
        return ObligationStatus.REVERSED
    if is_settled(outstanding_vector, tolerance):
        return ObligationStatus.SETTLED
    return ObligationStatus.OPEN


def view_obligation(
    obligation: ObligationRecord,
    settlements: Iterable[SettlementRecord],
    tolerance: AssetVector,
) -> ObligationView:
    own = tuple(
        sorted(
            (s for s in settlements if s.obligation_id == obligation.id),
            key=lambda s: (s.occurred_at, s.entry_seq),
        )
    )
    settled = settled_amount(obligation, own)
    left = (obligation.original - settled).clamp_at_zero()
    return ObligationView(
        obligation=obligation,
        settlements=own,
        settled=settled,
        outstanding=left,
        status=obligation_status(obligation, left, tolerance),
    )


def check_over_settlement(
    target_id: UUID | str,
    before: AssetVector,
    applied: AssetVector,
    tolerance: AssetVector,
) -> AssetVector:
    """
    Validate that ``applied`` fits within ``before`` (unclamped remaining).

    Returns:
        The unclamped remaining vector after the payment.

    Raises:
        OverSettlementError: Naming the first dimension that would go
            negative beyond tolerance.
    """
    after = before - applied
    for dimension, value in after.items():
        if value < -tolerance.get(dimension):
            raise OverSettlementError(
                target_id=str(target_id),
                dimension=dimension.value,
                outstanding=max(before.get(dimension), ZERO),
                attempted=applied.get(dimension),
                tolerance=tolerance.get(dimension),
            )
    return after


def obligation_balance_effect(obligation: ObligationRecord) -> AssetVector:
    """Signed contribution of an obligation's original vector to the net."""
    if obligation.is_reversed:
        return AssetVector.zero()
    return (obligation.original - obligation.settled_transfer).scaled(obligation.direction.sign)


def settlement_balance_effect(settlement: SettlementRecord) -> AssetVector:
    """Signed contribution of a settlement: it unwinds its direction."""
    return settlement.applied.scaled(-settlement.direction.sign)


def account_net_balance(
    obligations: Iterable[ObligationRecord],
    settlements: Iterable[SettlementRecord],
) -> AssetVector:
    """
    Net position of an account, positive meaning we owe the counterparty.

    Sums every non-reversed obligation's signed original vector and
    subtracts every settlement (obligation-bound and account-level) in its
    direction.
    """
    total = AssetVector.zero()
    for obligation in obligations:
        total = total + obligation_balance_effect(obligation)
    for settlement in settlements:
        total = total + settlement_balance_effect(settlement)
    return total


def direction_pool(
    direction: Direction,
    obligations: Iterable[ObligationRecord],
    settlements: Iterable[SettlementRecord],
) -> AssetVector:
    """
    Unclamped amount still open in one direction of an account.

    Account-level settlements draw on this pool without being allocated to
    a particular obligation.
    """
    settlement_list = list(settlements)
    pool = AssetVector.zero()
    for obligation in obligations:
        if obligation.direction is direction and not obligation.is_reversed:
            pool = pool + remaining(obligation, settlement_list)
    for settlement in settlement_list:
        if settlement.is_account_level and settlement.direction is direction:
            pool = pool - settlement.applied
    return pool
