"""
SettlementService -- records payments/collections and their inverses.

Responsibility:
    Resolves a payment (mode, paid vector, optional rate) into the vector
    credited against its target, validates it against what is still open,
    and appends the settlement row.  Mistakes are undone by an inverse
    settlement, never by deleting or updating the original.

Architecture position:
    Kernel > Services -- imperative shell around domain.outstanding.

Invariants enforced:
    - Over-settlement is rejected, never clamped.
    - A SETTLED obligation accepts no further payment.
    - Every settlement, obligation-bound or account-level, fits within the
      open pool of its direction.
    - An inverse is credited in the metal its obligation carries now.
    - Each settlement is reversed at most once; an inverse is final.

Failure modes:
    - ValidationError and subclasses: malformed payment, missing or
      non-positive rate, metal outside the account's restriction.
    - OverSettlementError: payment exceeds the outstanding amount.
    - ObligationReversedError: payment against a reversed obligation.
    - SettlementAlreadyReversedError: second reversal, or reversal of an
      inverse.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from bullion_kernel.db.types import round_rate
from bullion_kernel.domain.dtos import (
    ObligationRecord,
    ObligationStatus,
    PaymentMode,
    SettlementRecord,
)
from bullion_kernel.domain.outstanding import (
    PaymentApplication,
    apply_payment,
    check_over_settlement,
    direction_pool,
    inverse_applied,
    view_obligation,
)
from bullion_kernel.domain.values import ZERO, AssetVector, Direction, MetalRestriction, MetalType
from bullion_kernel.exceptions import (
    ObligationReversedError,
    OverSettlementError,
    SettlementAlreadyReversedError,
    SettlementNotFoundError,
    ValidationError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.models.settlement import Settlement
from bullion_kernel.services.base import SYSTEM_ACTOR_ID, BaseService
from bullion_kernel.services.obligation_service import check_metal_allowed

logger = get_logger("services.settlement")


def _describe_payment(application: PaymentApplication) -> str:
    parts = []
    paid = application.paid
    if paid.gold:
        parts.append(f"Gold {paid.gold}g")
    if paid.silver:
        parts.append(f"Silver {paid.silver}g")
    if paid.cash:
        if application.metal_rate is not None:
            parts.append(
                f"Cash {paid.cash} @ {application.metal_rate} "
                f"= {application.converted_weight}g {application.target_metal.symbol}"
            )
        else:
            parts.append(f"Cash {paid.cash}")
    return "Payment: " + " + ".join(parts)


class SettlementService(BaseService):
    def get(self, settlement_id: UUID) -> Settlement:
        settlement = self.session.get(Settlement, settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(str(settlement_id))
        return settlement

    def resolve_payment(
        self,
        account: LedgerAccount,
        mode: PaymentMode,
        paid: AssetVector,
        target_metal: MetalType,
        metal_rate: Decimal | None,
        cash_owed: bool,
    ) -> PaymentApplication:
        """Apply rounding, the conversion rules and the metal restriction."""
        paid = self.rules.round_vector(paid)
        if metal_rate is not None:
            metal_rate = round_rate(metal_rate, self.rules.rate_places)
        application = apply_payment(
            PaymentMode(mode),
            paid,
            target_metal,
            metal_rate,
            cash_owed=cash_owed,
            weight_places=self.rules.weight_places,
        )
        if application.applied.is_zero:
            raise ValidationError(
                "metal_rate", f"payment converts to zero weight at rate {application.metal_rate}"
            )
        for metal in MetalType:
            if application.applied.metal(metal) != ZERO:
                check_metal_allowed(account, metal)
        return application

    def settle_obligation(
        self,
        account: LedgerAccount,
        seq: int,
        obligation: ObligationRecord,
        settlements: list[SettlementRecord],
        mode: PaymentMode,
        paid: AssetVector,
        metal_rate: Decimal | None = None,
        target_metal: MetalType | None = None,
        description: str | None = None,
        actor_id: UUID | None = None,
        pool: AssetVector | None = None,
    ) -> tuple[Settlement, AssetVector]:
        """
        Record a payment against one obligation.

        Args:
            pool: Open pool of the obligation's direction across the
                account, net of account-level settlements.  When given,
                the payment must fit within it as well.

        Returns:
            The settlement row and the unclamped remaining vector after it.
        """
        if obligation.is_reversed:
            raise ObligationReversedError(str(obligation.id), "settle")

        tolerance = self.rules.tolerance
        view = view_obligation(obligation, settlements, tolerance)
        before = obligation.original - view.settled
        application = self.resolve_payment(
            account,
            mode,
            paid,
            target_metal or obligation.metal_type,
            metal_rate,
            cash_owed=obligation.original.cash > ZERO,
        )

        if view.status is ObligationStatus.SETTLED:
            dimension, attempted = next(
                ((d, v) for d, v in application.applied.items() if v != ZERO),
                (application.target_metal.dimension, ZERO),
            )
            raise OverSettlementError(
                target_id=str(obligation.id),
                dimension=dimension.value,
                outstanding=view.outstanding.get(dimension),
                attempted=attempted,
                tolerance=tolerance.get(dimension),
            )

        after = check_over_settlement(obligation.id, before, application.applied, tolerance)
        if pool is not None:
            check_over_settlement(account.id, pool, application.applied, tolerance)
        settlement = self._append(
            account, seq, obligation.id, obligation.direction, application, description, actor_id
        )
        return settlement, after

    def settle_account(
        self,
        account: LedgerAccount,
        seq: int,
        direction: Direction,
        obligations: list[ObligationRecord],
        settlements: list[SettlementRecord],
        mode: PaymentMode,
        paid: AssetVector,
        metal_rate: Decimal | None = None,
        target_metal: MetalType | None = None,
        description: str | None = None,
        actor_id: UUID | None = None,
    ) -> tuple[Settlement, AssetVector]:
        """
        Record a payment against an account as a whole.

        The payment is not allocated to any obligation; it must fit within
        what is still open across the direction's obligations.
        """
        pool = direction_pool(direction, obligations, settlements)
        metal = target_metal or MetalRestriction(account.metal_restriction).default_metal
        application = self.resolve_payment(
            account, mode, paid, metal, metal_rate, cash_owed=pool.cash > ZERO
        )
        after = check_over_settlement(account.id, pool, application.applied, self.rules.tolerance)
        settlement = self._append(account, seq, None, direction, application, description, actor_id)
        return settlement, after

    def reverse(
        self,
        account: LedgerAccount,
        seq: int,
        original: SettlementRecord,
        reason: str | None = None,
        actor_id: UUID | None = None,
        obligation: ObligationRecord | None = None,
    ) -> Settlement:
        """
        Append the inverse of ``original``.

        ``obligation`` is the record ``original`` was bound to, if any; its
        current metal decides where the undone metal is credited.
        """
        if original.is_inverse:
            raise SettlementAlreadyReversedError(str(original.id))
        existing = self.session.execute(
            select(Settlement.id).where(Settlement.reversal_of_id == original.id)
        ).scalar_one_or_none()
        if existing is not None:
            raise SettlementAlreadyReversedError(str(original.id))

        applied = -original.applied
        if obligation is not None:
            applied = inverse_applied(obligation, original)

        inverse = Settlement(
            account_id=account.id,
            obligation_id=original.obligation_id,
            direction=original.direction.value,
            mode=original.mode.value,
            metal_rate=original.metal_rate,
            converted_weight=-original.converted_weight,
            target_metal=original.target_metal.value,
            description=(reason or "").strip() or f"Reversal of {original.description}",
            occurred_at=self.clock.now(),
            entry_seq=seq,
            reversal_of_id=original.id,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        inverse.paid_vector = -original.paid
        inverse.applied_vector = applied
        self.session.add(inverse)
        self.session.flush()

        logger.info(
            "settlement_reversed",
            extra={
                "settlement_id": str(original.id),
                "inverse_id": str(inverse.id),
                "applied": applied.to_dict(),
                "entry_seq": seq,
            },
        )
        return inverse

    def _append(
        self,
        account: LedgerAccount,
        seq: int,
        obligation_id: UUID | None,
        direction: Direction,
        application: PaymentApplication,
        description: str | None,
        actor_id: UUID | None,
    ) -> Settlement:
        settlement = Settlement(
            account_id=account.id,
            obligation_id=obligation_id,
            direction=Direction(direction).value,
            mode=application.mode.value,
            metal_rate=application.metal_rate,
            converted_weight=application.converted_weight,
            target_metal=application.target_metal.value,
            description=(description or "").strip() or _describe_payment(application),
            occurred_at=self.clock.now(),
            entry_seq=seq,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        settlement.paid_vector = application.paid
        settlement.applied_vector = application.applied
        self.session.add(settlement)
        self.session.flush()

        logger.info(
            "settlement_recorded",
            extra={
                "settlement_id": str(settlement.id),
                "obligation_id": str(obligation_id) if obligation_id else None,
                "mode": settlement.mode,
                "applied": application.applied.to_dict(),
                "entry_seq": seq,
            },
        )
        return settlement
