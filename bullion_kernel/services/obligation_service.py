"""
ObligationService -- records, edits and reverses obligations.

Responsibility:
    Turns counter-side inputs into a stored obligation vector, applies
    edits as ObligationRevision rows, and soft-reverses obligations that
    were never paid against.

Architecture position:
    Kernel > Services -- imperative shell.  Pure math comes from
    domain.purity and domain.outstanding.

Invariants enforced:
    - The account's metal restriction is checked on every write.
    - An obligation with settlements is only edited when the caller
      acknowledges recalculation, and the settlements must still fit the
      new vector.
    - A metal-type switch moves settled metal with the obligation
      (recorded as the revision's settled transfer).
    - Reversal never deletes; it requires zero settlements.

Failure modes:
    - ValidationError / InvalidVectorError: bad inputs.
    - DimensionNotAllowedError: metal outside the account's restriction.
    - MissingEditNoteError: edit without a note.
    - ObligationHasSettlementsError: edit/reverse blocked by settlements.
    - ObligationReversedError: edit/reverse of a reversed obligation.
    - OverSettlementError: acknowledged edit shrinks the vector below what
      was already paid.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from bullion_kernel.domain.dtos import ObligationRecord, SettlementRecord
from bullion_kernel.domain.outstanding import check_over_settlement, settled_amount
from bullion_kernel.domain.purity import (
    CalcMode,
    ObligationInputs,
    build_obligation_vector,
    describe_obligation,
)
from bullion_kernel.domain.values import AssetVector, Direction, MetalRestriction, MetalType
from bullion_kernel.exceptions import (
    DimensionNotAllowedError,
    MissingEditNoteError,
    ObligationHasSettlementsError,
    ObligationNotFoundError,
    ObligationReversedError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.models.obligation import Obligation, ObligationRevision
from bullion_kernel.services.base import SYSTEM_ACTOR_ID, BaseService

logger = get_logger("services.obligation")


def check_metal_allowed(account: LedgerAccount, metal: MetalType) -> None:
    restriction = MetalRestriction(account.metal_restriction)
    if not restriction.allows(metal):
        raise DimensionNotAllowedError(str(account.id), metal.value, restriction.value)


def inputs_of(obligation: Obligation) -> ObligationInputs:
    return ObligationInputs(
        gross_weight=obligation.gross_weight,
        wastage_percent=obligation.wastage_percent,
        calc_mode=CalcMode(obligation.calc_mode),
        metal_type=MetalType(obligation.metal_type),
        making_charge=obligation.making_charge,
        manual_cash=obligation.manual_cash,
    )


class ObligationService(BaseService):
    def get(self, obligation_id: UUID) -> Obligation:
        obligation = self.session.get(Obligation, obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(str(obligation_id))
        return obligation

    def create(
        self,
        account: LedgerAccount,
        seq: int,
        direction: Direction,
        inputs: ObligationInputs,
        description: str | None = None,
        actor_id: UUID | None = None,
    ) -> Obligation:
        """
        Record a new obligation.

        Preconditions:
            - ``account`` is locked and ``seq`` was drawn from it.
        """
        check_metal_allowed(account, inputs.metal_type)
        vector = build_obligation_vector(inputs, self.rules.weight_places, self.rules.cash_places)

        obligation = Obligation(
            account_id=account.id,
            direction=Direction(direction).value,
            description=(description or "").strip() or describe_obligation(inputs, vector),
            metal_type=inputs.metal_type.value,
            calc_mode=inputs.calc_mode.value,
            gross_weight=inputs.gross_weight,
            wastage_percent=inputs.wastage_percent,
            making_charge=inputs.making_charge,
            manual_cash=inputs.manual_cash,
            occurred_at=self.clock.now(),
            entry_seq=seq,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        obligation.vector = vector
        self.session.add(obligation)
        self.session.flush()

        logger.info(
            "obligation_created",
            extra={
                "obligation_id": str(obligation.id),
                "direction": obligation.direction,
                "vector": vector.to_dict(),
                "entry_seq": seq,
            },
        )
        return obligation

    def edit(
        self,
        account: LedgerAccount,
        seq: int,
        obligation: Obligation,
        inputs: ObligationInputs,
        note: str,
        settlements: list[SettlementRecord],
        acknowledge_recalculation: bool = False,
        description: str | None = None,
        actor_id: UUID | None = None,
    ) -> ObligationRevision:
        """
        Replace an obligation's inputs and record the revision.

        Args:
            settlements: Every settlement recorded against the obligation.
            acknowledge_recalculation: Caller accepts that existing
                settlements are re-validated against the new vector.
        """
        if not note or not note.strip():
            raise MissingEditNoteError(str(obligation.id))
        if obligation.is_reversed:
            raise ObligationReversedError(str(obligation.id), "edit")
        if settlements and not acknowledge_recalculation:
            raise ObligationHasSettlementsError(str(obligation.id), "edit", len(settlements))

        check_metal_allowed(account, inputs.metal_type)
        previous_inputs = inputs_of(obligation)
        previous_vector = obligation.vector.rounded(self.rules.weight_places, self.rules.cash_places)
        new_vector = build_obligation_vector(inputs, self.rules.weight_places, self.rules.cash_places)

        record = ObligationRecord.from_model(obligation)
        settled = settled_amount(record, settlements)
        transfer = self._settled_transfer(settled, previous_inputs.metal_type, inputs.metal_type)
        if settlements:
            check_over_settlement(obligation.id, new_vector, settled + transfer, self.rules.tolerance)

        revision = ObligationRevision(
            note=note.strip(),
            occurred_at=self.clock.now(),
            entry_seq=seq,
            previous_metal_type=previous_inputs.metal_type.value,
            previous_calc_mode=previous_inputs.calc_mode.value,
            previous_gross_weight=previous_inputs.gross_weight,
            previous_wastage_percent=previous_inputs.wastage_percent,
            previous_making_charge=previous_inputs.making_charge,
            previous_manual_cash=previous_inputs.manual_cash,
            previous_gold=previous_vector.gold,
            previous_silver=previous_vector.silver,
            previous_cash=previous_vector.cash,
            new_metal_type=inputs.metal_type.value,
            new_calc_mode=inputs.calc_mode.value,
            new_gross_weight=inputs.gross_weight,
            new_wastage_percent=inputs.wastage_percent,
            new_making_charge=inputs.making_charge,
            new_manual_cash=inputs.manual_cash,
            new_gold=new_vector.gold,
            new_silver=new_vector.silver,
            new_cash=new_vector.cash,
            settled_transfer_gold=transfer.gold,
            settled_transfer_silver=transfer.silver,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        obligation.revisions.append(revision)

        if description and description.strip():
            obligation.description = description.strip()
        elif obligation.description == describe_obligation(previous_inputs, previous_vector):
            obligation.description = describe_obligation(inputs, new_vector)

        obligation.metal_type = inputs.metal_type.value
        obligation.calc_mode = inputs.calc_mode.value
        obligation.gross_weight = inputs.gross_weight
        obligation.wastage_percent = inputs.wastage_percent
        obligation.making_charge = inputs.making_charge
        obligation.manual_cash = inputs.manual_cash
        obligation.vector = new_vector
        obligation.updated_by_id = actor_id or SYSTEM_ACTOR_ID
        self.session.flush()

        logger.info(
            "obligation_edited",
            extra={
                "obligation_id": str(obligation.id),
                "previous_vector": previous_vector.to_dict(),
                "new_vector": new_vector.to_dict(),
                "settled_transfer": transfer.to_dict(),
                "settlement_count": len(settlements),
                "entry_seq": seq,
            },
        )
        return revision

    @staticmethod
    def _settled_transfer(
        settled: AssetVector,
        source: MetalType,
        target: MetalType,
    ) -> AssetVector:
        """Vector that moves all settled ``source`` metal into ``target``."""
        if source is target:
            return AssetVector.zero()
        moved = settled.metal(source)
        if moved == Decimal("0"):
            return AssetVector.zero()
        return AssetVector.of_metal(target, moved) - AssetVector.of_metal(source, moved)

    def reverse(
        self,
        seq: int,
        obligation: Obligation,
        settlement_count: int,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> Obligation:
        if obligation.is_reversed:
            raise ObligationReversedError(str(obligation.id), "reverse")
        if settlement_count:
            raise ObligationHasSettlementsError(str(obligation.id), "reverse", settlement_count)

        obligation.reversed_at = self.clock.now()
        obligation.reversal_seq = seq
        obligation.reversal_reason = (reason or "").strip() or f"Reversal of {obligation.description}"
        obligation.updated_by_id = actor_id or SYSTEM_ACTOR_ID
        self.session.flush()

        logger.info(
            "obligation_reversed",
            extra={"obligation_id": str(obligation.id), "entry_seq": seq},
        )
        return obligation
