from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from bullion_api.deps import get_actor_id, get_ledger
from bullion_api.schemas import ObligationCreate, ObligationOut, ObligationUpdate
from bullion_kernel.services.ledger_service import AccountLedgerService

router = APIRouter(prefix="/obligations", tags=["obligations"])


@router.post("", response_model=ObligationOut, status_code=201)
def create_obligation(
    data: ObligationCreate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    view = ledger.add_obligation(
        account_id=data.account_id,
        direction=data.direction,
        gross_weight=data.gross_weight,
        wastage_percent=data.wastage_percent,
        calc_mode=data.calc_mode,
        metal_type=data.metal_type,
        making_charge=data.making_charge,
        manual_cash=data.manual_cash,
        description=data.description,
        actor_id=actor_id,
        expected_version=data.expected_version,
    )
    return ObligationOut.of(view)


@router.get("/{obligation_id}", response_model=ObligationOut)
def get_obligation(obligation_id: UUID, ledger: AccountLedgerService = Depends(get_ledger)):
    return ObligationOut.of(ledger.get_obligation(obligation_id), with_settlements=True)


@router.put("/{obligation_id}", response_model=ObligationOut)
def update_obligation(
    obligation_id: UUID,
    data: ObligationUpdate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    view = ledger.edit_obligation(
        obligation_id,
        note=data.note,
        gross_weight=data.gross_weight,
        wastage_percent=data.wastage_percent,
        calc_mode=data.calc_mode,
        metal_type=data.metal_type,
        making_charge=data.making_charge,
        manual_cash=data.manual_cash,
        description=data.description,
        acknowledge_recalculation=data.acknowledge_recalculation,
        actor_id=actor_id,
        expected_version=data.expected_version,
    )
    return ObligationOut.of(view, with_settlements=True)


@router.delete("/{obligation_id}", response_model=ObligationOut)
def reverse_obligation(
    obligation_id: UUID,
    reason: Optional[str] = None,
    expected_version: Optional[int] = None,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    view = ledger.reverse_obligation(
        obligation_id, reason=reason, actor_id=actor_id, expected_version=expected_version
    )
    return ObligationOut.of(view)
