from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from bullion_api.deps import get_actor_id, get_ledger
from bullion_api.schemas import SettlementCreate, SettlementResultOut, SettlementReversalIn
from bullion_kernel.services.ledger_service import AccountLedgerService

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("", response_model=SettlementResultOut, status_code=201)
def create_settlement(
    data: SettlementCreate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    result = ledger.settle(
        obligation_id=data.obligation_id,
        account_id=data.account_id,
        direction=data.direction,
        mode=data.mode,
        gold=data.gold_val,
        silver=data.silver_val,
        cash=data.cash_val,
        metal_rate=data.metal_rate,
        metal_type=data.metal_type,
        description=data.description,
        actor_id=actor_id,
        expected_version=data.expected_version,
    )
    return SettlementResultOut.of(result)


@router.post("/{settlement_id}/reversal", response_model=SettlementResultOut, status_code=201)
def reverse_settlement(
    settlement_id: UUID,
    data: Optional[SettlementReversalIn] = None,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    data = data or SettlementReversalIn()
    result = ledger.reverse_settlement(
        settlement_id,
        reason=data.reason,
        actor_id=actor_id,
        expected_version=data.expected_version,
    )
    return SettlementResultOut.of(result)
