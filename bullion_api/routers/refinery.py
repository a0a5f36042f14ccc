from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from bullion_api.deps import get_actor_id, get_ledger
from bullion_api.schemas import (
    RefineryBatchCreate,
    RefineryBatchOut,
    TransferCreate,
    TransferOut,
)
from bullion_kernel.services.ledger_service import AccountLedgerService

router = APIRouter(prefix="/refinery", tags=["refinery"])


@router.post("/batches", response_model=RefineryBatchOut, status_code=201)
def register_batch(
    data: RefineryBatchCreate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    batch = ledger.register_refinery_batch(
        data.metal_type, data.reference, data.pure_weight, actor_id=actor_id
    )
    return RefineryBatchOut.of(batch)


@router.get("/batches/{batch_id}", response_model=RefineryBatchOut)
def get_batch(batch_id: UUID, ledger: AccountLedgerService = Depends(get_ledger)):
    return RefineryBatchOut.of(ledger.get_refinery_batch(batch_id))


@router.post("/batches/{batch_id}/transfers", response_model=TransferOut, status_code=201)
def transfer_stock(
    batch_id: UUID,
    data: TransferCreate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    result = ledger.transfer_refined_stock(
        batch_id,
        data.account_id,
        data.weight,
        description=data.description,
        actor_id=actor_id,
        expected_version=data.expected_version,
    )
    return TransferOut.of(result)
