from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from bullion_api.deps import get_actor_id, get_ledger
from bullion_api.schemas import (
    AccountBalanceOut,
    AccountCreate,
    AccountDeleteOut,
    AccountOut,
    LedgerEntryOut,
    ObligationOut,
    SettlementOut,
    VectorOut,
)
from bullion_kernel.services.ledger_service import AccountLedgerService

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("", response_model=AccountOut, status_code=201)
def create_account(
    data: AccountCreate,
    ledger: AccountLedgerService = Depends(get_ledger),
    actor_id: Optional[UUID] = Depends(get_actor_id),
):
    account = ledger.create_account(
        name=data.name,
        kind=data.kind,
        metal_restriction=data.metal_restriction,
        default_calc_mode=data.default_calc_mode,
        contact_person=data.contact_person,
        phone=data.phone,
        actor_id=actor_id,
    )
    return AccountOut.of(account)


@router.get("", response_model=List[AccountBalanceOut])
def list_accounts(ledger: AccountLedgerService = Depends(get_ledger)):
    return [AccountBalanceOut.of(b) for b in ledger.list_accounts()]


@router.delete("/{account_id}", response_model=AccountDeleteOut)
def delete_account(
    account_id: UUID,
    cascade: bool = False,
    expected_version: Optional[int] = None,
    ledger: AccountLedgerService = Depends(get_ledger),
):
    deleted = ledger.delete_account(account_id, cascade=cascade, expected_version=expected_version)
    return AccountDeleteOut(account_id=account_id, obligations_deleted=deleted)


@router.get("/{account_id}/balance", response_model=VectorOut)
def get_balance(account_id: UUID, ledger: AccountLedgerService = Depends(get_ledger)):
    return VectorOut.of(ledger.account_balance(account_id).balance)


@router.get("/{account_id}/ledger", response_model=List[LedgerEntryOut])
def get_ledger_trail(
    account_id: UUID,
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    ledger: AccountLedgerService = Depends(get_ledger),
):
    trail = ledger.audit_trail(account_id, date_from, date_to)
    return [LedgerEntryOut.of(e) for e in trail.entries]


@router.get("/{account_id}/obligations", response_model=List[ObligationOut])
def list_obligations(
    account_id: UUID,
    include_reversed: bool = True,
    ledger: AccountLedgerService = Depends(get_ledger),
):
    return [ObligationOut.of(v) for v in ledger.list_obligations(account_id, include_reversed)]


@router.get("/{account_id}/settlements", response_model=List[SettlementOut])
def list_settlements(account_id: UUID, ledger: AccountLedgerService = Depends(get_ledger)):
    return [SettlementOut.of(s) for s in ledger.settlement_history(account_id)]
