"""
Request and response bodies.

JSON is camelCase; Python attributes stay snake_case.  Decimals go out as
strings so no weight or amount passes through a float.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bullion_kernel.domain.audit_trail import AuditTrailEntry
from bullion_kernel.domain.dtos import (
    AccountBalance,
    AccountKind,
    AccountRecord,
    ObligationStatus,
    ObligationView,
    PaymentMode,
    RefineryBatchRecord,
    SettlementRecord,
    SettlementResult,
    TransferResult,
)
from bullion_kernel.domain.purity import CalcMode
from bullion_kernel.domain.values import AssetVector, Direction, MetalRestriction, MetalType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class VectorOut(CamelModel):
    pure_gold: Decimal
    silver: Decimal
    cash: Decimal

    @classmethod
    def of(cls, vector: AssetVector) -> VectorOut:
        return cls(pure_gold=vector.gold, silver=vector.silver, cash=vector.cash)


class ErrorOut(CamelModel):
    code: str
    message: str
    details: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountCreate(CamelModel):
    name: str
    kind: AccountKind = AccountKind.VENDOR
    metal_restriction: MetalRestriction = MetalRestriction.BOTH
    default_calc_mode: CalcMode = CalcMode.TOUCH
    contact_person: Optional[str] = None
    phone: Optional[str] = None


class AccountOut(CamelModel):
    account_id: UUID
    kind: AccountKind
    name: str
    metal_restriction: MetalRestriction
    default_calc_mode: CalcMode
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    version: int

    @classmethod
    def of(cls, account: AccountRecord) -> AccountOut:
        return cls(
            account_id=account.id,
            kind=account.kind,
            name=account.name,
            metal_restriction=account.metal_restriction,
            default_calc_mode=account.default_calc_mode,
            contact_person=account.contact_person,
            phone=account.phone,
            version=account.version,
        )


class AccountBalanceOut(CamelModel):
    account: AccountOut
    balance: VectorOut
    open_obligations: int

    @classmethod
    def of(cls, balance: AccountBalance) -> AccountBalanceOut:
        return cls(
            account=AccountOut.of(balance.account),
            balance=VectorOut.of(balance.balance),
            open_obligations=balance.open_obligations,
        )


class AccountDeleteOut(CamelModel):
    account_id: UUID
    obligations_deleted: int


# ---------------------------------------------------------------------------
# Settlements
# ---------------------------------------------------------------------------


class SettlementCreate(CamelModel):
    obligation_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    direction: Optional[Direction] = None
    mode: PaymentMode = PaymentMode.METAL
    gold_val: Decimal = Decimal("0")
    silver_val: Decimal = Decimal("0")
    cash_val: Decimal = Decimal("0")
    metal_rate: Optional[Decimal] = None
    metal_type: Optional[MetalType] = None
    description: Optional[str] = None
    expected_version: Optional[int] = None


class SettlementReversalIn(CamelModel):
    reason: Optional[str] = None
    expected_version: Optional[int] = None


class SettlementOut(CamelModel):
    settlement_id: UUID
    account_id: UUID
    obligation_id: Optional[UUID] = None
    direction: Direction
    mode: PaymentMode
    paid: VectorOut
    applied: VectorOut
    metal_rate: Optional[Decimal] = None
    converted_weight: Decimal
    target_metal: MetalType
    description: str
    occurred_at: datetime
    reversal_of_id: Optional[UUID] = None

    @classmethod
    def of(cls, settlement: SettlementRecord) -> SettlementOut:
        return cls(
            settlement_id=settlement.id,
            account_id=settlement.account_id,
            obligation_id=settlement.obligation_id,
            direction=settlement.direction,
            mode=settlement.mode,
            paid=VectorOut.of(settlement.paid),
            applied=VectorOut.of(settlement.applied),
            metal_rate=settlement.metal_rate,
            converted_weight=settlement.converted_weight,
            target_metal=settlement.target_metal,
            description=settlement.description,
            occurred_at=settlement.occurred_at,
            reversal_of_id=settlement.reversal_of_id,
        )


class SettlementResultOut(CamelModel):
    settlement_id: UUID
    applied: VectorOut
    remaining: VectorOut
    status: Optional[ObligationStatus] = None
    settlement: SettlementOut

    @classmethod
    def of(cls, result: SettlementResult) -> SettlementResultOut:
        return cls(
            settlement_id=result.settlement.id,
            applied=VectorOut.of(result.settlement.applied),
            remaining=VectorOut.of(result.remaining),
            status=result.status,
            settlement=SettlementOut.of(result.settlement),
        )


# ---------------------------------------------------------------------------
# Obligations
# ---------------------------------------------------------------------------


class ObligationCreate(CamelModel):
    account_id: UUID
    direction: Direction
    description: Optional[str] = None
    gross_weight: Decimal = Decimal("0")
    wastage_percent: Decimal = Decimal("0")
    calc_mode: Optional[CalcMode] = None
    making_charge: Decimal = Decimal("0")
    manual_cash: Decimal = Decimal("0")
    metal_type: Optional[MetalType] = None
    expected_version: Optional[int] = None


class ObligationUpdate(CamelModel):
    note: str
    gross_weight: Optional[Decimal] = None
    wastage_percent: Optional[Decimal] = None
    calc_mode: Optional[CalcMode] = None
    making_charge: Optional[Decimal] = None
    manual_cash: Optional[Decimal] = None
    metal_type: Optional[MetalType] = None
    description: Optional[str] = None
    acknowledge_recalculation: bool = False
    expected_version: Optional[int] = None


class ObligationOut(CamelModel):
    obligation_id: UUID
    account_id: UUID
    direction: Direction
    description: str
    metal_type: MetalType
    calc_mode: CalcMode
    gross_weight: Decimal
    wastage_percent: Decimal
    making_charge: Decimal
    manual_cash: Decimal
    vector: VectorOut
    settled: VectorOut
    outstanding: VectorOut
    status: ObligationStatus
    occurred_at: datetime
    reversed_at: Optional[datetime] = None
    revision_count: int
    settlements: list[SettlementOut] = Field(default_factory=list)

    @classmethod
    def of(cls, view: ObligationView, with_settlements: bool = False) -> ObligationOut:
        obligation = view.obligation
        return cls(
            obligation_id=obligation.id,
            account_id=obligation.account_id,
            direction=obligation.direction,
            description=obligation.description,
            metal_type=obligation.metal_type,
            calc_mode=obligation.calc_mode,
            gross_weight=obligation.gross_weight,
            wastage_percent=obligation.wastage_percent,
            making_charge=obligation.making_charge,
            manual_cash=obligation.manual_cash,
            vector=VectorOut.of(obligation.original),
            settled=VectorOut.of(view.settled),
            outstanding=VectorOut.of(view.outstanding),
            status=view.status,
            occurred_at=obligation.occurred_at,
            reversed_at=obligation.reversed_at,
            revision_count=len(obligation.revisions),
            settlements=[SettlementOut.of(s) for s in view.settlements] if with_settlements else [],
        )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerEntryOut(CamelModel):
    kind: str
    timestamp: datetime
    entry_seq: int
    reference_id: UUID
    obligation_id: Optional[UUID] = None
    direction: Direction
    description: str
    vector: VectorOut
    delta: VectorOut
    running_balance: VectorOut

    @classmethod
    def of(cls, entry: AuditTrailEntry) -> LedgerEntryOut:
        return cls(
            kind=entry.kind.value,
            timestamp=entry.occurred_at,
            entry_seq=entry.entry_seq,
            reference_id=entry.reference_id,
            obligation_id=entry.obligation_id,
            direction=entry.direction,
            description=entry.description,
            vector=VectorOut.of(entry.vector),
            delta=VectorOut.of(entry.delta),
            running_balance=VectorOut.of(entry.running_balance),
        )


# ---------------------------------------------------------------------------
# Refinery
# ---------------------------------------------------------------------------


class RefineryBatchCreate(CamelModel):
    metal_type: MetalType
    reference: str
    pure_weight: Decimal


class RefineryBatchOut(CamelModel):
    batch_id: UUID
    metal_type: MetalType
    reference: str
    pure_weight: Decimal
    used_weight: Decimal
    available_weight: Decimal

    @classmethod
    def of(cls, batch: RefineryBatchRecord) -> RefineryBatchOut:
        return cls(
            batch_id=batch.id,
            metal_type=batch.metal_type,
            reference=batch.reference,
            pure_weight=batch.pure_weight,
            used_weight=batch.used_weight,
            available_weight=batch.available_weight,
        )


class TransferCreate(CamelModel):
    account_id: UUID
    weight: Decimal
    description: Optional[str] = None
    expected_version: Optional[int] = None


class TransferOut(CamelModel):
    batch: RefineryBatchOut
    settlement: SettlementOut
    account_balance: VectorOut

    @classmethod
    def of(cls, result: TransferResult) -> TransferOut:
        return cls(
            batch=RefineryBatchOut.of(result.batch),
            settlement=SettlementOut.of(result.settlement),
            account_balance=VectorOut.of(result.account_balance),
        )
