"""
DTOs -- Immutable ledger records crossing the persistence boundary.

Domain logic (outstanding calculation, trail replay) accepts and returns
these frozen dataclasses, never ORM entities.  from_model() converters are
only invoked from selectors and services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from bullion_kernel.db.types import round_cash, round_weight
from bullion_kernel.domain.purity import CalcMode
from bullion_kernel.domain.values import (
    AssetVector,
    Direction,
    MetalRestriction,
    MetalType,
)

if TYPE_CHECKING:
    from bullion_kernel.models.account import LedgerAccount
    from bullion_kernel.models.obligation import Obligation, ObligationRevision
    from bullion_kernel.models.refinery import RefineryBatch
    from bullion_kernel.models.settlement import Settlement


class AccountKind(str, Enum):
    VENDOR = "VENDOR"
    SHOP = "SHOP"


class ObligationStatus(str, Enum):
    """OPEN -> SETTLED (derived); REVERSED is terminal."""

    OPEN = "OPEN"
    SETTLED = "SETTLED"
    REVERSED = "REVERSED"


class PaymentMode(str, Enum):
    METAL = "METAL"
    CASH = "CASH"
    BOTH = "BOTH"


@dataclass(frozen=True)
class AccountRecord:
    id: UUID
    kind: AccountKind
    name: str
    metal_restriction: MetalRestriction
    default_calc_mode: CalcMode
    contact_person: str | None
    phone: str | None
    version: int

    @classmethod
    def from_model(cls, account: LedgerAccount) -> AccountRecord:
        return cls(
            id=account.id,
            kind=AccountKind(account.kind),
            name=account.name,
            metal_restriction=MetalRestriction(account.metal_restriction),
            default_calc_mode=CalcMode(account.default_calc_mode),
            contact_person=account.contact_person,
            phone=account.phone,
            version=account.version,
        )


@dataclass(frozen=True)
class RevisionRecord:
    """One edit of an obligation's inputs."""

    id: UUID
    obligation_id: UUID
    occurred_at: datetime
    entry_seq: int
    note: str
    previous_vector: AssetVector
    new_vector: AssetVector
    previous_metal_type: MetalType
    new_metal_type: MetalType
    settled_transfer: AssetVector

    @classmethod
    def from_model(cls, revision: ObligationRevision) -> RevisionRecord:
        return cls(
            id=revision.id,
            obligation_id=revision.obligation_id,
            occurred_at=revision.occurred_at,
            entry_seq=revision.entry_seq,
            note=revision.note,
            previous_vector=revision.previous_vector.rounded(),
            new_vector=revision.new_vector.rounded(),
            previous_metal_type=MetalType(revision.previous_metal_type),
            new_metal_type=MetalType(revision.new_metal_type),
            settled_transfer=revision.settled_transfer.rounded(),
        )


@dataclass(frozen=True)
class ObligationRecord:
    """
    One borrow/lend event as seen by the calculator.

    ``settled_transfer`` is the cumulative movement of already-settled metal
    between dimensions caused by metal-type edits.
    """

    id: UUID
    account_id: UUID
    direction: Direction
    description: str
    metal_type: MetalType
    calc_mode: CalcMode
    gross_weight: Decimal
    wastage_percent: Decimal
    making_charge: Decimal
    manual_cash: Decimal
    original: AssetVector
    occurred_at: datetime
    entry_seq: int
    reversed_at: datetime | None = None
    reversal_seq: int | None = None
    reversal_reason: str | None = None
    revisions: tuple[RevisionRecord, ...] = field(default_factory=tuple)

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None

    @property
    def settled_transfer(self) -> AssetVector:
        total = AssetVector.zero()
        for revision in self.revisions:
            total = total + revision.settled_transfer
        return total

    @property
    def initial_vector(self) -> AssetVector:
        """The vector as first recorded, before any edit."""
        if self.revisions:
            return self.revisions[0].previous_vector
        return self.original

    @classmethod
    def from_model(cls, obligation: Obligation) -> ObligationRecord:
        revisions = sorted(obligation.revisions, key=lambda r: r.entry_seq)
        return cls(
            id=obligation.id,
            account_id=obligation.account_id,
            direction=Direction(obligation.direction),
            description=obligation.description,
            metal_type=MetalType(obligation.metal_type),
            calc_mode=CalcMode(obligation.calc_mode),
            gross_weight=round_weight(obligation.gross_weight),
            wastage_percent=obligation.wastage_percent,
            making_charge=round_cash(obligation.making_charge),
            manual_cash=round_cash(obligation.manual_cash),
            original=obligation.vector.rounded(),
            occurred_at=obligation.occurred_at,
            entry_seq=obligation.entry_seq,
            reversed_at=obligation.reversed_at,
            reversal_seq=obligation.reversal_seq,
            reversal_reason=obligation.reversal_reason,
            revisions=tuple(RevisionRecord.from_model(r) for r in revisions),
        )


@dataclass(frozen=True)
class SettlementRecord:
    """
    One payment/collection event.

    ``paid`` is what changed hands, ``applied`` is what was credited after
    cash-to-metal conversion.  An inverse settlement carries negated
    vectors and ``reversal_of_id``.
    """

    id: UUID
    account_id: UUID
    obligation_id: UUID | None
    direction: Direction
    mode: PaymentMode
    paid: AssetVector
    applied: AssetVector
    metal_rate: Decimal | None
    converted_weight: Decimal
    target_metal: MetalType
    description: str
    occurred_at: datetime
    entry_seq: int
    reversal_of_id: UUID | None = None

    @property
    def is_account_level(self) -> bool:
        return self.obligation_id is None

    @property
    def is_inverse(self) -> bool:
        return self.reversal_of_id is not None

    @classmethod
    def from_model(cls, settlement: Settlement) -> SettlementRecord:
        return cls(
            id=settlement.id,
            account_id=settlement.account_id,
            obligation_id=settlement.obligation_id,
            direction=Direction(settlement.direction),
            mode=PaymentMode(settlement.mode),
            paid=settlement.paid_vector.rounded(),
            applied=settlement.applied_vector.rounded(),
            metal_rate=settlement.metal_rate,
            converted_weight=round_weight(settlement.converted_weight),
            target_metal=MetalType(settlement.target_metal),
            description=settlement.description,
            occurred_at=settlement.occurred_at,
            entry_seq=settlement.entry_seq,
            reversal_of_id=settlement.reversal_of_id,
        )


@dataclass(frozen=True)
class ObligationView:
    """An obligation with its derived outstanding vector and status."""

    obligation: ObligationRecord
    settlements: tuple[SettlementRecord, ...]
    settled: AssetVector
    outstanding: AssetVector
    status: ObligationStatus

    @property
    def id(self) -> UUID:
        return self.obligation.id

    @property
    def is_settled(self) -> bool:
        return self.status is ObligationStatus.SETTLED


@dataclass(frozen=True)
class SettlementResult:
    settlement: SettlementRecord
    remaining: AssetVector
    status: ObligationStatus | None


@dataclass(frozen=True)
class AccountBalance:
    account: AccountRecord
    balance: AssetVector
    open_obligations: int


@dataclass(frozen=True)
class RefineryBatchRecord:
    id: UUID
    metal_type: MetalType
    reference: str
    pure_weight: Decimal
    used_weight: Decimal

    @property
    def available_weight(self) -> Decimal:
        return self.pure_weight - self.used_weight

    @classmethod
    def from_model(cls, batch: RefineryBatch) -> RefineryBatchRecord:
        return cls(
            id=batch.id,
            metal_type=MetalType(batch.metal_type),
            reference=batch.reference,
            pure_weight=round_weight(batch.pure_weight),
            used_weight=round_weight(batch.used_weight),
        )


@dataclass(frozen=True)
class TransferResult:
    batch: RefineryBatchRecord
    settlement: SettlementRecord
    account_balance: AssetVector
