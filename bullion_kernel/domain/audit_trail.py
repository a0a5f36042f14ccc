"""
Audit trail -- replayable, time-ordered view of an account's ledger.

Responsibility:
    Merges obligations, obligation revisions, settlements and reversals into
    one sequence ordered by (occurred_at, entry_seq), and computes a running
    per-dimension balance left to right.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - The closing balance of an unbounded trail equals
      account_net_balance() over the same records (verify_against()).
    - Nothing is ever dropped from the trail: a reversed obligation shows
      both its OBLIGATION entry and the REVERSED entry that cancels it; an
      edit shows as an ADJUSTMENT carrying the delta.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable
from uuid import UUID

from bullion_kernel.domain.dtos import ObligationRecord, SettlementRecord
from bullion_kernel.domain.outstanding import settlement_balance_effect
from bullion_kernel.domain.values import AssetVector, Direction
from bullion_kernel.exceptions import LedgerInconsistencyError


class TrailEntryKind(str, Enum):
    OBLIGATION = "OBLIGATION"
    SETTLEMENT = "SETTLEMENT"
    REVERSED = "REVERSED"
    ADJUSTMENT = "ADJUSTMENT"


@dataclass(frozen=True)
class AuditTrailEntry:
    """
    One line of the trail.

    ``vector`` is what the entry recorded (for an ADJUSTMENT, the change in
    the obligation's vector); ``delta`` is its signed effect on the net
    balance; ``running_balance`` is the balance after applying it.
    """

    kind: TrailEntryKind
    occurred_at: datetime
    entry_seq: int
    reference_id: UUID
    obligation_id: UUID | None
    direction: Direction
    description: str
    vector: AssetVector
    delta: AssetVector
    running_balance: AssetVector


@dataclass(frozen=True)
class AuditTrail:
    account_id: UUID
    start: datetime | None
    end: datetime | None
    opening_balance: AssetVector
    entries: tuple[AuditTrailEntry, ...]
    closing_balance: AssetVector

    @property
    def is_unbounded(self) -> bool:
        return self.end is None

    def verify_against(self, net_balance: AssetVector) -> None:
        """
        Raise if the replayed closing balance disagrees with the derived one.

        Only meaningful for a trail with no upper bound.
        """
        for dimension, replayed in self.closing_balance.items():
            derived = net_balance.get(dimension)
            if replayed != derived:
                raise LedgerInconsistencyError(
                    account_id=str(self.account_id),
                    dimension=dimension.value,
                    replayed=replayed,
                    derived=derived,
                )


@dataclass(frozen=True)
class _Event:
    kind: TrailEntryKind
    occurred_at: datetime
    entry_seq: int
    reference_id: UUID
    obligation_id: UUID | None
    direction: Direction
    description: str
    vector: AssetVector
    delta: AssetVector


def _obligation_events(obligation: ObligationRecord) -> list[_Event]:
    sign = obligation.direction.sign
    initial = obligation.initial_vector
    events = [
        _Event(
            kind=TrailEntryKind.OBLIGATION,
            occurred_at=obligation.occurred_at,
            entry_seq=obligation.entry_seq,
            reference_id=obligation.id,
            obligation_id=obligation.id,
            direction=obligation.direction,
            description=obligation.description,
            vector=initial,
            delta=initial.scaled(sign),
        )
    ]

    for revision in obligation.revisions:
        change = revision.new_vector - revision.previous_vector
        events.append(
            _Event(
                kind=TrailEntryKind.ADJUSTMENT,
                occurred_at=revision.occurred_at,
                entry_seq=revision.entry_seq,
                reference_id=revision.id,
                obligation_id=obligation.id,
                direction=obligation.direction,
                description=revision.note,
                vector=change,
                delta=(change - revision.settled_transfer).scaled(sign),
            )
        )

    if obligation.is_reversed:
        cancelled = obligation.original - obligation.settled_transfer
        events.append(
            _Event(
                kind=TrailEntryKind.REVERSED,
                occurred_at=obligation.reversed_at,
                entry_seq=obligation.reversal_seq,
                reference_id=obligation.id,
                obligation_id=obligation.id,
                direction=obligation.direction,
                description=obligation.reversal_reason or f"Reversal of {obligation.description}",
                vector=obligation.original,
                delta=cancelled.scaled(-sign),
            )
        )
    return events


def _settlement_event(settlement: SettlementRecord) -> _Event:
    return _Event(
        kind=TrailEntryKind.SETTLEMENT,
        occurred_at=settlement.occurred_at,
        entry_seq=settlement.entry_seq,
        reference_id=settlement.id,
        obligation_id=settlement.obligation_id,
        direction=settlement.direction,
        description=settlement.description,
        vector=settlement.applied,
        delta=settlement_balance_effect(settlement),
    )


def build_audit_trail(
    account_id: UUID,
    obligations: Iterable[ObligationRecord],
    settlements: Iterable[SettlementRecord],
    start: datetime | None = None,
    end: datetime | None = None,
) -> AuditTrail:
    """
    Assemble the trail for ``[start, end)``.

    Entries before ``start`` are folded into the opening balance so that the
    running balance inside the window is the true account balance.
    """
    events: list[_Event] = []
    for obligation in obligations:
        events.extend(_obligation_events(obligation))
    events.extend(_settlement_event(s) for s in settlements)
    events.sort(key=lambda e: (e.occurred_at, e.entry_seq))

    opening = AssetVector.zero()
    running = AssetVector.zero()
    entries: list[AuditTrailEntry] = []
    for event in events:
        if start is not None and event.occurred_at < start:
            opening = opening + event.delta
            running = opening
            continue
        if end is not None and event.occurred_at >= end:
            break
        running = running + event.delta
        entries.append(
            AuditTrailEntry(
                kind=event.kind,
                occurred_at=event.occurred_at,
                entry_seq=event.entry_seq,
                reference_id=event.reference_id,
                obligation_id=event.obligation_id,
                direction=event.direction,
                description=event.description,
                vector=event.vector,
                delta=event.delta,
                running_balance=running,
            )
        )

    return AuditTrail(
        account_id=account_id,
        start=start,
        end=end,
        opening_balance=opening,
        entries=tuple(entries),
        closing_balance=running,
    )
