"""
Module: bullion_kernel.selectors.ledger_selector
Responsibility: Read path of the ledger.  Loads obligations, revisions and
    settlements as DTOs and hands them to the outstanding calculator and the
    audit-trail builder.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances: every view is recomputed from the records.
    - Records come back ordered by (occurred_at, entry_seq).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from bullion_kernel.domain.audit_trail import AuditTrail, build_audit_trail
from bullion_kernel.domain.dtos import (
    AccountBalance,
    AccountRecord,
    ObligationRecord,
    ObligationStatus,
    ObligationView,
    RefineryBatchRecord,
    SettlementRecord,
)
from bullion_kernel.domain.outstanding import account_net_balance, view_obligation
from bullion_kernel.domain.values import AssetVector
from bullion_kernel.exceptions import (
    AccountNotFoundError,
    ObligationNotFoundError,
    RefineryBatchNotFoundError,
    SettlementNotFoundError,
)
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.models.obligation import Obligation
from bullion_kernel.models.refinery import RefineryBatch
from bullion_kernel.models.settlement import Settlement
from bullion_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector):
    """Read-only queries over one account's ledger."""

    # -- Accounts ---------------------------------------------------------

    def get_account(self, account_id: UUID) -> AccountRecord:
        account = self.session.get(LedgerAccount, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return AccountRecord.from_model(account)

    def list_accounts(self) -> list[AccountRecord]:
        accounts = self.session.execute(
            select(LedgerAccount).order_by(LedgerAccount.name, LedgerAccount.id)
        ).scalars()
        return [AccountRecord.from_model(a) for a in accounts]

    def account_id_for_obligation(self, obligation_id: UUID) -> UUID:
        account_id = self.session.execute(
            select(Obligation.account_id).where(Obligation.id == obligation_id)
        ).scalar_one_or_none()
        if account_id is None:
            raise ObligationNotFoundError(str(obligation_id))
        return account_id

    def account_id_for_settlement(self, settlement_id: UUID) -> UUID:
        account_id = self.session.execute(
            select(Settlement.account_id).where(Settlement.id == settlement_id)
        ).scalar_one_or_none()
        if account_id is None:
            raise SettlementNotFoundError(str(settlement_id))
        return account_id

    # -- Records ----------------------------------------------------------

    def obligation_records(self, account_id: UUID) -> list[ObligationRecord]:
        rows = self.session.execute(
            select(Obligation)
            .where(Obligation.account_id == account_id)
            .order_by(Obligation.occurred_at, Obligation.entry_seq)
        ).scalars()
        return [ObligationRecord.from_model(o) for o in rows]

    def obligation_record(self, obligation_id: UUID) -> ObligationRecord:
        obligation = self.session.get(Obligation, obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(str(obligation_id))
        return ObligationRecord.from_model(obligation)

    def settlement_records(
        self,
        account_id: UUID,
        obligation_id: UUID | None = None,
    ) -> list[SettlementRecord]:
        stmt = select(Settlement).where(Settlement.account_id == account_id)
        if obligation_id is not None:
            stmt = stmt.where(Settlement.obligation_id == obligation_id)
        rows = self.session.execute(
            stmt.order_by(Settlement.occurred_at, Settlement.entry_seq)
        ).scalars()
        return [SettlementRecord.from_model(s) for s in rows]

    def settlement_record(self, settlement_id: UUID) -> SettlementRecord:
        settlement = self.session.get(Settlement, settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(str(settlement_id))
        return SettlementRecord.from_model(settlement)

    def inverse_of(self, settlement_id: UUID) -> SettlementRecord | None:
        inverse = self.session.execute(
            select(Settlement).where(Settlement.reversal_of_id == settlement_id)
        ).scalar_one_or_none()
        return SettlementRecord.from_model(inverse) if inverse is not None else None

    def batch_record(self, batch_id: UUID) -> RefineryBatchRecord:
        batch = self.session.get(RefineryBatch, batch_id)
        if batch is None:
            raise RefineryBatchNotFoundError(str(batch_id))
        return RefineryBatchRecord.from_model(batch)

    # -- Derived views ----------------------------------------------------

    def obligation_view(self, obligation_id: UUID, tolerance: AssetVector) -> ObligationView:
        obligation = self.obligation_record(obligation_id)
        settlements = self.settlement_records(obligation.account_id, obligation_id)
        return view_obligation(obligation, settlements, tolerance)

    def obligation_views(
        self,
        account_id: UUID,
        tolerance: AssetVector,
        include_reversed: bool = True,
    ) -> list[ObligationView]:
        self.get_account(account_id)
        settlements = self.settlement_records(account_id)
        views = [
            view_obligation(o, settlements, tolerance)
            for o in self.obligation_records(account_id)
        ]
        if not include_reversed:
            views = [v for v in views if v.status is not ObligationStatus.REVERSED]
        return views

    def net_balance(self, account_id: UUID) -> AssetVector:
        return account_net_balance(
            self.obligation_records(account_id),
            self.settlement_records(account_id),
        )

    def account_balance(self, account_id: UUID, tolerance: AssetVector) -> AccountBalance:
        account = self.get_account(account_id)
        obligations = self.obligation_records(account_id)
        settlements = self.settlement_records(account_id)
        open_count = sum(
            1
            for o in obligations
            if view_obligation(o, settlements, tolerance).status is ObligationStatus.OPEN
        )
        return AccountBalance(
            account=account,
            balance=account_net_balance(obligations, settlements),
            open_obligations=open_count,
        )

    def audit_trail(
        self,
        account_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AuditTrail:
        self.get_account(account_id)
        obligations = self.obligation_records(account_id)
        settlements = self.settlement_records(account_id)
        trail = build_audit_trail(account_id, obligations, settlements, start, end)
        if trail.is_unbounded:
            trail.verify_against(account_net_balance(obligations, settlements))
        return trail
