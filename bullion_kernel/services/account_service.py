"""
AccountService -- account creation, row locking and deletion.

Responsibility:
    Owns the account row, which doubles as the per-account write lock.
    Every ledger write locks the account (SELECT ... FOR UPDATE) and draws
    an entry sequence from it; drawing the sequence updates the row, which
    bumps the optimistic-lock version.

Architecture position:
    Kernel > Services -- imperative shell.

Failure modes:
    - AccountNotFoundError: unknown account id.
    - ConcurrentModificationError: caller's expected_version is stale.
    - AccountHasObligationsError: delete without cascade on an account with
      history.
    - ValidationError: blank account name.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select

from bullion_kernel.domain.dtos import AccountKind
from bullion_kernel.domain.purity import CalcMode
from bullion_kernel.domain.values import MetalRestriction
from bullion_kernel.exceptions import (
    AccountHasObligationsError,
    AccountNotFoundError,
    ConcurrentModificationError,
    ValidationError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.models.obligation import Obligation, ObligationRevision
from bullion_kernel.models.settlement import Settlement
from bullion_kernel.services.base import SYSTEM_ACTOR_ID, BaseService

logger = get_logger("services.account")


class AccountService(BaseService):
    def create(
        self,
        name: str,
        kind: AccountKind,
        metal_restriction: MetalRestriction,
        default_calc_mode: CalcMode,
        contact_person: str | None = None,
        phone: str | None = None,
        actor_id: UUID | None = None,
    ) -> LedgerAccount:
        if not name or not name.strip():
            raise ValidationError("name", "account name must not be blank")

        account = LedgerAccount(
            kind=AccountKind(kind).value,
            name=name.strip(),
            metal_restriction=MetalRestriction(metal_restriction).value,
            default_calc_mode=CalcMode(default_calc_mode).value,
            contact_person=contact_person,
            phone=phone,
            entry_seq=0,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        self.session.add(account)
        self.session.flush()
        logger.info(
            "account_created",
            extra={"account_id": str(account.id), "kind": account.kind},
        )
        return account

    def get(self, account_id: UUID) -> LedgerAccount:
        account = self.session.get(LedgerAccount, account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def lock(self, account_id: UUID, expected_version: int | None = None) -> LedgerAccount:
        """
        Load the account row for writing.

        On PostgreSQL the row stays locked until the transaction ends; the
        fresh read (populate_existing) means the version compared below is
        the committed one, not a cached copy.
        """
        account = self.session.execute(
            select(LedgerAccount)
            .where(LedgerAccount.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))

        if expected_version is not None and account.version != expected_version:
            raise ConcurrentModificationError(
                entity_type="LedgerAccount",
                entity_id=str(account_id),
                expected_version=expected_version,
                actual_version=account.version,
            )
        return account

    def touch(self, account: LedgerAccount, actor_id: UUID | None = None) -> int:
        """Draw the next entry sequence and record who wrote."""
        seq = account.next_seq()
        account.updated_by_id = actor_id or SYSTEM_ACTOR_ID
        return seq

    def obligation_count(self, account_id: UUID) -> int:
        return self.session.execute(
            select(func.count()).select_from(Obligation).where(Obligation.account_id == account_id)
        ).scalar_one()

    def delete(self, account: LedgerAccount, cascade: bool = False) -> int:
        """
        Delete an account.

        Returns:
            Number of obligations removed with it.
        """
        count = self.obligation_count(account.id)
        if count and not cascade:
            raise AccountHasObligationsError(str(account.id), count)

        # Children first; settlements reference obligations
        obligation_ids = select(Obligation.id).where(Obligation.account_id == account.id)
        self.session.execute(
            delete(Settlement)
            .where(Settlement.account_id == account.id)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            delete(ObligationRevision)
            .where(ObligationRevision.obligation_id.in_(obligation_ids))
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            delete(Obligation)
            .where(Obligation.account_id == account.id)
            .execution_options(synchronize_session=False)
        )

        self.session.delete(account)
        self.session.flush()
        logger.info(
            "account_deleted",
            extra={"account_id": str(account.id), "cascade": cascade, "obligations_removed": count},
        )
        return count
