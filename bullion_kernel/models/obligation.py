"""
Module: bullion_kernel.models.obligation
Responsibility: ORM persistence for obligations (one borrow/lend event) and
    their revisions (edits of the calculation inputs).
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.

Invariants enforced:
    - Obligations are never physically deleted by ledger operations; a
      reversal sets reversed_at / reversal_seq / reversal_reason.
    - Every edit writes one ObligationRevision holding the previous and new
      vectors, so the audit trail can replay the obligation's history.
    - Stored vector components are non-negative and already rounded.

Audit relevance:
    settled_transfer_* on a revision records settled metal that a
    metal-type switch moved between the gold and silver dimensions;
    settlement rows themselves stay untouched.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_kernel.db.base import TrackedBase, UUIDString
from bullion_kernel.domain.values import AssetVector


class Obligation(TrackedBase):
    """
    A recorded debt between the business and an account.

    Contract:
        direction BORROW means we owe the counterparty, LEND means they owe
        us.  The vector holds the pure weight in the metal_type dimension
        and making charge plus manual cash in the cash dimension.

    Non-goals:
        - Outstanding amounts are NOT stored; see domain.outstanding.
    """

    __tablename__ = "obligations"

    __table_args__ = (
        Index("idx_obligation_account", "account_id"),
        Index("idx_obligation_account_order", "account_id", "occurred_at", "entry_seq"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_accounts.id"),
        nullable=False,
    )

    # BORROW | LEND
    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    description: Mapped[str] = mapped_column(String(1000), nullable=False)

    # Calculation inputs
    metal_type: Mapped[str] = mapped_column(String(10), nullable=False)
    calc_mode: Mapped[str] = mapped_column(String(10), nullable=False)
    gross_weight: Mapped[Decimal] = mapped_column(nullable=False)
    wastage_percent: Mapped[Decimal] = mapped_column(nullable=False)
    making_charge: Mapped[Decimal] = mapped_column(nullable=False)
    manual_cash: Mapped[Decimal] = mapped_column(nullable=False)

    # Resulting vector
    gold: Mapped[Decimal] = mapped_column(nullable=False)
    silver: Mapped[Decimal] = mapped_column(nullable=False)
    cash: Mapped[Decimal] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    entry_seq: Mapped[int] = mapped_column(nullable=False)

    # Soft reversal
    reversed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reversal_seq: Mapped[int | None] = mapped_column(nullable=True)
    reversal_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    revisions: Mapped[list["ObligationRevision"]] = relationship(
        back_populates="obligation",
        order_by="ObligationRevision.entry_seq",
        lazy="selectin",
    )

    @property
    def vector(self) -> AssetVector:
        return AssetVector(gold=self.gold, silver=self.silver, cash=self.cash)

    @vector.setter
    def vector(self, value: AssetVector) -> None:
        self.gold = value.gold
        self.silver = value.silver
        self.cash = value.cash

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None

    def __repr__(self) -> str:
        return f"<Obligation {self.direction} {self.vector}>"


class ObligationRevision(TrackedBase):
    """
    One edit of an obligation.

    Holds both sides of the change (inputs and vectors) and the note the
    operator gave.  Immutable once written.
    """

    __tablename__ = "obligation_revisions"

    __table_args__ = (Index("idx_revision_obligation", "obligation_id"),)

    obligation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("obligations.id"),
        nullable=False,
    )

    note: Mapped[str] = mapped_column(String(1000), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    entry_seq: Mapped[int] = mapped_column(nullable=False)

    previous_metal_type: Mapped[str] = mapped_column(String(10), nullable=False)
    previous_calc_mode: Mapped[str] = mapped_column(String(10), nullable=False)
    previous_gross_weight: Mapped[Decimal] = mapped_column(nullable=False)
    previous_wastage_percent: Mapped[Decimal] = mapped_column(nullable=False)
    previous_making_charge: Mapped[Decimal] = mapped_column(nullable=False)
    previous_manual_cash: Mapped[Decimal] = mapped_column(nullable=False)
    previous_gold: Mapped[Decimal] = mapped_column(nullable=False)
    previous_silver: Mapped[Decimal] = mapped_column(nullable=False)
    previous_cash: Mapped[Decimal] = mapped_column(nullable=False)

    new_metal_type: Mapped[str] = mapped_column(String(10), nullable=False)
    new_calc_mode: Mapped[str] = mapped_column(String(10), nullable=False)
    new_gross_weight: Mapped[Decimal] = mapped_column(nullable=False)
    new_wastage_percent: Mapped[Decimal] = mapped_column(nullable=False)
    new_making_charge: Mapped[Decimal] = mapped_column(nullable=False)
    new_manual_cash: Mapped[Decimal] = mapped_column(nullable=False)
    new_gold: Mapped[Decimal] = mapped_column(nullable=False)
    new_silver: Mapped[Decimal] = mapped_column(nullable=False)
    new_cash: Mapped[Decimal] = mapped_column(nullable=False)

    # Settled metal moved between dimensions by a metal-type switch
    settled_transfer_gold: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    settled_transfer_silver: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    obligation: Mapped[Obligation] = relationship(back_populates="revisions")

    @property
    def previous_vector(self) -> AssetVector:
        return AssetVector(self.previous_gold, self.previous_silver, self.previous_cash)

    @property
    def new_vector(self) -> AssetVector:
        return AssetVector(self.new_gold, self.new_silver, self.new_cash)

    @property
    def settled_transfer(self) -> AssetVector:
        return AssetVector(gold=self.settled_transfer_gold, silver=self.settled_transfer_silver)
