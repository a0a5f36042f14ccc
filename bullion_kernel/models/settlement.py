"""
Module: bullion_kernel.models.settlement
Responsibility: ORM persistence for settlements -- payments and collections
    against one obligation or against an account as a whole.
Architecture position: Kernel > Models.  May import from db/ and
    domain/values only.

Invariants enforced:
    - Settlement rows are append-only.  A mistaken settlement is undone by
      an inverse row (negated paid/applied vectors, reversal_of_id set);
      the original row is never updated or deleted by ledger operations.
    - obligation_id NULL marks an account-level settlement, which then
      draws on the open pool of its direction.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import TrackedBase, UUIDString
from bullion_kernel.domain.values import AssetVector


class Settlement(TrackedBase):
    """
    One payment or collection event.

    Contract:
        ``paid_*`` is what physically changed hands; ``applied_*`` is what
        was credited after converting cash to metal at ``metal_rate``.

    Guarantees:
        - At most one inverse per settlement (uq_settlement_reversal_of).
    """

    __tablename__ = "settlements"

    __table_args__ = (
        UniqueConstraint("reversal_of_id", name="uq_settlement_reversal_of"),
        Index("idx_settlement_account", "account_id"),
        Index("idx_settlement_obligation", "obligation_id"),
        Index("idx_settlement_account_order", "account_id", "occurred_at", "entry_seq"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_accounts.id"),
        nullable=False,
    )

    obligation_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("obligations.id"),
        nullable=True,
    )

    # BORROW (we repay) | LEND (we collect)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    # METAL | CASH | BOTH
    mode: Mapped[str] = mapped_column(String(10), nullable=False)

    paid_gold: Mapped[Decimal] = mapped_column(nullable=False)
    paid_silver: Mapped[Decimal] = mapped_column(nullable=False)
    paid_cash: Mapped[Decimal] = mapped_column(nullable=False)

    applied_gold: Mapped[Decimal] = mapped_column(nullable=False)
    applied_silver: Mapped[Decimal] = mapped_column(nullable=False)
    applied_cash: Mapped[Decimal] = mapped_column(nullable=False)

    metal_rate: Mapped[Decimal | None] = mapped_column(Numeric(38, 18), nullable=True)
    converted_weight: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    target_metal: Mapped[str] = mapped_column(String(10), nullable=False)

    description: Mapped[str] = mapped_column(String(1000), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    entry_seq: Mapped[int] = mapped_column(nullable=False)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("settlements.id"),
        nullable=True,
    )

    @property
    def paid_vector(self) -> AssetVector:
        return AssetVector(self.paid_gold, self.paid_silver, self.paid_cash)

    @paid_vector.setter
    def paid_vector(self, value: AssetVector) -> None:
        self.paid_gold, self.paid_silver, self.paid_cash = value.gold, value.silver, value.cash

    @property
    def applied_vector(self) -> AssetVector:
        return AssetVector(self.applied_gold, self.applied_silver, self.applied_cash)

    @applied_vector.setter
    def applied_vector(self, value: AssetVector) -> None:
        self.applied_gold, self.applied_silver, self.applied_cash = (
            value.gold,
            value.silver,
            value.cash,
        )

    @property
    def is_account_level(self) -> bool:
        return self.obligation_id is None

    def __repr__(self) -> str:
        return f"<Settlement {self.direction} {self.mode} {self.applied_vector}>"
