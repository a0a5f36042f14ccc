"""
Module: bullion_kernel.models.refinery
Responsibility: ORM persistence for refinery batches -- recovered pure metal
    available to settle metal debts with.
Architecture position: Kernel > Models.

The recovery workflow (melting, assaying) lives elsewhere; this row only
tracks how much pure weight a batch yielded and how much of it has been
handed out.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from bullion_kernel.db.base import TrackedBase


class RefineryBatch(TrackedBase):
    __tablename__ = "refinery_batches"

    __table_args__ = (
        CheckConstraint("used_weight <= pure_weight", name="ck_refinery_batch_not_overdrawn"),
    )

    # GOLD | SILVER
    metal_type: Mapped[str] = mapped_column(String(10), nullable=False)

    reference: Mapped[str] = mapped_column(String(255), nullable=False)

    pure_weight: Mapped[Decimal] = mapped_column(nullable=False)

    used_weight: Mapped[Decimal] = mapped_column(nullable=False)

    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<RefineryBatch {self.reference} {self.metal_type} {self.used_weight}/{self.pure_weight}>"
