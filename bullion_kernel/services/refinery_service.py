"""
RefineryService -- refined-stock batches available for metal settlements.

Only the stock ledger of a batch lives here: how much pure weight it
yielded and how much has been handed out.  The facade pairs a debit with
an account-level settlement in one transaction.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from bullion_kernel.db.types import round_weight, to_decimal
from bullion_kernel.domain.values import ZERO, MetalType
from bullion_kernel.exceptions import (
    InsufficientBatchStockError,
    RefineryBatchNotFoundError,
    ValidationError,
)
from bullion_kernel.logging_config import get_logger
from bullion_kernel.models.refinery import RefineryBatch
from bullion_kernel.services.base import SYSTEM_ACTOR_ID, BaseService

logger = get_logger("services.refinery")


class RefineryService(BaseService):
    def register_batch(
        self,
        metal_type: MetalType,
        reference: str,
        pure_weight: Decimal,
        actor_id: UUID | None = None,
    ) -> RefineryBatch:
        if not reference or not reference.strip():
            raise ValidationError("reference", "batch reference must not be blank")
        weight = self._weight(pure_weight, "pure_weight")

        batch = RefineryBatch(
            metal_type=MetalType(metal_type).value,
            reference=reference.strip(),
            pure_weight=weight,
            used_weight=ZERO,
            created_by_id=actor_id or SYSTEM_ACTOR_ID,
        )
        self.session.add(batch)
        self.session.flush()
        logger.info(
            "refinery_batch_registered",
            extra={"batch_id": str(batch.id), "metal_type": batch.metal_type, "pure_weight": weight},
        )
        return batch

    def lock(self, batch_id: UUID) -> RefineryBatch:
        batch = self.session.execute(
            select(RefineryBatch)
            .where(RefineryBatch.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if batch is None:
            raise RefineryBatchNotFoundError(str(batch_id))
        return batch

    def debit(self, batch: RefineryBatch, weight: Decimal, actor_id: UUID | None = None) -> Decimal:
        """
        Take ``weight`` out of the batch.

        Returns:
            The weight debited, rounded.
        """
        amount = self._weight(weight, "weight")
        available = batch.pure_weight - batch.used_weight
        if amount > available:
            raise InsufficientBatchStockError(str(batch.id), available, amount)

        batch.used_weight = batch.used_weight + amount
        batch.updated_by_id = actor_id or SYSTEM_ACTOR_ID
        self.session.flush()
        logger.info(
            "refinery_batch_debited",
            extra={"batch_id": str(batch.id), "weight": amount, "remaining": available - amount},
        )
        return amount

    def _weight(self, value: Decimal, field: str) -> Decimal:
        rounded = round_weight(to_decimal(value, field), self.rules.weight_places)
        if rounded <= ZERO:
            raise ValidationError(field, f"must be positive, got {value}")
        return rounded
