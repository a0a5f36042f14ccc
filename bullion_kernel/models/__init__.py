"""ORM models for the bullion ledger."""

from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.models.obligation import Obligation, ObligationRevision
from bullion_kernel.models.refinery import RefineryBatch
from bullion_kernel.models.settlement import Settlement

__all__ = [
    "LedgerAccount",
    "Obligation",
    "ObligationRevision",
    "RefineryBatch",
    "Settlement",
    "register_models",
]


def register_models() -> tuple[type, ...]:
    """Import every model so Base.metadata knows all tables."""
    return (LedgerAccount, Obligation, ObligationRevision, Settlement, RefineryBatch)
