"""Services for the bullion kernel (write side)."""

from bullion_kernel.services.account_service import AccountService
from bullion_kernel.services.ledger_service import AccountLedgerService, KeyedLock
from bullion_kernel.services.obligation_service import ObligationService
from bullion_kernel.services.refinery_service import RefineryService
from bullion_kernel.services.settlement_service import SettlementService

__all__ = [
    "AccountLedgerService",
    "AccountService",
    "KeyedLock",
    "ObligationService",
    "RefineryService",
    "SettlementService",
]
