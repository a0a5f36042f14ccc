"""Read-only selectors returning ledger DTOs."""

from bullion_kernel.selectors.base import BaseSelector
from bullion_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["BaseSelector", "LedgerSelector"]
