"""
BaseService -- abstract base for the ledger's write services.

Responsibility:
    Holds the session, clock and rules every write service needs.  Services
    persist with ``session.flush()`` and never commit or roll back; the
    ledger facade owns the transaction, so a multi-step operation (debit a
    refinery batch and record a settlement) is all-or-nothing.

Architecture position:
    Kernel > Services -- imperative shell over the pure domain core.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from bullion_kernel.domain.clock import Clock, SystemClock
from bullion_kernel.domain.rules import LedgerRules

# Written into created_by_id when no caller identity is supplied
SYSTEM_ACTOR_ID = UUID(int=0)


class BaseService(ABC):
    """
    Contract:
        Accepts a Session from the caller and flushes within its
        transaction.

    Non-goals:
        - Does NOT manage commit/rollback.
        - Does NOT provide read views; those live in ``selectors/``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: LedgerRules | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.rules = rules or LedgerRules()
