"""
Pure domain core of the bullion ledger: value objects, purity math, the
outstanding calculator and audit-trail replay.  No I/O, no ORM.
"""

from bullion_kernel.domain.audit_trail import (
    AuditTrail,
    AuditTrailEntry,
    TrailEntryKind,
    build_audit_trail,
)
from bullion_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from bullion_kernel.domain.dtos import (
    AccountBalance,
    AccountKind,
    AccountRecord,
    ObligationRecord,
    ObligationStatus,
    ObligationView,
    PaymentMode,
    RefineryBatchRecord,
    RevisionRecord,
    SettlementRecord,
    SettlementResult,
    TransferResult,
)
from bullion_kernel.domain.outstanding import (
    PaymentApplication,
    account_net_balance,
    apply_payment,
    check_over_settlement,
    direction_pool,
    is_settled,
    outstanding,
    view_obligation,
)
from bullion_kernel.domain.purity import (
    CalcMode,
    ObligationInputs,
    build_obligation_vector,
    compute_pure_weight,
)
from bullion_kernel.domain.rules import DEFAULT_TOLERANCE, LedgerRules
from bullion_kernel.domain.values import (
    AssetVector,
    Dimension,
    Direction,
    MetalRestriction,
    MetalType,
)

__all__ = [
    "AccountBalance",
    "AccountKind",
    "AccountRecord",
    "AssetVector",
    "AuditTrail",
    "AuditTrailEntry",
    "CalcMode",
    "DEFAULT_TOLERANCE",
    "Clock",
    "DeterministicClock",
    "Dimension",
    "Direction",
    "LedgerRules",
    "MetalRestriction",
    "MetalType",
    "ObligationInputs",
    "ObligationRecord",
    "ObligationStatus",
    "ObligationView",
    "PaymentApplication",
    "PaymentMode",
    "RefineryBatchRecord",
    "RevisionRecord",
    "SettlementRecord",
    "SettlementResult",
    "SystemClock",
    "TrailEntryKind",
    "TransferResult",
    "account_net_balance",
    "apply_payment",
    "build_audit_trail",
    "build_obligation_vector",
    "check_over_settlement",
    "compute_pure_weight",
    "direction_pool",
    "is_settled",
    "outstanding",
    "view_obligation",
]
