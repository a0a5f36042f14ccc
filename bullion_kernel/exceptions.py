"""
Typed exception hierarchy for the bullion ledger kernel.

Every error has a typed class (catch by type, not by message), a machine
readable ``code`` class attribute, and carries its context as instance
attributes so it survives logging and API serialization.

    BullionLedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidVectorError
    |   +-- DimensionNotAllowedError
    |   +-- MissingConversionRateError
    |   +-- InvalidConversionRateError
    |   +-- MissingEditNoteError
    |
    +-- OverSettlementError
    |
    +-- LedgerStateError
    |   +-- ObligationHasSettlementsError
    |   +-- ObligationReversedError
    |   +-- SettlementAlreadyReversedError
    |   +-- AccountHasObligationsError
    |   +-- InsufficientBatchStockError
    |
    +-- ConcurrentModificationError
    |
    +-- UnknownReferenceError
    |   +-- AccountNotFoundError
    |   +-- ObligationNotFoundError
    |   +-- SettlementNotFoundError
    |   +-- RefineryBatchNotFoundError
    |
    +-- LedgerInconsistencyError

Category        | Code                          | When raised
----------------|-------------------------------|---------------------------------------
Validation      | VALIDATION_ERROR              | Negative / malformed input
                | INVALID_VECTOR                | Obligation carries no real value
                | DIMENSION_NOT_ALLOWED         | Silver on a gold-only account, etc.
                | MISSING_CONVERSION_RATE       | Cash converted to metal without a rate
                | INVALID_CONVERSION_RATE       | Rate is zero or negative
                | MISSING_EDIT_NOTE             | Edit submitted without a note
Settlement      | OVER_SETTLEMENT               | Payment exceeds outstanding
State           | OBLIGATION_HAS_SETTLEMENTS    | Edit/reverse blocked by settlements
                | OBLIGATION_REVERSED           | Target obligation was reversed
                | SETTLEMENT_ALREADY_REVERSED   | Second reversal of one settlement
                | ACCOUNT_HAS_OBLIGATIONS       | Account delete without cascade
                | INSUFFICIENT_BATCH_STOCK      | Refinery batch cannot cover transfer
Concurrency     | CONCURRENT_MODIFICATION       | Stale version; retry with fresh state
Reference       | UNKNOWN_REFERENCE             | Id does not exist (not retryable)
Audit           | LEDGER_INCONSISTENT           | Trail replay != derived balance
"""

from decimal import Decimal


class BullionLedgerError(Exception):
    """
    Base exception for all bullion ledger errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "BULLION_LEDGER_ERROR"


# Validation


class ValidationError(BullionLedgerError):
    """Input rejected before any store mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidVectorError(ValidationError):
    """The computed asset vector does not represent a real transfer of value."""

    code: str = "INVALID_VECTOR"

    def __init__(self, dimension: str, reason: str):
        self.dimension = dimension
        super().__init__(field=dimension, reason=reason)


class DimensionNotAllowedError(ValidationError):
    """The account's metal restriction forbids this dimension."""

    code: str = "DIMENSION_NOT_ALLOWED"

    def __init__(self, account_id: str, dimension: str, restriction: str):
        self.account_id = account_id
        self.dimension = dimension
        self.restriction = restriction
        super().__init__(
            field=dimension,
            reason=f"account {account_id} is restricted to {restriction}",
        )


class MissingConversionRateError(ValidationError):
    """Cash was offered against metal but no conversion rate was supplied."""

    code: str = "MISSING_CONVERSION_RATE"

    def __init__(self, mode: str, target_metal: str):
        self.mode = mode
        self.target_metal = target_metal
        super().__init__(
            field="metal_rate",
            reason=f"{mode} payment converts cash into {target_metal} and requires a rate",
        )


class InvalidConversionRateError(ValidationError):
    code: str = "INVALID_CONVERSION_RATE"

    def __init__(self, rate: Decimal):
        self.rate = rate
        super().__init__(field="metal_rate", reason=f"rate must be positive, got {rate}")


class MissingEditNoteError(ValidationError):
    code: str = "MISSING_EDIT_NOTE"

    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(field="note", reason="an edit note is required")


# Settlement


class OverSettlementError(BullionLedgerError):
    """Applying the payment would drive a dimension below zero beyond tolerance."""

    code: str = "OVER_SETTLEMENT"

    def __init__(
        self,
        target_id: str,
        dimension: str,
        outstanding: Decimal,
        attempted: Decimal,
        tolerance: Decimal,
    ):
        self.target_id = target_id
        self.dimension = dimension
        self.outstanding = outstanding
        self.attempted = attempted
        self.tolerance = tolerance
        super().__init__(
            f"Over-settlement of {dimension} on {target_id}: "
            f"outstanding {outstanding}, attempted {attempted} "
            f"(tolerance {tolerance})"
        )


# State


class LedgerStateError(BullionLedgerError):
    """The target's current state forbids the operation."""

    code: str = "LEDGER_STATE_ERROR"


class ObligationHasSettlementsError(LedgerStateError):
    """Edit or reversal blocked because settlements reference the obligation."""

    code: str = "OBLIGATION_HAS_SETTLEMENTS"

    def __init__(self, obligation_id: str, operation: str, settlement_count: int):
        self.obligation_id = obligation_id
        self.operation = operation
        self.settlement_count = settlement_count
        super().__init__(
            f"Cannot {operation} obligation {obligation_id}: "
            f"{settlement_count} settlement(s) recorded against it"
        )


class ObligationReversedError(LedgerStateError):
    code: str = "OBLIGATION_REVERSED"

    def __init__(self, obligation_id: str, operation: str):
        self.obligation_id = obligation_id
        self.operation = operation
        super().__init__(
            f"Cannot {operation} obligation {obligation_id}: it has been reversed"
        )


class SettlementAlreadyReversedError(LedgerStateError):
    code: str = "SETTLEMENT_ALREADY_REVERSED"

    def __init__(self, settlement_id: str):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement {settlement_id} has already been reversed")


class AccountHasObligationsError(LedgerStateError):
    code: str = "ACCOUNT_HAS_OBLIGATIONS"

    def __init__(self, account_id: str, obligation_count: int):
        self.account_id = account_id
        self.obligation_count = obligation_count
        super().__init__(
            f"Account {account_id} has {obligation_count} obligation(s); "
            "delete with cascade to remove them"
        )


class InsufficientBatchStockError(LedgerStateError):
    code: str = "INSUFFICIENT_BATCH_STOCK"

    def __init__(self, batch_id: str, available: Decimal, requested: Decimal):
        self.batch_id = batch_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Refinery batch {batch_id} has {available} g available, "
            f"{requested} g requested"
        )


# Concurrency


class ConcurrentModificationError(BullionLedgerError):
    """Optimistic version mismatch; the caller must retry with fresh state."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Unknown references


class UnknownReferenceError(BullionLedgerError):
    code: str = "UNKNOWN_REFERENCE"

    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class AccountNotFoundError(UnknownReferenceError):
    code: str = "ACCOUNT_NOT_FOUND"
    entity_type = "Account"


class ObligationNotFoundError(UnknownReferenceError):
    code: str = "OBLIGATION_NOT_FOUND"
    entity_type = "Obligation"


class SettlementNotFoundError(UnknownReferenceError):
    code: str = "SETTLEMENT_NOT_FOUND"
    entity_type = "Settlement"


class RefineryBatchNotFoundError(UnknownReferenceError):
    code: str = "REFINERY_BATCH_NOT_FOUND"
    entity_type = "Refinery batch"


# Audit


class LedgerInconsistencyError(BullionLedgerError):
    """Replaying the audit trail does not reproduce the derived net balance."""

    code: str = "LEDGER_INCONSISTENT"

    def __init__(self, account_id: str, dimension: str, replayed: Decimal, derived: Decimal):
        self.account_id = account_id
        self.dimension = dimension
        self.replayed = replayed
        self.derived = derived
        super().__init__(
            f"Audit trail for account {account_id} replays {dimension} to "
            f"{replayed}, derived balance is {derived}"
        )
