"""
AccountLedgerService -- the facade collaborators call.

Responsibility:
    Runs every ledger operation in its own transaction: resolves the
    account, serializes writers on it, delegates to the write services and
    returns freshly recomputed views.  Reads run in one session so every
    query sees the same snapshot.

Architecture position:
    Kernel > Services -- outermost kernel layer.  Owns commit/rollback
    (through session_scope); nothing below it commits.

Concurrency model:
    - One writer per account.  An in-process keyed lock serializes writers
      on the same account id, the account row is read FOR UPDATE, and the
      account's version column makes a write from a stale snapshot fail.
      StaleDataError surfaces as ConcurrentModificationError.
    - ``expected_version`` lets a caller reject a write made against state
      it has not seen.
    - On PostgreSQL reads run at REPEATABLE READ.

Failure modes:
    Every failure aborts the whole call; session_scope rolls back, so no
    partial write survives.  See bullion_kernel.exceptions for the types.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, Generator, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from bullion_kernel.db.engine import is_postgres, session_scope
from bullion_kernel.db.types import to_decimal
from bullion_kernel.domain.audit_trail import AuditTrail
from bullion_kernel.domain.clock import Clock, SystemClock
from bullion_kernel.domain.dtos import (
    AccountBalance,
    AccountKind,
    AccountRecord,
    ObligationView,
    PaymentMode,
    RefineryBatchRecord,
    SettlementRecord,
    SettlementResult,
    TransferResult,
)
from bullion_kernel.domain.outstanding import direction_pool
from bullion_kernel.domain.purity import CalcMode, ObligationInputs
from bullion_kernel.domain.rules import LedgerRules
from bullion_kernel.domain.values import ZERO, AssetVector, Direction, MetalRestriction, MetalType
from bullion_kernel.exceptions import (
    BullionLedgerError,
    ConcurrentModificationError,
    OverSettlementError,
    ValidationError,
)
from bullion_kernel.logging_config import LogContext, get_logger
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.selectors.ledger_selector import LedgerSelector
from bullion_kernel.services.account_service import AccountService
from bullion_kernel.services.obligation_service import ObligationService, inputs_of
from bullion_kernel.services.refinery_service import RefineryService
from bullion_kernel.services.settlement_service import SettlementService

logger = get_logger("services.ledger")

T = TypeVar("T")


class KeyedLock:
    """
    One re-entrant lock per key, created on demand.

    Locks are held weakly, so keys nobody is waiting on are forgotten.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    @contextmanager
    def hold(self, key: object) -> Generator[None, None, None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
        with lock:
            yield


# Shared by every facade in the process; writers on one account id queue here
_ACCOUNT_LOCKS = KeyedLock()


def _optional_decimal(value: object, field: str) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value, field)


def _keep(value: object, current: Decimal, field: str) -> Decimal:
    return current if value is None else to_decimal(value, field)


def _day_start(day: date | datetime | None) -> datetime | None:
    if day is None:
        return None
    if isinstance(day, datetime):
        return day if day.tzinfo else day.replace(tzinfo=timezone.utc)
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class AccountLedgerService:
    """
    Facade over the obligation/settlement ledger.

    Contract:
        Every public method is one transaction.  Writes return a view
        recomputed inside that transaction after the write.

    Guarantees:
        - Writers on one account never interleave within this process.
        - A failed call leaves the database as it was.

    Non-goals:
        - Authentication and permission checks belong to the caller.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        rules: LedgerRules | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._rules = rules or LedgerRules()
        self._clock = clock or SystemClock()
        self._locks = _ACCOUNT_LOCKS

    @property
    def rules(self) -> LedgerRules:
        return self._rules

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _reading(self) -> Generator[LedgerSelector, None, None]:
        with session_scope(self._session_factory) as session:
            if is_postgres(session.get_bind()):
                session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            yield LedgerSelector(session)

    def _writing(
        self,
        account_id: UUID,
        operation: str,
        work: Callable[[Session, LedgerAccount], T],
        expected_version: int | None = None,
    ) -> T:
        """Run ``work`` under the account's lock in one transaction."""
        with self._locks.hold(str(account_id)), LogContext.bind(account_id=account_id):
            try:
                with session_scope(self._session_factory) as session:
                    account = AccountService(session, self._clock, self._rules).lock(
                        account_id, expected_version
                    )
                    return work(session, account)
            except StaleDataError as exc:
                logger.warning(
                    "concurrent_modification_detected",
                    extra={"operation": operation},
                )
                raise ConcurrentModificationError("LedgerAccount", str(account_id)) from exc
            except BullionLedgerError as exc:
                logger.info(
                    "ledger_operation_rejected",
                    extra={"operation": operation, "error_code": exc.code},
                )
                raise

    def _services(self, session: Session) -> tuple[AccountService, ObligationService, SettlementService]:
        return (
            AccountService(session, self._clock, self._rules),
            ObligationService(session, self._clock, self._rules),
            SettlementService(session, self._clock, self._rules),
        )

    def _account_of_obligation(self, obligation_id: UUID) -> UUID:
        with self._reading() as selector:
            return selector.account_id_for_obligation(obligation_id)

    def _account_of_settlement(self, settlement_id: UUID) -> UUID:
        with self._reading() as selector:
            return selector.account_id_for_settlement(settlement_id)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(
        self,
        name: str,
        kind: AccountKind | str = AccountKind.VENDOR,
        metal_restriction: MetalRestriction | str = MetalRestriction.BOTH,
        default_calc_mode: CalcMode | str = CalcMode.TOUCH,
        contact_person: str | None = None,
        phone: str | None = None,
        actor_id: UUID | None = None,
    ) -> AccountRecord:
        with session_scope(self._session_factory) as session:
            account = AccountService(session, self._clock, self._rules).create(
                name,
                AccountKind(kind),
                MetalRestriction(metal_restriction),
                CalcMode(default_calc_mode),
                contact_person=contact_person,
                phone=phone,
                actor_id=actor_id,
            )
            return AccountRecord.from_model(account)

    def get_account(self, account_id: UUID) -> AccountRecord:
        with self._reading() as selector:
            return selector.get_account(account_id)

    def list_accounts(self) -> list[AccountBalance]:
        """Every account with its net balance."""
        with self._reading() as selector:
            return [
                selector.account_balance(account.id, self._rules.tolerance)
                for account in selector.list_accounts()
            ]

    def delete_account(
        self,
        account_id: UUID,
        cascade: bool = False,
        expected_version: int | None = None,
    ) -> int:
        """
        Delete an account; with ``cascade`` its whole history goes too.

        Returns:
            Number of obligations deleted.
        """

        def work(session: Session, account: LedgerAccount) -> int:
            return AccountService(session, self._clock, self._rules).delete(account, cascade)

        return self._writing(account_id, "delete_account", work, expected_version)

    # ------------------------------------------------------------------
    # Obligations
    # ------------------------------------------------------------------

    def add_obligation(
        self,
        account_id: UUID,
        direction: Direction | str,
        gross_weight: Decimal | int | str = ZERO,
        wastage_percent: Decimal | int | str = ZERO,
        calc_mode: CalcMode | str | None = None,
        metal_type: MetalType | str | None = None,
        making_charge: Decimal | int | str = ZERO,
        manual_cash: Decimal | int | str = ZERO,
        description: str | None = None,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ObligationView:
        """
        Record a new obligation and return it as an OPEN view.

        ``calc_mode`` falls back to the account's default and ``metal_type``
        to the account's restriction (gold unless silver-only).
        """
        direction = Direction(direction)

        def work(session: Session, account: LedgerAccount) -> ObligationView:
            accounts, obligations, _ = self._services(session)
            inputs = ObligationInputs(
                gross_weight=to_decimal(gross_weight, "gross_weight"),
                wastage_percent=to_decimal(wastage_percent, "wastage_percent"),
                calc_mode=CalcMode(calc_mode or account.default_calc_mode),
                metal_type=MetalType(
                    metal_type or MetalRestriction(account.metal_restriction).default_metal
                ),
                making_charge=to_decimal(making_charge, "making_charge"),
                manual_cash=to_decimal(manual_cash, "manual_cash"),
            )
            seq = accounts.touch(account, actor_id)
            obligation = obligations.create(
                account, seq, direction, inputs, description, actor_id
            )
            with LogContext.bind(obligation_id=obligation.id):
                return LedgerSelector(session).obligation_view(obligation.id, self._rules.tolerance)

        return self._writing(account_id, "add_obligation", work, expected_version)

    def edit_obligation(
        self,
        obligation_id: UUID,
        note: str,
        gross_weight: Decimal | int | str | None = None,
        wastage_percent: Decimal | int | str | None = None,
        calc_mode: CalcMode | str | None = None,
        metal_type: MetalType | str | None = None,
        making_charge: Decimal | int | str | None = None,
        manual_cash: Decimal | int | str | None = None,
        description: str | None = None,
        acknowledge_recalculation: bool = False,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ObligationView:
        """
        Change an obligation's inputs.  Omitted inputs keep their value.

        Blocked by existing settlements unless ``acknowledge_recalculation``
        is set, in which case the settlements must still fit.
        """
        account_id = self._account_of_obligation(obligation_id)

        def work(session: Session, account: LedgerAccount) -> ObligationView:
            accounts, obligations, _ = self._services(session)
            selector = LedgerSelector(session)
            obligation = obligations.get(obligation_id)
            current = inputs_of(obligation)
            inputs = ObligationInputs(
                gross_weight=_keep(gross_weight, current.gross_weight, "gross_weight"),
                wastage_percent=_keep(wastage_percent, current.wastage_percent, "wastage_percent"),
                calc_mode=CalcMode(calc_mode) if calc_mode else current.calc_mode,
                metal_type=MetalType(metal_type) if metal_type else current.metal_type,
                making_charge=_keep(making_charge, current.making_charge, "making_charge"),
                manual_cash=_keep(manual_cash, current.manual_cash, "manual_cash"),
            )
            settlements = selector.settlement_records(account.id, obligation_id)
            seq = accounts.touch(account, actor_id)
            obligations.edit(
                account,
                seq,
                obligation,
                inputs,
                note,
                settlements,
                acknowledge_recalculation=acknowledge_recalculation,
                description=description,
                actor_id=actor_id,
            )
            return selector.obligation_view(obligation_id, self._rules.tolerance)

        with LogContext.bind(obligation_id=obligation_id):
            return self._writing(account_id, "edit_obligation", work, expected_version)

    def reverse_obligation(
        self,
        obligation_id: UUID,
        reason: str | None = None,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> ObligationView:
        """Soft-reverse an obligation nobody has paid against."""
        account_id = self._account_of_obligation(obligation_id)

        def work(session: Session, account: LedgerAccount) -> ObligationView:
            accounts, obligations, _ = self._services(session)
            selector = LedgerSelector(session)
            obligation = obligations.get(obligation_id)
            settlement_count = len(selector.settlement_records(account.id, obligation_id))
            seq = accounts.touch(account, actor_id)
            obligations.reverse(seq, obligation, settlement_count, reason, actor_id)
            return selector.obligation_view(obligation_id, self._rules.tolerance)

        with LogContext.bind(obligation_id=obligation_id):
            return self._writing(account_id, "reverse_obligation", work, expected_version)

    def get_obligation(self, obligation_id: UUID) -> ObligationView:
        with self._reading() as selector:
            return selector.obligation_view(obligation_id, self._rules.tolerance)

    def list_obligations(
        self,
        account_id: UUID,
        include_reversed: bool = True,
    ) -> list[ObligationView]:
        with self._reading() as selector:
            return selector.obligation_views(account_id, self._rules.tolerance, include_reversed)

    # ------------------------------------------------------------------
    # Settlements
    # ------------------------------------------------------------------

    def settle(
        self,
        obligation_id: UUID | None = None,
        account_id: UUID | None = None,
        direction: Direction | str | None = None,
        mode: PaymentMode | str = PaymentMode.METAL,
        gold: Decimal | int | str = ZERO,
        silver: Decimal | int | str = ZERO,
        cash: Decimal | int | str = ZERO,
        metal_rate: Decimal | int | str | None = None,
        metal_type: MetalType | str | None = None,
        description: str | None = None,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> SettlementResult:
        """
        Record a payment against an obligation or, with ``account_id`` and
        ``direction``, against the account as a whole.

        Returns:
            The settlement and the freshly recomputed remaining vector
            (clamped at zero).  ``status`` is the obligation's status after
            the payment, or None for an account-level settlement.
        """
        if (obligation_id is None) == (account_id is None):
            raise ValidationError("target", "exactly one of obligation_id or account_id is required")
        if obligation_id is None and direction is None:
            raise ValidationError("direction", "account-level settlements need a direction")

        mode = PaymentMode(mode)
        paid = AssetVector(
            gold=to_decimal(gold, "gold"),
            silver=to_decimal(silver, "silver"),
            cash=to_decimal(cash, "cash"),
        )
        rate = _optional_decimal(metal_rate, "metal_rate")
        target_metal = MetalType(metal_type) if metal_type else None

        if obligation_id is not None:
            target_account = self._account_of_obligation(obligation_id)
        else:
            target_account = account_id

        def work(session: Session, account: LedgerAccount) -> SettlementResult:
            accounts, _, settlements = self._services(session)
            selector = LedgerSelector(session)
            seq = accounts.touch(account, actor_id)
            tolerance = self._rules.tolerance

            if obligation_id is not None:
                obligation = selector.obligation_record(obligation_id)
                history = selector.settlement_records(account.id)
                pool = direction_pool(
                    obligation.direction, selector.obligation_records(account.id), history
                )
                settlement, _ = settlements.settle_obligation(
                    account, seq, obligation, history, mode, paid, rate, target_metal,
                    description, actor_id, pool=pool,
                )
                view = selector.obligation_view(obligation_id, tolerance)
                return SettlementResult(
                    settlement=SettlementRecord.from_model(settlement),
                    remaining=view.outstanding,
                    status=view.status,
                )

            settlement, after = settlements.settle_account(
                account,
                seq,
                Direction(direction),
                selector.obligation_records(account.id),
                selector.settlement_records(account.id),
                mode,
                paid,
                rate,
                target_metal,
                description,
                actor_id,
            )
            return SettlementResult(
                settlement=SettlementRecord.from_model(settlement),
                remaining=after.clamp_at_zero(),
                status=None,
            )

        try:
            with LogContext.bind(obligation_id=obligation_id):
                return self._writing(target_account, "settle", work, expected_version)
        except OverSettlementError as exc:
            logger.warning(
                "settlement_rejected",
                extra={
                    "dimension": exc.dimension,
                    "outstanding": exc.outstanding,
                    "attempted": exc.attempted,
                },
            )
            raise

    def reverse_settlement(
        self,
        settlement_id: UUID,
        reason: str | None = None,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> SettlementResult:
        """Undo a settlement by appending its inverse."""
        account_id = self._account_of_settlement(settlement_id)

        def work(session: Session, account: LedgerAccount) -> SettlementResult:
            accounts, _, settlements = self._services(session)
            selector = LedgerSelector(session)
            original = selector.settlement_record(settlement_id)
            seq = accounts.touch(account, actor_id)
            bound = None
            if original.obligation_id is not None:
                bound = selector.obligation_record(original.obligation_id)
            inverse = settlements.reverse(account, seq, original, reason, actor_id, obligation=bound)
            record = SettlementRecord.from_model(inverse)

            if original.obligation_id is not None:
                view = selector.obligation_view(original.obligation_id, self._rules.tolerance)
                return SettlementResult(record, view.outstanding, view.status)

            pool = direction_pool(
                original.direction,
                selector.obligation_records(account.id),
                selector.settlement_records(account.id),
            )
            return SettlementResult(record, pool.clamp_at_zero(), None)

        with LogContext.bind(settlement_id=settlement_id):
            return self._writing(account_id, "reverse_settlement", work, expected_version)

    def settlement_history(
        self,
        account_id: UUID,
        obligation_id: UUID | None = None,
    ) -> list[SettlementRecord]:
        with self._reading() as selector:
            selector.get_account(account_id)
            return selector.settlement_records(account_id, obligation_id)

    # ------------------------------------------------------------------
    # Balances and trail
    # ------------------------------------------------------------------

    def account_balance(self, account_id: UUID) -> AccountBalance:
        with self._reading() as selector:
            return selector.account_balance(account_id, self._rules.tolerance)

    def audit_trail(
        self,
        account_id: UUID,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
    ) -> AuditTrail:
        """
        Replay an account's ledger.

        ``date_to`` is inclusive for a date (the trail ends at the start of
        the following day) and exclusive for a datetime.
        """
        start = _day_start(date_from)
        if date_to is None:
            end = None
        elif isinstance(date_to, datetime):
            end = _day_start(date_to)
        else:
            end = _day_start(date_to + timedelta(days=1))
        if start is not None and end is not None and end <= start:
            raise ValidationError("date_to", "must not be before date_from")

        with self._reading() as selector:
            trail = selector.audit_trail(account_id, start, end)
        logger.debug(
            "audit_trail_built",
            extra={"account_id": str(account_id), "entries": len(trail.entries)},
        )
        return trail

    # ------------------------------------------------------------------
    # Refinery
    # ------------------------------------------------------------------

    def register_refinery_batch(
        self,
        metal_type: MetalType | str,
        reference: str,
        pure_weight: Decimal | int | str,
        actor_id: UUID | None = None,
    ) -> RefineryBatchRecord:
        with session_scope(self._session_factory) as session:
            batch = RefineryService(session, self._clock, self._rules).register_batch(
                MetalType(metal_type), reference, to_decimal(pure_weight, "pure_weight"), actor_id
            )
            return RefineryBatchRecord.from_model(batch)

    def get_refinery_batch(self, batch_id: UUID) -> RefineryBatchRecord:
        with self._reading() as selector:
            return selector.batch_record(batch_id)

    def transfer_refined_stock(
        self,
        batch_id: UUID,
        account_id: UUID,
        weight: Decimal | int | str,
        description: str | None = None,
        actor_id: UUID | None = None,
        expected_version: int | None = None,
    ) -> TransferResult:
        """
        Hand refined metal to an account we owe metal to.

        Debits the batch and records an account-level BORROW metal
        settlement in one transaction; if either step fails neither is
        kept.
        """
        amount = to_decimal(weight, "weight")

        def work(session: Session, account: LedgerAccount) -> TransferResult:
            accounts, _, settlements = self._services(session)
            refinery = RefineryService(session, self._clock, self._rules)
            selector = LedgerSelector(session)

            batch = refinery.lock(batch_id)
            metal = MetalType(batch.metal_type)
            debited = refinery.debit(batch, amount, actor_id)
            seq = accounts.touch(account, actor_id)
            settlement, _ = settlements.settle_account(
                account,
                seq,
                Direction.BORROW,
                selector.obligation_records(account.id),
                selector.settlement_records(account.id),
                PaymentMode.METAL,
                AssetVector.of_metal(metal, debited),
                target_metal=metal,
                description=description or f"Refined stock from batch {batch.reference}",
                actor_id=actor_id,
            )
            logger.info(
                "refined_stock_transferred",
                extra={"batch_id": str(batch.id), "weight": debited, "settlement_id": str(settlement.id)},
            )
            return TransferResult(
                batch=RefineryBatchRecord.from_model(batch),
                settlement=SettlementRecord.from_model(settlement),
                account_balance=selector.net_balance(account.id),
            )

        return self._writing(account_id, "transfer_refined_stock", work, expected_version)
