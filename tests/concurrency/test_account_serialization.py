"""
Concurrency on one account: optimistic version checks and serialized
writers.

These run against a file-backed SQLite database so that every session gets
its own connection.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from bullion_kernel.db.engine import session_scope
from bullion_kernel.domain.dtos import ObligationStatus
from bullion_kernel.domain.values import AssetVector, Direction
from bullion_kernel.exceptions import ConcurrentModificationError, OverSettlementError
from bullion_kernel.models.account import LedgerAccount
from bullion_kernel.services.account_service import AccountService
from bullion_kernel.services.ledger_service import KeyedLock

pytestmark = [pytest.mark.slow_locks]


class TestVersionColumn:
    def test_stale_snapshot_cannot_write(self, file_ledger, file_session_factory):
        account = file_ledger.create_account("Sagar Bullion")

        stale = file_session_factory()
        try:
            loaded = stale.get(LedgerAccount, account.id)
            assert loaded.version == 1

            file_ledger.add_obligation(account.id, Direction.BORROW, manual_cash="100")

            loaded.phone = "080 2222 3333"
            with pytest.raises(StaleDataError):
                stale.flush()
        finally:
            stale.rollback()
            stale.close()

    def test_interleaved_writer_surfaces_as_concurrent_modification(
        self, file_ledger, file_session_factory, monkeypatch, captured_logs
    ):
        account = file_ledger.create_account("Sagar Bullion")
        original_lock = AccountService.lock

        def lock_then_interfere(self, account_id, expected_version=None):
            locked = original_lock(self, account_id, expected_version)
            # Another process updates the row between our read and our write
            with session_scope(file_session_factory) as other:
                other.get(LedgerAccount, account_id).phone = "080 1111 0000"
            return locked

        monkeypatch.setattr(AccountService, "lock", lock_then_interfere)
        with pytest.raises(ConcurrentModificationError) as exc:
            file_ledger.add_obligation(account.id, Direction.BORROW, manual_cash="100")
        assert exc.value.entity_id == str(account.id)

        monkeypatch.undo()
        assert file_ledger.list_obligations(account.id) == []
        assert any(r["message"] == "concurrent_modification_detected" for r in captured_logs())


class TestExpectedVersion:
    def test_stale_expected_version_rejected(self, ledger, vendor):
        ob = ledger.add_obligation(vendor.id, Direction.BORROW, gross_weight="2", wastage_percent="100")
        with pytest.raises(ConcurrentModificationError) as exc:
            ledger.settle(obligation_id=ob.id, gold="1", expected_version=vendor.version)
        assert exc.value.expected_version == vendor.version
        assert exc.value.actual_version == vendor.version + 1
        assert ledger.get_obligation(ob.id).settlements == ()

    def test_current_expected_version_accepted(self, ledger, vendor):
        ob = ledger.add_obligation(vendor.id, Direction.BORROW, gross_weight="2", wastage_percent="100")
        current = ledger.get_account(vendor.id).version
        result = ledger.settle(obligation_id=ob.id, gold="1", expected_version=current)
        assert result.remaining == AssetVector(gold="1")


class TestConcurrentSettlements:
    def test_racing_payments_never_over_settle(self, file_ledger):
        account = file_ledger.create_account("Race Vendor")
        ob = file_ledger.add_obligation(
            account.id, Direction.BORROW, gross_weight="2", wastage_percent="100"
        )
        workers = 8
        barrier = threading.Barrier(workers)

        def pay():
            barrier.wait()
            try:
                file_ledger.settle(obligation_id=ob.id, gold="0.5")
                return "ok"
            except OverSettlementError:
                return "over"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(lambda _: pay(), range(workers)))

        assert outcomes.count("ok") == 4
        assert outcomes.count("over") == 4

        view = file_ledger.get_obligation(ob.id)
        assert view.status is ObligationStatus.SETTLED
        assert view.settled == AssetVector(gold=Decimal("2"))
        assert len(view.settlements) == 4
        assert [s.entry_seq for s in view.settlements] == sorted(s.entry_seq for s in view.settlements)


class TestKeyedLock:
    def test_same_key_is_reentrant(self):
        locks = KeyedLock()
        with locks.hold("a"):
            with locks.hold("a"):
                pass

    def test_distinct_keys_do_not_block(self):
        locks = KeyedLock()
        entered = threading.Event()

        def other():
            with locks.hold("b"):
                entered.set()

        with locks.hold("a"):
            t = threading.Thread(target=other)
            t.start()
            assert entered.wait(timeout=5)
            t.join()
