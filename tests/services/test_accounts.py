"""Account creation, listing, balances and deletion."""

from uuid import uuid4

import pytest

from bullion_kernel.domain.dtos import AccountKind
from bullion_kernel.domain.values import AssetVector, Direction, MetalRestriction
from bullion_kernel.exceptions import (
    AccountHasObligationsError,
    AccountNotFoundError,
    ConcurrentModificationError,
    ValidationError,
)


class TestCreateAccount:
    def test_defaults(self, ledger):
        account = ledger.create_account("Mahalaxmi Bullion", contact_person="Ravi", phone="98450 00000")
        assert account.kind is AccountKind.VENDOR
        assert account.metal_restriction is MetalRestriction.BOTH
        assert account.version == 1
        assert ledger.get_account(account.id) == account

    def test_blank_name_rejected(self, ledger):
        with pytest.raises(ValidationError) as exc:
            ledger.create_account("   ")
        assert exc.value.field == "name"

    def test_unknown_account(self, ledger):
        with pytest.raises(AccountNotFoundError) as exc:
            ledger.account_balance(uuid4())
        assert exc.value.code == "ACCOUNT_NOT_FOUND"


class TestBalances:
    def test_list_accounts_with_balances(self, ledger, vendor, gold_shop):
        ledger.add_obligation(vendor.id, Direction.BORROW, gross_weight="10", wastage_percent="91.6")
        ledger.add_obligation(gold_shop.id, Direction.LEND, manual_cash="5000")

        balances = {b.account.id: b for b in ledger.list_accounts()}
        assert balances[vendor.id].balance == AssetVector(gold="9.160")
        assert balances[vendor.id].open_obligations == 1
        assert balances[gold_shop.id].balance == AssetVector(cash="-5000")

    def test_every_write_bumps_version(self, ledger, vendor):
        ob = ledger.add_obligation(vendor.id, Direction.BORROW, manual_cash="100")
        ledger.settle(obligation_id=ob.id, mode="CASH", cash="40")
        assert ledger.get_account(vendor.id).version == vendor.version + 2

    def test_entry_sequence_orders_same_instant(self, ledger, vendor):
        ob = ledger.add_obligation(vendor.id, Direction.BORROW, manual_cash="100")
        ledger.settle(obligation_id=ob.id, mode="CASH", cash="40")
        ledger.settle(obligation_id=ob.id, mode="CASH", cash="60")
        trail = ledger.audit_trail(vendor.id)
        assert [e.entry_seq for e in trail.entries] == [1, 2, 3]
        assert trail.closing_balance.is_zero


class TestDeleteAccount:
    def test_empty_account(self, ledger, vendor):
        assert ledger.delete_account(vendor.id) == 0
        with pytest.raises(AccountNotFoundError):
            ledger.get_account(vendor.id)

    def test_history_requires_cascade(self, ledger, vendor):
        ledger.add_obligation(vendor.id, Direction.BORROW, manual_cash="100")
        with pytest.raises(AccountHasObligationsError) as exc:
            ledger.delete_account(vendor.id)
        assert exc.value.obligation_count == 1
        assert ledger.get_account(vendor.id).id == vendor.id

    def test_cascade_removes_history(self, ledger, vendor, gold_shop):
        ob = ledger.add_obligation(vendor.id, Direction.BORROW, gross_weight="10", wastage_percent="91.6")
        ledger.settle(obligation_id=ob.id, gold="5")
        ledger.edit_obligation(ob.id, note="reweighed", gross_weight="11", acknowledge_recalculation=True)
        ledger.add_obligation(vendor.id, Direction.LEND, manual_cash="100")
        keep = ledger.add_obligation(gold_shop.id, Direction.LEND, manual_cash="100")

        assert ledger.delete_account(vendor.id, cascade=True) == 2
        with pytest.raises(AccountNotFoundError):
            ledger.list_obligations(vendor.id)
        assert ledger.get_obligation(keep.id).outstanding == AssetVector(cash="100")

    def test_expected_version_checked(self, ledger, vendor):
        with pytest.raises(ConcurrentModificationError) as exc:
            ledger.delete_account(vendor.id, expected_version=vendor.version + 5)
        assert exc.value.actual_version == vendor.version
