"""
Settlements through AccountLedgerService: partial and full payment, cash
conversion, over-settlement, account-level payments and inverses.
"""

from decimal import Decimal

import pytest

from bullion_kernel.domain.dtos import ObligationStatus, PaymentMode
from bullion_kernel.domain.values import AssetVector, Direction, MetalType
from bullion_kernel.exceptions import (
    DimensionNotAllowedError,
    InvalidConversionRateError,
    MissingConversionRateError,
    OverSettlementError,
    SettlementAlreadyReversedError,
    SettlementNotFoundError,
    ValidationError,
)


@pytest.fixture
def gold_debt(ledger, vendor):
    """We owe the vendor 9.160 g of pure gold."""
    return ledger.add_obligation(
        vendor.id, Direction.BORROW, gross_weight="10", wastage_percent="91.6"
    )


@pytest.fixture
def cash_debt(ledger, vendor):
    return ledger.add_obligation(vendor.id, Direction.LEND, manual_cash="1000")


class TestObligationSettlement:
    def test_partial_then_full(self, ledger, gold_debt, test_actor_id):
        first = ledger.settle(obligation_id=gold_debt.id, gold="5", actor_id=test_actor_id)
        assert first.remaining == AssetVector(gold="4.160")
        assert first.status is ObligationStatus.OPEN

        second = ledger.settle(obligation_id=gold_debt.id, gold="4.160")
        assert second.remaining.is_zero
        assert second.status is ObligationStatus.SETTLED

    def test_settled_rejects_more(self, ledger, gold_debt):
        ledger.settle(obligation_id=gold_debt.id, gold="9.160")
        with pytest.raises(OverSettlementError) as exc:
            ledger.settle(obligation_id=gold_debt.id, gold="0.001")
        assert exc.value.dimension == "GOLD"

    def test_within_tolerance_settles(self, ledger, gold_debt):
        result = ledger.settle(obligation_id=gold_debt.id, gold="9.156")
        assert result.status is ObligationStatus.SETTLED
        assert result.remaining == AssetVector(gold="0.004")

    def test_cash_over_settlement_leaves_no_trace(self, ledger, vendor, cash_debt):
        with pytest.raises(OverSettlementError) as exc:
            ledger.settle(obligation_id=cash_debt.id, mode=PaymentMode.CASH, cash="1200")
        err = exc.value
        assert err.dimension == "CASH"
        assert err.outstanding == Decimal("1000")
        assert err.attempted == Decimal("1200")

        view = ledger.get_obligation(cash_debt.id)
        assert view.outstanding == AssetVector(cash="1000")
        assert view.settlements == ()
        assert ledger.settlement_history(vendor.id) == []

    def test_cash_converted_at_rate(self, ledger, gold_debt):
        result = ledger.settle(
            obligation_id=gold_debt.id, mode="CASH", cash="31250", metal_rate="6250"
        )
        assert result.settlement.paid == AssetVector(cash="31250")
        assert result.settlement.applied == AssetVector(gold="5.000")
        assert result.settlement.metal_rate == Decimal("6250")
        assert result.remaining == AssetVector(gold="4.160")
        assert "6250" in result.settlement.description

    def test_cash_against_metal_needs_rate(self, ledger, gold_debt):
        with pytest.raises(MissingConversionRateError):
            ledger.settle(obligation_id=gold_debt.id, mode="CASH", cash="500")

    def test_both_without_rate(self, ledger, gold_debt):
        with pytest.raises(MissingConversionRateError) as exc:
            ledger.settle(obligation_id=gold_debt.id, mode="BOTH", gold="1", cash="500")
        assert exc.value.code == "MISSING_CONVERSION_RATE"

    def test_zero_rate(self, ledger, gold_debt):
        with pytest.raises(InvalidConversionRateError):
            ledger.settle(obligation_id=gold_debt.id, mode="CASH", cash="500", metal_rate="0")

    def test_conversion_to_zero_weight(self, ledger, gold_debt):
        with pytest.raises(ValidationError) as exc:
            ledger.settle(obligation_id=gold_debt.id, mode="CASH", cash="1", metal_rate="6250")
        assert exc.value.field == "metal_rate"

    def test_restriction_on_converted_metal(self, ledger, gold_shop):
        ob = ledger.add_obligation(gold_shop.id, Direction.BORROW, gross_weight="1", wastage_percent="5")
        with pytest.raises(DimensionNotAllowedError):
            ledger.settle(obligation_id=ob.id, silver="1")

    def test_cash_paid_against_cash_owed(self, ledger, cash_debt):
        result = ledger.settle(obligation_id=cash_debt.id, mode="CASH", cash="999.50")
        assert result.status is ObligationStatus.SETTLED

    def test_target_required(self, ledger, vendor, gold_debt):
        with pytest.raises(ValidationError):
            ledger.settle(gold="1")
        with pytest.raises(ValidationError):
            ledger.settle(obligation_id=gold_debt.id, account_id=vendor.id, gold="1")

    def test_logs_settlement(self, ledger, gold_debt, captured_logs):
        ledger.settle(obligation_id=gold_debt.id, gold="1")
        records = [r for r in captured_logs() if r["message"] == "settlement_recorded"]
        assert len(records) == 1
        assert records[0]["obligation_id"] == str(gold_debt.id)
        assert records[0]["applied"]["gold"] == "1.000"

    def test_logs_rejection(self, ledger, cash_debt, captured_logs):
        with pytest.raises(OverSettlementError):
            ledger.settle(obligation_id=cash_debt.id, mode="CASH", cash="5000")
        rejected = [r for r in captured_logs() if r["message"] == "settlement_rejected"]
        assert rejected and rejected[0]["dimension"] == "CASH"


class TestAccountLevelSettlement:
    def test_draws_on_direction_pool(self, ledger, vendor, gold_debt):
        ledger.add_obligation(vendor.id, Direction.BORROW, gross_weight="5", wastage_percent="100")
        result = ledger.settle(account_id=vendor.id, direction=Direction.BORROW, gold="10")
        assert result.status is None
        assert result.settlement.obligation_id is None
        assert result.remaining == AssetVector(gold="4.160")
        assert ledger.account_balance(vendor.id).balance == AssetVector(gold="4.160")

    def test_pool_exceeded(self, ledger, vendor, gold_debt):
        with pytest.raises(OverSettlementError):
            ledger.settle(account_id=vendor.id, direction="BORROW", gold="10")

    def test_other_direction_not_counted(self, ledger, vendor, gold_debt):
        with pytest.raises(OverSettlementError):
            ledger.settle(account_id=vendor.id, direction="LEND", gold="1")

    def test_direction_required(self, ledger, vendor):
        with pytest.raises(ValidationError) as exc:
            ledger.settle(account_id=vendor.id, gold="1")
        assert exc.value.field == "direction"

    def test_not_allocated_to_obligations(self, ledger, vendor, gold_debt):
        ledger.settle(account_id=vendor.id, direction="BORROW", gold="2")
        view = ledger.get_obligation(gold_debt.id)
        assert view.outstanding == AssetVector(gold="9.160")

    def test_debt_cannot_be_paid_twice(self, ledger, vendor):
        debt = ledger.add_obligation(vendor.id, Direction.BORROW, manual_cash="1000")
        ledger.settle(account_id=vendor.id, direction=Direction.BORROW, mode=PaymentMode.CASH, cash="1000")
        assert ledger.account_balance(vendor.id).balance.is_zero

        with pytest.raises(OverSettlementError) as exc:
            ledger.settle(obligation_id=debt.id, mode=PaymentMode.CASH, cash="1000")
        assert exc.value.target_id == str(vendor.id)
        assert exc.value.dimension == "CASH"
        assert exc.value.outstanding == Decimal("0")
        assert ledger.account_balance(vendor.id).balance.is_zero
        assert len(ledger.settlement_history(vendor.id)) == 1

    def test_obligation_payment_within_remaining_pool(self, ledger, vendor, gold_debt):
        ledger.settle(account_id=vendor.id, direction="BORROW", gold="2")
        result = ledger.settle(obligation_id=gold_debt.id, gold="7.160")
        assert result.remaining == AssetVector(gold="2.000")
        assert ledger.account_balance(vendor.id).balance.is_zero

        with pytest.raises(OverSettlementError):
            ledger.settle(obligation_id=gold_debt.id, gold="0.5")


class TestSettlementReversal:
    def test_inverse_restores_outstanding(self, ledger, vendor, gold_debt, deterministic_clock):
        paid = ledger.settle(obligation_id=gold_debt.id, gold="9.160")
        assert paid.status is ObligationStatus.SETTLED

        deterministic_clock.advance(60)
        undone = ledger.reverse_settlement(paid.settlement.id, reason="wrong bar")
        assert undone.settlement.reversal_of_id == paid.settlement.id
        assert undone.settlement.applied == AssetVector(gold="-9.160")
        assert undone.settlement.description == "wrong bar"
        assert undone.status is ObligationStatus.OPEN
        assert undone.remaining == AssetVector(gold="9.160")

        history = ledger.settlement_history(vendor.id, gold_debt.id)
        assert [s.id for s in history] == [paid.settlement.id, undone.settlement.id]
        assert ledger.audit_trail(vendor.id).closing_balance == AssetVector(gold="9.160")

    def test_reverse_twice(self, ledger, gold_debt):
        paid = ledger.settle(obligation_id=gold_debt.id, gold="1")
        ledger.reverse_settlement(paid.settlement.id)
        with pytest.raises(SettlementAlreadyReversedError):
            ledger.reverse_settlement(paid.settlement.id)

    def test_inverse_cannot_be_reversed(self, ledger, gold_debt):
        paid = ledger.settle(obligation_id=gold_debt.id, gold="1")
        inverse = ledger.reverse_settlement(paid.settlement.id)
        with pytest.raises(SettlementAlreadyReversedError):
            ledger.reverse_settlement(inverse.settlement.id)

    def test_account_level_reversal(self, ledger, vendor, gold_debt):
        paid = ledger.settle(account_id=vendor.id, direction="BORROW", gold="3")
        undone = ledger.reverse_settlement(paid.settlement.id)
        assert undone.status is None
        assert undone.remaining == AssetVector(gold="9.160")

    def test_unknown_settlement(self, ledger):
        from uuid import uuid4

        with pytest.raises(SettlementNotFoundError):
            ledger.reverse_settlement(uuid4())


class TestConvertedMetal:
    def test_silver_target(self, ledger, vendor):
        ob = ledger.add_obligation(
            vendor.id, Direction.LEND, gross_weight="100", wastage_percent="92.5",
            metal_type=MetalType.SILVER,
        )
        result = ledger.settle(
            obligation_id=ob.id, mode="CASH", cash="4000", metal_rate="80"
        )
        assert result.settlement.target_metal is MetalType.SILVER
        assert result.remaining == AssetVector(silver="42.500")
        # Collecting from the shop moves our receivable toward zero
        assert ledger.account_balance(vendor.id).balance == AssetVector(silver="-42.500")
