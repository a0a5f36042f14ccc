"""Audit trail replay: ordering, running balance, windows and verification."""

from uuid import uuid4

import pytest

from bullion_kernel.domain.audit_trail import TrailEntryKind, build_audit_trail
from bullion_kernel.domain.outstanding import account_net_balance
from bullion_kernel.domain.values import AssetVector, Direction, MetalType
from bullion_kernel.exceptions import LedgerInconsistencyError
from ledger_records import ACCOUNT_ID, at, obligation, revision, settlement


class TestOrdering:
    def test_sorted_by_time_then_seq(self):
        first = obligation(AssetVector(gold="1"), seq=2, minutes=0)
        second = obligation(AssetVector(gold="2"), seq=1, minutes=3)
        same_time = settlement(AssetVector(gold="1"), first.id, seq=3, minutes=0)
        trail = build_audit_trail(ACCOUNT_ID, [second, first], [same_time])
        assert [e.entry_seq for e in trail.entries] == [2, 3, 1]

    def test_running_balance(self):
        borrow = obligation(AssetVector(gold="9.160", cash="500"), minutes=0)
        paid = settlement(AssetVector(gold="5"), borrow.id, seq=2, minutes=1)
        lend = obligation(AssetVector(silver="3"), direction=Direction.LEND, seq=3, minutes=2)
        trail = build_audit_trail(ACCOUNT_ID, [borrow, lend], [paid])

        balances = [e.running_balance for e in trail.entries]
        assert balances == [
            AssetVector(gold="9.160", cash="500"),
            AssetVector(gold="4.160", cash="500"),
            AssetVector(gold="4.160", silver="-3", cash="500"),
        ]
        assert trail.closing_balance == account_net_balance([borrow, lend], [paid])
        trail.verify_against(account_net_balance([borrow, lend], [paid]))


class TestEntryKinds:
    def test_reversal_keeps_both_entries(self):
        ob = obligation(AssetVector(gold="4"), reversed_seq=2)
        trail = build_audit_trail(ACCOUNT_ID, [ob], [])
        assert [e.kind for e in trail.entries] == [TrailEntryKind.OBLIGATION, TrailEntryKind.REVERSED]
        assert trail.entries[1].delta == AssetVector(gold="-4")
        assert trail.closing_balance.is_zero

    def test_adjustment_carries_change(self):
        rev = revision(uuid4(), AssetVector(gold="9.160"), AssetVector(gold="10.000"), seq=2, minutes=1)
        edited = obligation(AssetVector(gold="10.000"), minutes=0, revisions=(rev,))

        trail = build_audit_trail(ACCOUNT_ID, [edited], [])
        kinds = [e.kind for e in trail.entries]
        assert kinds == [TrailEntryKind.OBLIGATION, TrailEntryKind.ADJUSTMENT]
        assert trail.entries[0].vector == AssetVector(gold="9.160")
        assert trail.entries[1].vector == AssetVector(gold="0.840")
        assert trail.closing_balance == AssetVector(gold="10.000")
        trail.verify_against(account_net_balance([edited], []))

    def test_metal_switch_with_settled_transfer(self):
        transfer = AssetVector(gold="-4", silver="4")
        rev = revision(
            uuid4(),
            AssetVector(gold="10"),
            AssetVector(silver="10"),
            seq=3,
            minutes=2,
            previous_metal=MetalType.GOLD,
            new_metal=MetalType.SILVER,
            settled_transfer=transfer,
        )
        ob = obligation(AssetVector(silver="10"), metal_type=MetalType.SILVER, revisions=(rev,))
        paid = settlement(AssetVector(gold="4"), ob.id, seq=2, minutes=1)

        trail = build_audit_trail(ACCOUNT_ID, [ob], [paid])
        assert trail.closing_balance == AssetVector(silver="6")
        trail.verify_against(account_net_balance([ob], [paid]))


class TestWindow:
    def test_opening_balance_folds_earlier_entries(self):
        early = obligation(AssetVector(gold="5"), minutes=0)
        later = settlement(AssetVector(gold="2"), early.id, seq=2, minutes=60)
        trail = build_audit_trail(ACCOUNT_ID, [early], [later], start=at(30))
        assert trail.opening_balance == AssetVector(gold="5")
        assert len(trail.entries) == 1
        assert trail.entries[0].running_balance == AssetVector(gold="3")

    def test_end_is_exclusive(self):
        ob = obligation(AssetVector(gold="5"), minutes=0)
        s = settlement(AssetVector(gold="2"), ob.id, seq=2, minutes=10)
        trail = build_audit_trail(ACCOUNT_ID, [ob], [s], end=at(10))
        assert [e.kind for e in trail.entries] == [TrailEntryKind.OBLIGATION]
        assert not trail.is_unbounded


class TestVerification:
    def test_mismatch_raises(self):
        ob = obligation(AssetVector(gold="5"))
        trail = build_audit_trail(ACCOUNT_ID, [ob], [])
        with pytest.raises(LedgerInconsistencyError) as exc:
            trail.verify_against(AssetVector(gold="4"))
        assert exc.value.dimension == "GOLD"
