"""Tests for the payment ledger arithmetic."""

from decimal import Decimal

from staybook.domain.payments import (
    BalanceState,
    PaymentEntry,
    PaymentStatus,
    apply_payment,
    payment_status_for,
    reconcile_balance,
)

from .helpers import D


class TestPaymentEntry:
    def test_applied_round_off_counts(self):
        entry = PaymentEntry(amount=D("500"), discount=D("50"), round_off=D("5"), round_off_applied=True)
        assert entry.applied_to_balance == D("555.00")

    def test_unapplied_round_off_ignored(self):
        entry = PaymentEntry(amount=D("500"), discount=D("50"), round_off=D("5"))
        assert entry.applied_to_balance == D("550.00")


class TestApplyPayment:
    def test_discount_and_round_off_only_move_balance(self):
        entry = PaymentEntry(amount=D("500"), discount=D("50"), round_off=D("5"), round_off_applied=True)
        state = apply_payment(balance=D("2000.00"), deposit=D("0.00"), entry=entry)
        assert state.balance_amount == D("1445.00")
        assert state.deposit_amount == D("500.00")
        assert state.payment_status is PaymentStatus.PARTIALLY_PAID

    def test_settling_marks_paid(self):
        state = apply_payment(
            balance=D("2240.00"), deposit=D("0"), entry=PaymentEntry(amount=D("2240.00"))
        )
        assert state.balance_amount == D("0.00")
        assert state.payment_status is PaymentStatus.PAID

    def test_refund_reduces_deposit_and_reopens_balance(self):
        state = apply_payment(
            balance=D("0.00"),
            deposit=D("2240.00"),
            entry=PaymentEntry(amount=D("-240.00"), is_refund=True),
        )
        assert state.deposit_amount == D("2000.00")
        assert state.balance_amount == D("240.00")
        assert state.payment_status is PaymentStatus.PARTIALLY_PAID


class TestPaymentStatusFor:
    def test_pending_without_deposit(self):
        assert payment_status_for(D("100"), D("0")) is PaymentStatus.PENDING

    def test_outstanding_charges_keep_stay_open(self):
        assert payment_status_for(D("0"), D("500"), D("80")) is PaymentStatus.PARTIALLY_PAID

    def test_overpaid_is_paid(self):
        assert payment_status_for(D("-10"), D("500")) is PaymentStatus.PAID


class TestReconcileBalance:
    ENTRIES = [
        PaymentEntry(amount=D("1000")),
        PaymentEntry(amount=D("500"), discount=D("50"), round_off=D("5"), round_off_applied=True),
        PaymentEntry(amount=D("-300"), is_refund=True),
    ]

    def test_recomputes_from_history(self):
        state = reconcile_balance(total_amount=D("2240.00"), entries=self.ENTRIES)
        assert state == BalanceState(
            deposit_amount=D("1200.00"),
            balance_amount=D("985.00"),
            payment_status=PaymentStatus.PARTIALLY_PAID,
        )

    def test_idempotent(self):
        first = reconcile_balance(total_amount=D("2240.00"), entries=self.ENTRIES)
        second = reconcile_balance(total_amount=D("2240.00"), entries=iter(self.ENTRIES))
        assert first == second

    def test_matches_applying_entries_one_by_one(self):
        state = BalanceState(Decimal("0.00"), D("2240.00"), PaymentStatus.PENDING)
        for entry in self.ENTRIES:
            state = apply_payment(
                balance=state.balance_amount, deposit=state.deposit_amount, entry=entry
            )
        assert state == reconcile_balance(total_amount=D("2240.00"), entries=self.ENTRIES)

    def test_no_history(self):
        state = reconcile_balance(total_amount=D("2240.00"), entries=[])
        assert state.balance_amount == D("2240.00")
        assert state.payment_status is PaymentStatus.PENDING
