"""Tests for the folio service (repositories mocked, no database)."""

from __future__ import annotations

from datetime import date
from unittest.mock import ANY, DEFAULT, MagicMock, patch

import pytest

from staybook.domain.audit import AuditAction
from staybook.domain.folio import PaymentEntryStatus, PaymentMethod
from staybook.domain.ledger import RoomNightRow
from staybook.domain.payments import BalanceState, PaymentEntry, PaymentStatus
from staybook.domain.stays import StayValidationError
from staybook.infra.repositories import folio_repository
from staybook.infra.schema import SchemaCapabilities
from staybook.services.folio_service import (
    add_ancillary_charge,
    get_stay_folio,
    reconcile,
    record_payment,
)

from .helpers import D, night, stay

V2 = SchemaCapabilities(payment_adjustments=True)
LEGACY = SchemaCapabilities(payment_adjustments=False)


@pytest.fixture
def repos():
    with patch.multiple(
        "staybook.services.folio_service",
        stays_repository=DEFAULT,
        nights_repository=DEFAULT,
        audit_repository=DEFAULT,
        get_capabilities=DEFAULT,
    ) as mocks, patch.multiple(
        folio_repository,
        insert_payment=DEFAULT,
        list_payment_entries=DEFAULT,
        list_payments=DEFAULT,
        insert_charge=DEFAULT,
        sum_outstanding_charges=DEFAULT,
        list_charges=DEFAULT,
    ) as folio:
        mocks["get_capabilities"].return_value = V2
        folio["insert_payment"].return_value = (9, PaymentEntry(amount=D("0")))
        folio["sum_outstanding_charges"].return_value = D("0.00")
        mocks.update(folio)
        yield mocks


def _stored_balance(repos) -> BalanceState:
    return repos["stays_repository"].update_balance.call_args.kwargs["balance"]


class TestRecordPayment:
    def test_unknown_stay(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = None
        assert record_payment(MagicMock(), "BK-NOPE", D("100"), PaymentMethod.CASH) is None

    def test_discount_and_round_off_settle_more_than_cash(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()

        state = record_payment(
            MagicMock(),
            "BK-1",
            D("500"),
            PaymentMethod.CARD,
            discount=D("50"),
            round_off=D("5"),
            round_off_applied=True,
            recorded_by=3,
        )

        assert state.deposit_amount == D("500.00")
        assert state.balance_amount == D("1685.00")
        assert state.payment_status is PaymentStatus.PARTIALLY_PAID
        assert _stored_balance(repos) == state

        payment = repos["insert_payment"].call_args.kwargs["payment"]
        assert payment.status is PaymentEntryStatus.CAPTURED
        assert payment.method == "Card"
        assert payment.discount == D("50.00")

        audit = repos["audit_repository"].record_audit.call_args.kwargs
        assert audit["action"] is AuditAction.PAYMENT
        assert audit["description"] == "Payment of 500.00 via Card"
        assert audit["new_value"] == "Deposit: 500.00, Balance: 1,685.00, Status: Partially Paid"

    def test_legacy_store_counts_cash_only(self, repos):
        repos["get_capabilities"].return_value = LEGACY
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()

        state = record_payment(
            MagicMock(), "BK-1", D("500"), "Cash", discount=D("50"), round_off=D("5"), round_off_applied=True
        )

        assert state.balance_amount == D("1740.00")
        assert repos["insert_payment"].call_args.kwargs["caps"] is LEGACY

    def test_full_settlement_is_paid(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        state = record_payment(MagicMock(), "BK-1", D("2240"), PaymentMethod.UPI)
        assert state.balance_amount == D("0.00")
        assert state.payment_status is PaymentStatus.PAID

    def test_zero_amount(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        with pytest.raises(StayValidationError, match="Amount must be non-zero"):
            record_payment(MagicMock(), "BK-1", D("0"), PaymentMethod.CASH)
        repos["insert_payment"].assert_not_called()

    def test_negative_amount_needs_refund_flag(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        with pytest.raises(StayValidationError) as exc_info:
            record_payment(MagicMock(), "BK-1", D("-10"), PaymentMethod.CASH)
        assert exc_info.value.reason_code == "invalid_amount"

    def test_overpayment_rejected(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        with pytest.raises(StayValidationError) as exc_info:
            record_payment(MagicMock(), "BK-1", D("2300"), PaymentMethod.CASH)
        assert exc_info.value.reason_code == "payment_exceeds_balance"
        repos["stays_repository"].update_balance.assert_not_called()

    def test_outstanding_charges_can_be_paid(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        repos["sum_outstanding_charges"].return_value = D("118.00")

        state = record_payment(MagicMock(), "BK-1", D("2358"), PaymentMethod.CASH)

        assert state.balance_amount == D("-118.00")
        assert state.payment_status is PaymentStatus.PAID

    def test_cancelled_stay_takes_no_payments(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay(status="Cancelled")
        with pytest.raises(StayValidationError) as exc_info:
            record_payment(MagicMock(), "BK-1", D("100"), PaymentMethod.CASH)
        assert exc_info.value.reason_code == "stay_closed"

    def test_refund_stored_negative(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay(
            payment_status="Paid", deposit_amount=D("2240.00"), balance_amount=D("0.00")
        )

        state = record_payment(
            MagicMock(), "BK-1", D("240"), PaymentMethod.CASH, discount=D("30"), is_refund=True
        )

        payment = repos["insert_payment"].call_args.kwargs["payment"]
        assert payment.amount == D("-240.00")
        assert payment.discount == D("0.00")
        assert payment.is_refund is True
        assert payment.status is PaymentEntryStatus.REFUNDED
        assert state.deposit_amount == D("2000.00")
        assert state.balance_amount == D("240.00")
        assert repos["audit_repository"].record_audit.call_args.kwargs["action"] is AuditAction.REFUND

    def test_refund_above_cash_received(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay(
            deposit_amount=D("100.00"), balance_amount=D("2140.00")
        )
        with pytest.raises(StayValidationError) as exc_info:
            record_payment(MagicMock(), "BK-1", D("150"), PaymentMethod.CASH, is_refund=True)
        assert exc_info.value.reason_code == "refund_exceeds_deposit"


class TestReconcile:
    def test_unknown_stay(self, repos):
        repos["stays_repository"].get_stay.return_value = None
        assert reconcile(MagicMock(), 404) is None

    def test_consistent_stay_is_left_alone(self, repos):
        repos["stays_repository"].get_stay.return_value = stay(
            payment_status="Partially Paid",
            deposit_amount=D("500.00"),
            balance_amount=D("1740.00"),
        )
        repos["list_payment_entries"].return_value = [PaymentEntry(amount=D("500"))]

        state = reconcile(MagicMock(), 42)

        assert state.balance_amount == D("1740.00")
        repos["stays_repository"].update_balance.assert_not_called()
        repos["audit_repository"].record_audit.assert_not_called()

    def test_drifted_balance_rewritten_and_audited(self, repos):
        repos["stays_repository"].get_stay.return_value = stay(
            deposit_amount=D("0.00"), balance_amount=D("2240.00")
        )
        repos["list_payment_entries"].return_value = [
            PaymentEntry(amount=D("500"), discount=D("50")),
            PaymentEntry(amount=D("-100"), is_refund=True),
        ]

        state = reconcile(MagicMock(), 42, performed_by=3)

        assert state == BalanceState(
            deposit_amount=D("400.00"),
            balance_amount=D("1790.00"),
            payment_status=PaymentStatus.PARTIALLY_PAID,
        )
        assert _stored_balance(repos) == state
        audit = repos["audit_repository"].record_audit.call_args.kwargs
        assert audit["action"] is AuditAction.RECONCILED
        assert audit["performed_by"] == 3


class TestAncillaryCharge:
    def test_charge_reopens_paid_stay(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay(
            payment_status="Paid", deposit_amount=D("2240.00"), balance_amount=D("0.00")
        )
        repos["sum_outstanding_charges"].return_value = D("118.00")

        state = add_ancillary_charge(MagicMock(), "BK-1", "Laundry", D("100"), D("18"), created_by=3)

        assert state.payment_status is PaymentStatus.PARTIALLY_PAID
        assert state.balance_amount == D("0.00")
        repos["insert_charge"].assert_called_once()
        assert _stored_balance(repos) == state
        audit = repos["audit_repository"].record_audit.call_args.kwargs
        assert audit["action"] is AuditAction.CHARGE_ADDED
        assert audit["description"] == "Laundry: 118.00"

    def test_unchanged_status_not_rewritten(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        repos["sum_outstanding_charges"].return_value = D("50.00")

        add_ancillary_charge(MagicMock(), "BK-1", "Minibar", D("50"))

        repos["stays_repository"].update_balance.assert_not_called()

    def test_non_positive_amount(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        with pytest.raises(StayValidationError):
            add_ancillary_charge(MagicMock(), "BK-1", "Minibar", D("0"))
        repos["insert_charge"].assert_not_called()


class TestStayFolio:
    def test_unknown_stay(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = None
        assert get_stay_folio(MagicMock(), "BK-NOPE") is None

    def test_amount_due_includes_charges(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay(
            deposit_amount=D("500.00"), balance_amount=D("1740.00")
        )
        repos["stays_repository"].list_assigned_room_ids.return_value = [101]
        repos["nights_repository"].list_reservation_nights.return_value = [
            night(date(2026, 3, 6), "1000", cgst="60", sgst="60"),
        ]
        repos["list_payments"].return_value = [{"id": 9, "amount": "500.00"}]
        repos["list_charges"].return_value = []
        repos["sum_outstanding_charges"].return_value = D("118.00")

        folio = get_stay_folio(MagicMock(), "BK-1")

        assert folio["amount_due"] == "1858.00"
        assert folio["outstanding_charges"] == "118.00"
        assert folio["room_ids"] == [101]
        assert folio["nights"][0]["tax_amount"] == "120"
        assert folio["payments"] == [{"id": 9, "amount": "500.00"}]

    def test_room_nights_listed_per_room(self, repos):
        repos["stays_repository"].get_stay_by_booking_number.return_value = stay()
        repos["nights_repository"].list_reservation_nights.return_value = []
        repos["nights_repository"].list_room_nights.return_value = [
            RoomNightRow(room_id=101, night=night(date(2026, 3, 6), "1000", cgst="60", sgst="60")),
            RoomNightRow(room_id=102, night=night(date(2026, 3, 6), "1000", cgst="60", sgst="60")),
        ]
        repos["list_payments"].return_value = []
        repos["list_charges"].return_value = []
        repos["sum_outstanding_charges"].return_value = D("0.00")

        folio = get_stay_folio(MagicMock(), "BK-1")

        assert [r["room_id"] for r in folio["room_nights"]] == [101, 102]
        assert folio["room_nights"][0]["date"] == "2026-03-06"
        assert folio["room_nights"][1]["rate_amount"] == "1000"
        repos["nights_repository"].list_room_nights.assert_called_once_with(ANY, 42)
