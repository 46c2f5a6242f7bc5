"""Folio service - business logic for payments, refunds and charges.

Rules:
- Amounts are Decimal with 2 decimal places.
- A payment moves the balance by amount + discount + applied round-off;
  the deposit only tracks cash received.
- Refunds are stored as negative amounts flagged as refunds.
- Payment status counts ancillary charges as still outstanding.
- The stay row is locked before its balance is read.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.audit import AuditAction, balance_snapshot, fmt_money
from staybook.domain.folio import PaymentEntryStatus, PaymentMethod
from staybook.domain.money import ZERO, round_money
from staybook.domain.nights import NightlyRow
from staybook.domain.payments import (
    BalanceState,
    PaymentStatus,
    apply_payment,
    payment_status_for,
    reconcile_balance,
)
from staybook.domain.stays import Stay, StayStatus, StayValidationError
from staybook.infra.repositories import (
    audit_repository,
    folio_repository,
    nights_repository,
    stays_repository,
)
from staybook.infra.schema import get_capabilities
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)


def _current_balance(stay: Stay) -> BalanceState:
    return BalanceState(
        deposit_amount=round_money(stay.deposit_amount),
        balance_amount=round_money(stay.balance_amount),
        payment_status=PaymentStatus(stay.payment_status),
    )


def _snapshot(state: BalanceState) -> str:
    return balance_snapshot(
        state.deposit_amount, state.balance_amount, state.payment_status.value
    )


def record_payment(
    cur: PgCursor,
    booking_number: str,
    amount: Decimal,
    method: PaymentMethod | str,
    *,
    discount: Decimal = ZERO,
    round_off: Decimal = ZERO,
    round_off_applied: bool = False,
    is_refund: bool = False,
    reference: str | None = None,
    notes: str | None = None,
    recorded_by: int | None = None,
) -> BalanceState | None:
    """Append a payment (or refund) and update the stay balance.

    Args:
        cur: Database cursor (caller manages transaction).
        booking_number: Stay business key.
        amount: Cash amount; for refunds the magnitude to give back.
        method: Payment method.
        discount: Discount granted at settlement (reduces the balance).
        round_off: Round-off amount, only counted when round_off_applied.
        is_refund: Record a refund (stored as a negative amount).

    Returns:
        The new balance state, or None when the stay does not exist.

    Raises:
        StayValidationError: zero amount, payment on a cancelled stay,
            refund larger than the cash received, or a payment larger
            than what is still due.
    """
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number, lock=True)
    if stay is None:
        return None

    amount = round_money(amount)
    if amount == 0:
        raise StayValidationError("Amount must be non-zero", reason_code="invalid_amount")
    if amount < 0 and not is_refund:
        raise StayValidationError(
            "Negative amounts must be recorded as refunds", reason_code="invalid_amount"
        )
    if stay.status == StayStatus.CANCELLED.value and not is_refund:
        raise StayValidationError(
            "Payments cannot be recorded on a cancelled stay", reason_code="stay_closed"
        )

    if is_refund:
        amount = -abs(amount)
        discount = ZERO
        round_off_applied = False
        round_off = ZERO

    method_value = method.value if isinstance(method, PaymentMethod) else str(method)
    caps = get_capabilities(cur)
    payment = folio_repository.NewPayment(
        stay_id=stay.id,
        amount=amount,
        method=method_value,
        status=PaymentEntryStatus.REFUNDED if is_refund else PaymentEntryStatus.CAPTURED,
        discount=round_money(discount),
        round_off=round_money(round_off),
        round_off_applied=round_off_applied,
        is_refund=is_refund,
        reference=reference,
        notes=notes,
        recorded_by=recorded_by,
    )
    entry = payment.entry(caps)

    before = _current_balance(stay)
    outstanding = folio_repository.sum_outstanding_charges(cur, stay.id)

    if is_refund:
        if -amount > before.deposit_amount:
            raise StayValidationError(
                "Refund exceeds the amount received", reason_code="refund_exceeds_deposit"
            )
    elif entry.applied_to_balance > before.balance_amount + outstanding:
        raise StayValidationError(
            "Payment exceeds the amount due", reason_code="payment_exceeds_balance"
        )

    after = apply_payment(
        balance=before.balance_amount,
        deposit=before.deposit_amount,
        entry=entry,
        outstanding_charges=outstanding,
    )

    payment_id, _entry = folio_repository.insert_payment(cur, caps=caps, payment=payment)
    stays_repository.update_balance(
        cur, stay_id=stay.id, balance=after, updated_by=recorded_by
    )

    if is_refund:
        action = AuditAction.REFUND
        description = f"Refund of {fmt_money(-amount)} via {method_value}"
    else:
        action = AuditAction.PAYMENT
        description = f"Payment of {fmt_money(amount)} via {method_value}"
    audit_repository.record_audit(
        cur,
        stay_id=stay.id,
        booking_number=stay.booking_number,
        action=action,
        description=description,
        old_value=_snapshot(before),
        new_value=_snapshot(after),
        performed_by=recorded_by,
    )

    logger.info(
        "payment recorded",
        extra={
            "extra_fields": safe_log_context(
                stay_id=stay.id,
                payment_id=payment_id,
                is_refund=is_refund,
                schema_version=caps.version,
                payment_status=after.payment_status.value,
            )
        },
    )
    return after


def reconcile(
    cur: PgCursor, stay_id: int, performed_by: int | None = None
) -> BalanceState | None:
    """Recompute deposit, balance and status from the full payment history.

    Idempotent: when the stored figures already match nothing is written
    and no audit record is added.
    """
    stay = stays_repository.get_stay(cur, stay_id, lock=True)
    if stay is None:
        return None

    caps = get_capabilities(cur)
    state = reconcile_balance(
        total_amount=stay.total_amount,
        entries=folio_repository.list_payment_entries(cur, caps=caps, stay_id=stay.id),
        outstanding_charges=folio_repository.sum_outstanding_charges(cur, stay.id),
    )

    before = _current_balance(stay)
    if state == before:
        return state

    stays_repository.update_balance(cur, stay_id=stay.id, balance=state, updated_by=performed_by)
    audit_repository.record_audit(
        cur,
        stay_id=stay.id,
        booking_number=stay.booking_number,
        action=AuditAction.RECONCILED,
        description="Balance reconciled from payment history",
        old_value=_snapshot(before),
        new_value=_snapshot(state),
        performed_by=performed_by,
    )
    logger.warning(
        "stay balance drifted and was reconciled",
        extra={"extra_fields": safe_log_context(stay_id=stay.id)},
    )
    return state


def add_ancillary_charge(
    cur: PgCursor,
    booking_number: str,
    description: str,
    amount: Decimal,
    tax_amount: Decimal = ZERO,
    created_by: int | None = None,
) -> BalanceState | None:
    """Bill an extra charge to the stay and refresh its payment status."""
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number, lock=True)
    if stay is None:
        return None

    amount = round_money(amount)
    tax_amount = round_money(tax_amount)
    if amount <= 0:
        raise StayValidationError("Charge amount must be positive", reason_code="invalid_amount")
    if tax_amount < 0:
        raise StayValidationError("Charge tax cannot be negative", reason_code="invalid_amount")
    if stay.status == StayStatus.CANCELLED.value:
        raise StayValidationError(
            "Charges cannot be added to a cancelled stay", reason_code="stay_closed"
        )

    folio_repository.insert_charge(
        cur,
        stay_id=stay.id,
        description=description,
        amount=amount,
        tax_amount=tax_amount,
        created_by=created_by,
    )
    outstanding = folio_repository.sum_outstanding_charges(cur, stay.id)

    before = _current_balance(stay)
    after = BalanceState(
        deposit_amount=before.deposit_amount,
        balance_amount=before.balance_amount,
        payment_status=payment_status_for(
            before.balance_amount, before.deposit_amount, outstanding
        ),
    )
    if after != before:
        stays_repository.update_balance(
            cur, stay_id=stay.id, balance=after, updated_by=created_by
        )

    audit_repository.record_audit(
        cur,
        stay_id=stay.id,
        booking_number=stay.booking_number,
        action=AuditAction.CHARGE_ADDED,
        description=f"{description}: {fmt_money(amount + tax_amount)}",
        old_value=_snapshot(before),
        new_value=_snapshot(after),
        performed_by=created_by,
    )
    return after


def _night_view(n: NightlyRow) -> dict[str, str]:
    return {
        "date": n.stay_date.isoformat(),
        "rate_amount": str(n.rate_amount),
        "actual_rate": str(n.actual_rate),
        "discount_amount": str(n.discount_amount),
        "tax_amount": str(n.tax_amount),
        "cgst_amount": str(n.cgst_amount),
        "sgst_amount": str(n.sgst_amount),
    }


def get_stay_folio(cur: PgCursor, booking_number: str) -> dict[str, Any] | None:
    """Read model of a stay: booking, nights, payments and charges."""
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number)
    if stay is None:
        return None

    caps = get_capabilities(cur)
    outstanding = folio_repository.sum_outstanding_charges(cur, stay.id)

    return {
        "stay": stay.as_dict(),
        "room_ids": stays_repository.list_assigned_room_ids(cur, stay.id),
        "nights": [_night_view(n) for n in nights_repository.list_reservation_nights(cur, stay.id)],
        "room_nights": [
            {"room_id": r.room_id, **_night_view(r.night)}
            for r in nights_repository.list_room_nights(cur, stay.id)
        ],
        "payments": folio_repository.list_payments(cur, caps=caps, stay_id=stay.id),
        "charges": folio_repository.list_charges(cur, stay.id),
        "outstanding_charges": str(outstanding),
        "amount_due": str(round_money(stay.balance_amount) + outstanding),
    }
