"""Audit trail vocabulary and before/after snapshot text."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Sequence

from staybook.domain.totals import BookingTotals


class AuditAction(str, Enum):
    CREATED = "Created"
    ROOM_ASSIGNED = "RoomAssigned"
    ROOM_CHANGED = "RoomChanged"
    DATES_CHANGED = "DatesChanged"
    PAYMENT = "Payment"
    REFUND = "Refund"
    CHARGE_ADDED = "ChargeAdded"
    RECONCILED = "Reconciled"


@dataclass(frozen=True)
class AuditRecord:
    id: int
    stay_id: int
    booking_number: str
    action_type: str
    description: str
    old_value: str | None
    new_value: str | None
    performed_by: int | None
    performed_at: datetime

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "stay_id": self.stay_id,
            "booking_number": self.booking_number,
            "action_type": self.action_type,
            "description": self.description,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "performed_by": self.performed_by,
            "performed_at": self.performed_at.isoformat(),
        }


def fmt_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def fmt_money(value: Decimal) -> str:
    return f"{value:,.2f}"


def describe_rooms(room_numbers: Sequence[str]) -> str:
    return ", ".join(room_numbers) if room_numbers else "None"


def stay_snapshot(check_in: date, check_out: date, totals: BookingTotals) -> str:
    return (
        f"Check-In: {fmt_date(check_in)}, Check-Out: {fmt_date(check_out)}, "
        f"Nights: {totals.nights}, Room Total: {fmt_money(totals.base_amount)}, "
        f"Tax: {fmt_money(totals.tax_amount)}, Grand Total: {fmt_money(totals.total_amount)}"
    )


def balance_snapshot(deposit: Decimal, balance: Decimal, status: str) -> str:
    return f"Deposit: {fmt_money(deposit)}, Balance: {fmt_money(balance)}, Status: {status}"
