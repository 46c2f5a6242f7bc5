"""Stay aggregate and the inventory records it is checked against."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from staybook.domain.money import ZERO
from staybook.domain.totals import BookingTotals


class StayStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"
    CANCELLED = "Cancelled"


class RoomStatus(str, Enum):
    AVAILABLE = "Available"
    RESERVED = "Reserved"
    OCCUPIED = "Occupied"


class StayValidationError(Exception):
    """A mutation was rejected; the surrounding transaction must roll back."""

    def __init__(self, message: str, reason_code: str = "validation_failed"):
        self.message = message
        self.reason_code = reason_code
        super().__init__(message)


class RoomTypeMismatchError(StayValidationError):
    def __init__(self, room_id: int, expected_room_type_id: int, actual_room_type_id: int):
        self.room_id = room_id
        self.expected_room_type_id = expected_room_type_id
        self.actual_room_type_id = actual_room_type_id
        super().__init__("Room type mismatch", reason_code="room_type_mismatch")


@dataclass(frozen=True)
class RoomType:
    id: int
    name: str
    base_rate: Decimal
    max_occupancy: int
    max_room_availability: int | None = None


@dataclass(frozen=True)
class Room:
    id: int
    room_number: str
    room_type_id: int
    status: str = RoomStatus.AVAILABLE.value


@dataclass(frozen=True)
class Stay:
    """Booking row. Money fields are always derived from the night ledger."""

    id: int
    booking_number: str
    status: str
    payment_status: str
    channel: str
    source: str
    customer_type: str
    check_in_date: date
    check_out_date: date
    nights: int
    room_type_id: int
    required_rooms: int
    adults: int
    children: int
    rate_plan_id: int | None
    room_id: int | None
    base_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    deposit_amount: Decimal = ZERO
    balance_amount: Decimal = ZERO
    actual_check_in_at: datetime | None = None

    def totals(self) -> BookingTotals:
        return BookingTotals(
            base_amount=self.base_amount,
            tax_amount=self.tax_amount,
            cgst_amount=self.cgst_amount,
            sgst_amount=self.sgst_amount,
            discount_amount=self.discount_amount,
            total_amount=self.total_amount,
            nights=self.nights,
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "booking_number": self.booking_number,
            "status": self.status,
            "payment_status": self.payment_status,
            "channel": self.channel,
            "source": self.source,
            "customer_type": self.customer_type,
            "check_in_date": self.check_in_date.isoformat(),
            "check_out_date": self.check_out_date.isoformat(),
            "nights": self.nights,
            "room_type_id": self.room_type_id,
            "required_rooms": self.required_rooms,
            "adults": self.adults,
            "children": self.children,
            "rate_plan_id": self.rate_plan_id,
            "room_id": self.room_id,
            "base_amount": str(self.base_amount),
            "tax_amount": str(self.tax_amount),
            "cgst_amount": str(self.cgst_amount),
            "sgst_amount": str(self.sgst_amount),
            "discount_amount": str(self.discount_amount),
            "total_amount": str(self.total_amount),
            "deposit_amount": str(self.deposit_amount),
            "balance_amount": str(self.balance_amount),
            "actual_check_in_at": (
                self.actual_check_in_at.isoformat() if self.actual_check_in_at else None
            ),
        }
