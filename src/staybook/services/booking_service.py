"""Booking service - quotes, stay creation, room assignment and date changes.

Every function runs on the caller's cursor, so a whole operation is one
transaction (see ``staybook.infra.db.txn``). The stay row is locked with
FOR UPDATE before any derived ledger is rebuilt.

Rules:
- Money fields on a stay are always derived from the nightly breakdown.
- Reservation nights are rebuilt on creation and on every date change.
- Room nights are rebuilt on assignment, reassignment and date change.
- Every mutation writes an audit record in the same transaction.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.audit import (
    AuditAction,
    AuditRecord,
    describe_rooms,
    fmt_money,
    stay_snapshot,
)
from staybook.domain.folio import PaymentEntryStatus, PaymentMethod
from staybook.domain.ledger import (
    LedgerState,
    RoomNightRow,
    next_state_on_assignment,
    room_nights_for,
    split_reservation_nights,
)
from staybook.domain.money import ZERO, round_money
from staybook.domain.nights import count_nights, iter_stay_dates
from staybook.domain.payments import (
    BalanceState,
    PaymentEntry,
    apply_payment,
    payment_status_for,
    reconcile_balance,
)
from staybook.domain.quote import QuoteUnavailable, StayQuote, quote_stay
from staybook.domain.stays import (
    RoomStatus,
    RoomTypeMismatchError,
    Stay,
    StayStatus,
    StayValidationError,
)
from staybook.domain.totals import BookingTotals, prorate_totals
from staybook.infra.hotel_settings import get_hotel_settings
from staybook.infra.repositories import (
    audit_repository,
    folio_repository,
    nights_repository,
    rates_repository,
    rooms_repository,
    stays_repository,
)
from staybook.infra.schema import get_capabilities
from staybook.infra.time import utc_now, utc_stamp
from staybook.observability.logging import get_logger
from staybook.observability.redaction import safe_log_context

logger = get_logger(__name__)

# Stays in these statuses no longer accept room or date changes.
_CLOSED_STATUSES = frozenset({StayStatus.CANCELLED.value, StayStatus.CHECKED_OUT.value})

_REASON_MESSAGES = {
    "invalid_dates": "Check-out date must be after check-in date",
    "invalid_required_rooms": "At least one room is required",
    "no_nights": "Stay must be at least one night",
    "no_matching_rate": "No matching rate found",
    "room_type_not_found": "Room type not found",
}


@dataclass(frozen=True)
class StayCreateRequest:
    room_type_id: int
    check_in: date
    check_out: date
    customer_type: str = ""
    source: str = ""
    channel: str = "FrontDesk"
    adults: int = 1
    children: int = 0
    required_rooms: int = 1
    status: StayStatus = StayStatus.CONFIRMED
    initial_deposit: Decimal = ZERO
    payment_method: PaymentMethod = PaymentMethod.CASH
    primary_guest_name: str | None = None
    primary_guest_phone: str | None = None
    primary_guest_email: str | None = None
    special_requests: str | None = None


@dataclass(frozen=True)
class StayCreated:
    stay_id: int
    booking_number: str


def generate_booking_number() -> str:
    """BK-YYYYMMDDHHMMSS-NNN (UTC stamp plus a random 3-digit suffix)."""
    return f"BK-{utc_stamp()}-{random.randint(100, 999)}"


def _validation_from_quote(exc: QuoteUnavailable) -> StayValidationError:
    message = _REASON_MESSAGES.get(exc.reason_code, "Stay cannot be priced")
    return StayValidationError(message, reason_code=exc.reason_code)


def _ensure_open(stay: Stay) -> None:
    if stay.status in _CLOSED_STATUSES:
        raise StayValidationError(
            f"Stay is {stay.status} and can no longer be changed",
            reason_code="stay_closed",
        )


# ── Quote ────────────────────────────────────────────────


def quote(
    cur: PgCursor,
    *,
    room_type_id: int,
    check_in: date,
    check_out: date,
    customer_type: str = "",
    source: str = "",
    adults: int = 1,
    children: int = 0,
    required_rooms: int = 1,
) -> StayQuote:
    """Price a stay request with the best matching rate plan.

    Raises:
        QuoteUnavailable: room type unknown, invalid dates or room count,
            zero nights, or no rate to charge.
    """
    room_type = rates_repository.get_room_type(cur, room_type_id)
    if room_type is None:
        raise QuoteUnavailable("room_type_not_found", {"room_type_id": room_type_id})
    if check_in >= check_out:
        raise QuoteUnavailable("invalid_dates")

    settings = get_hotel_settings(cur)
    rate_plan = rates_repository.find_best_rate_plan(
        cur,
        room_type_id=room_type_id,
        customer_type=customer_type,
        source=source,
        check_in=check_in,
        check_out=check_out,
    )
    card = rates_repository.load_rate_card(cur, rate_plan)

    return quote_stay(
        room_type=room_type,
        rate_plan=rate_plan,
        card=card,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children=children,
        required_rooms=required_rooms,
        check_in_time=settings.check_in_time,
        check_out_time=settings.check_out_time,
    )


def _requote(cur: PgCursor, stay: Stay, check_in: date, check_out: date) -> StayQuote:
    """Fresh per-room pricing of an existing stay with its own rate plan."""
    room_type = rates_repository.get_room_type(cur, stay.room_type_id)
    if room_type is None:
        raise QuoteUnavailable("room_type_not_found", {"room_type_id": stay.room_type_id})
    settings = get_hotel_settings(cur)
    rate_plan = rates_repository.get_rate_plan(cur, stay.rate_plan_id)
    card = rates_repository.load_rate_card(cur, rate_plan)
    return quote_stay(
        room_type=room_type,
        rate_plan=rate_plan,
        card=card,
        check_in=check_in,
        check_out=check_out,
        adults=stay.adults,
        children=stay.children,
        required_rooms=stay.required_rooms,
        check_in_time=settings.check_in_time,
        check_out_time=settings.check_out_time,
    )


# ── Create ───────────────────────────────────────────────


def create_stay(
    cur: PgCursor, request: StayCreateRequest, created_by: int | None = None
) -> StayCreated:
    """Create a stay, its reservation nights and an optional advance payment.

    Raises:
        StayValidationError: unpriceable request, no capacity, or an
            initial deposit outside [0, total].
    """
    try:
        priced = quote(
            cur,
            room_type_id=request.room_type_id,
            check_in=request.check_in,
            check_out=request.check_out,
            customer_type=request.customer_type,
            source=request.source,
            adults=request.adults,
            children=request.children,
            required_rooms=request.required_rooms,
        )
    except QuoteUnavailable as exc:
        raise _validation_from_quote(exc) from exc

    free_rooms = rooms_repository.list_available_rooms(
        cur,
        room_type_id=request.room_type_id,
        check_in=request.check_in,
        check_out=request.check_out,
        limit=request.required_rooms,
    )
    if len(free_rooms) < request.required_rooms:
        raise StayValidationError(
            "No rooms are available for the selected room type and dates.",
            reason_code="no_availability",
        )

    totals = priced.totals
    deposit = round_money(request.initial_deposit)
    if deposit < 0 or deposit > totals.total_amount:
        raise StayValidationError(
            "Initial deposit must be between 0 and the booking total",
            reason_code="invalid_deposit",
        )

    if deposit > 0:
        balance = apply_payment(
            balance=totals.total_amount, deposit=ZERO, entry=PaymentEntry(amount=deposit)
        )
    else:
        balance = BalanceState(
            deposit_amount=ZERO,
            balance_amount=totals.total_amount,
            payment_status=payment_status_for(totals.total_amount, ZERO),
        )

    booking_number = generate_booking_number()
    stay_id = stays_repository.insert_stay(
        cur,
        booking_number=booking_number,
        status=request.status,
        channel=request.channel,
        source=request.source,
        customer_type=request.customer_type,
        check_in=request.check_in,
        check_out=request.check_out,
        nights=priced.nights,
        room_type_id=request.room_type_id,
        required_rooms=request.required_rooms,
        adults=request.adults,
        children=request.children,
        rate_plan_id=priced.rate_plan_id,
        totals=totals,
        balance=balance,
        primary_guest_name=request.primary_guest_name,
        primary_guest_phone=request.primary_guest_phone,
        primary_guest_email=request.primary_guest_email,
        special_requests=request.special_requests,
        created_by=created_by,
    )

    nights_repository.regenerate_reservation_nights(cur, stay_id=stay_id, rows=priced.rows)

    if deposit > 0:
        folio_repository.insert_payment(
            cur,
            caps=get_capabilities(cur),
            payment=folio_repository.NewPayment(
                stay_id=stay_id,
                amount=deposit,
                method=request.payment_method.value,
                status=PaymentEntryStatus.ADVANCE,
                notes="Advance at booking",
                recorded_by=created_by,
            ),
        )

    audit_repository.record_audit(
        cur,
        stay_id=stay_id,
        booking_number=booking_number,
        action=AuditAction.CREATED,
        description=f"Stay created for {request.required_rooms} room(s)",
        new_value=stay_snapshot(request.check_in, request.check_out, totals),
        performed_by=created_by,
    )

    logger.info(
        "stay created",
        extra={
            "extra_fields": safe_log_context(
                stay_id=stay_id,
                booking_number=booking_number,
                room_type_id=request.room_type_id,
                required_rooms=request.required_rooms,
                nights=priced.nights,
            )
        },
    )
    return StayCreated(stay_id=stay_id, booking_number=booking_number)


# ── Room assignment ──────────────────────────────────────


def _room_night_rows(cur: PgCursor, stay: Stay, room_ids: Sequence[int]) -> list[RoomNightRow]:
    """Per-room nights for the assigned rooms, copied from the stored reservation nights.

    Reservation nights already hold one room's charge per date, whether
    they were priced or prorated, so later rate plan edits never leak in.
    """
    reservation_rows = nights_repository.list_reservation_nights(cur, stay.id)
    return room_nights_for(reservation_rows, room_ids)


def _check_room_conflicts(
    cur: PgCursor,
    stay: Stay,
    rooms: Sequence,
    check_in: date,
    check_out: date,
) -> None:
    for room in rooms:
        other = rooms_repository.find_conflicting_stay(
            cur,
            room_id=room.id,
            check_in=check_in,
            check_out=check_out,
            exclude_stay_id=stay.id,
        )
        if other is not None:
            raise StayValidationError(
                f"Room {room.room_number} is already booked by {other}",
                reason_code="room_conflict",
            )


def assign_rooms(
    cur: PgCursor,
    booking_number: str,
    room_ids: Sequence[int],
    performed_by: int | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """Assign (or reassign) the stay's rooms and rebuild its room nights.

    Returns:
        False when the stay or any room does not exist.

    Raises:
        RoomTypeMismatchError: a room is not of the stay's room type.
        StayValidationError: empty or duplicate room list, more rooms than
            booked, closed stay, or a room already taken for the dates.
    """
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number, lock=True)
    if stay is None:
        return False

    room_ids = list(room_ids)
    if not room_ids:
        raise StayValidationError("Room is required", reason_code="room_required")
    if len(set(room_ids)) != len(room_ids):
        raise StayValidationError("Duplicate room in assignment", reason_code="duplicate_room")
    _ensure_open(stay)

    rooms = rooms_repository.get_rooms(cur, room_ids)
    if any(room_id not in rooms for room_id in room_ids):
        return False
    for room_id in room_ids:
        room = rooms[room_id]
        if room.room_type_id != stay.room_type_id:
            raise RoomTypeMismatchError(room.id, stay.room_type_id, room.room_type_id)
    if len(room_ids) > stay.required_rooms:
        raise StayValidationError(
            f"Stay has {stay.required_rooms} room(s) booked, got {len(room_ids)}",
            reason_code="too_many_rooms",
        )

    ordered = [rooms[room_id] for room_id in room_ids]
    _check_room_conflicts(cur, stay, ordered, stay.check_in_date, stay.check_out_date)

    previous_ids = stays_repository.list_assigned_room_ids(cur, stay.id)
    previous_rooms = rooms_repository.get_rooms(cur, previous_ids)
    state = next_state_on_assignment(previous_ids)

    stays_repository.replace_room_assignments(
        cur, stay_id=stay.id, room_ids=room_ids, assigned_by=performed_by
    )
    released = [room_id for room_id in previous_ids if room_id not in rooms]
    rooms_repository.set_rooms_status(cur, released, RoomStatus.AVAILABLE)
    rooms_repository.set_rooms_status(cur, room_ids, RoomStatus.OCCUPIED)

    stays_repository.attach_primary_room(
        cur,
        stay_id=stay.id,
        room_id=room_ids[0],
        checked_in_at=now or utc_now(),
        updated_by=performed_by,
    )

    rows = _room_night_rows(cur, stay, room_ids)
    nights_repository.regenerate_room_nights(cur, stay_id=stay.id, rows=rows)

    old_numbers = [previous_rooms[i].room_number for i in previous_ids if i in previous_rooms]
    new_numbers = [room.room_number for room in ordered]
    if state is LedgerState.ASSIGNED:
        action, description = AuditAction.ROOM_ASSIGNED, "Room assigned"
    else:
        action, description = AuditAction.ROOM_CHANGED, "Room changed"
    audit_repository.record_audit(
        cur,
        stay_id=stay.id,
        booking_number=stay.booking_number,
        action=action,
        description=description,
        old_value=describe_rooms(old_numbers),
        new_value=describe_rooms(new_numbers),
        performed_by=performed_by,
    )

    logger.info(
        "rooms assigned",
        extra={
            "extra_fields": safe_log_context(
                stay_id=stay.id,
                ledger_state=state.value,
                rooms=len(room_ids),
                room_nights=len(rows),
            )
        },
    )
    return True


def assign_room(
    cur: PgCursor,
    booking_number: str,
    room_id: int,
    performed_by: int | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """Single-room form of assign_rooms."""
    return assign_rooms(cur, booking_number, [room_id], performed_by, now=now)


def find_available_room(
    cur: PgCursor, *, room_type_id: int, check_in: date, check_out: date
):
    """First free room of a type for the dates, or None."""
    return rooms_repository.find_available_room(
        cur, room_type_id=room_type_id, check_in=check_in, check_out=check_out
    )


# ── Date change ──────────────────────────────────────────


def change_dates(
    cur: PgCursor,
    booking_number: str,
    new_check_in: date,
    new_check_out: date,
    performed_by: int | None = None,
    override_totals: BookingTotals | None = None,
) -> BookingTotals | None:
    """Move a stay to new dates and rebuild every derived ledger.

    With ``override_totals`` the booking totals are taken as given and
    the nights are prorated from them instead of being repriced.

    Returns:
        The new booking totals, or None when the stay does not exist.

    Raises:
        StayValidationError: closed stay, invalid dates, no rate, or an
            assigned room already taken for the new dates.
    """
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number, lock=True)
    if stay is None:
        return None
    _ensure_open(stay)
    if new_check_in >= new_check_out:
        raise StayValidationError(_REASON_MESSAGES["invalid_dates"], reason_code="invalid_dates")

    assigned_ids = stays_repository.list_assigned_room_ids(cur, stay.id)
    assigned_rooms = rooms_repository.get_rooms(cur, assigned_ids)
    _check_room_conflicts(
        cur,
        stay,
        [assigned_rooms[i] for i in assigned_ids if i in assigned_rooms],
        new_check_in,
        new_check_out,
    )

    if override_totals is None:
        try:
            priced = _requote(cur, stay, new_check_in, new_check_out)
        except QuoteUnavailable as exc:
            raise _validation_from_quote(exc) from exc
        totals = priced.totals
        nights = priced.nights
        reservation_rows = list(priced.rows)
        room_rows = room_nights_for(reservation_rows, assigned_ids)
    else:
        settings = get_hotel_settings(cur)
        stay_dates = list(iter_stay_dates(new_check_in, new_check_out))
        totals = BookingTotals(
            base_amount=round_money(override_totals.base_amount),
            tax_amount=round_money(override_totals.tax_amount),
            cgst_amount=round_money(override_totals.cgst_amount),
            sgst_amount=round_money(override_totals.sgst_amount),
            discount_amount=round_money(override_totals.discount_amount),
            total_amount=round_money(override_totals.total_amount),
            nights=len(stay_dates),
        )
        nights = count_nights(
            new_check_in, new_check_out, settings.check_in_time, settings.check_out_time
        )
        reservation_rows = prorate_totals(totals, stay_dates, stay.required_rooms)
        room_rows = split_reservation_nights(reservation_rows, assigned_ids, stay.required_rooms)

    caps = get_capabilities(cur)
    balance = reconcile_balance(
        total_amount=totals.total_amount,
        entries=folio_repository.list_payment_entries(cur, caps=caps, stay_id=stay.id),
        outstanding_charges=folio_repository.sum_outstanding_charges(cur, stay.id),
    )

    stays_repository.update_stay_dates_and_totals(
        cur,
        stay_id=stay.id,
        check_in=new_check_in,
        check_out=new_check_out,
        nights=nights,
        totals=totals,
        balance=balance,
        updated_by=performed_by,
    )
    nights_repository.regenerate_reservation_nights(cur, stay_id=stay.id, rows=reservation_rows)
    if assigned_ids:
        nights_repository.regenerate_room_nights(cur, stay_id=stay.id, rows=room_rows)

    old_snapshot = stay_snapshot(stay.check_in_date, stay.check_out_date, stay.totals())
    audit_repository.record_audit(
        cur,
        stay_id=stay.id,
        booking_number=stay.booking_number,
        action=AuditAction.DATES_CHANGED,
        description=(
            "Dates changed with manual totals"
            if override_totals is not None
            else f"Dates changed, new total {fmt_money(totals.total_amount)}"
        ),
        old_value=old_snapshot,
        new_value=stay_snapshot(new_check_in, new_check_out, totals),
        performed_by=performed_by,
    )

    logger.info(
        "stay dates changed",
        extra={
            "extra_fields": safe_log_context(
                stay_id=stay.id,
                ledger_state=LedgerState.DATES_CHANGED.value,
                nights=nights,
                rooms=len(assigned_ids),
                manual_totals=override_totals is not None,
            )
        },
    )
    return totals


# ── Audit trail ──────────────────────────────────────────


def list_audit_records(cur: PgCursor, booking_number: str) -> list[AuditRecord] | None:
    stay = stays_repository.get_stay_by_booking_number(cur, booking_number)
    if stay is None:
        return None
    return audit_repository.list_audit_records(cur, stay.id)
