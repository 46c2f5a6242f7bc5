"""Stays repository - persistence for the stay aggregate root.

Uses raw SQL with psycopg2 (no ORM). Every function runs on the
caller's cursor so it takes part in the caller's transaction.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.payments import BalanceState
from staybook.domain.stays import Stay, StayStatus
from staybook.domain.totals import BookingTotals
from staybook.infra.db import fetchone, for_update

_STAY_COLUMNS = """
    id, booking_number, status, payment_status, channel, source, customer_type,
    check_in_date, check_out_date, nights, room_type_id, required_rooms,
    adults, children, rate_plan_id, room_id,
    base_amount, tax_amount, cgst_amount, sgst_amount, discount_amount,
    total_amount, deposit_amount, balance_amount, actual_check_in_at
"""


def _stay_from_row(row: tuple) -> Stay:
    return Stay(
        id=row[0],
        booking_number=row[1],
        status=row[2],
        payment_status=row[3],
        channel=row[4] or "",
        source=row[5] or "",
        customer_type=row[6] or "",
        check_in_date=row[7],
        check_out_date=row[8],
        nights=row[9],
        room_type_id=row[10],
        required_rooms=row[11] or 1,
        adults=row[12] or 0,
        children=row[13] or 0,
        rate_plan_id=row[14],
        room_id=row[15],
        base_amount=row[16],
        tax_amount=row[17],
        cgst_amount=row[18],
        sgst_amount=row[19],
        discount_amount=row[20],
        total_amount=row[21],
        deposit_amount=row[22],
        balance_amount=row[23],
        actual_check_in_at=row[24],
    )


def _select_stay(cur: PgCursor, where: str, params: tuple, lock: bool) -> Stay | None:
    query = f"SELECT {_STAY_COLUMNS} FROM stays WHERE {where}"
    row = for_update(cur, query, params) if lock else fetchone(cur, query, params)
    return _stay_from_row(row) if row is not None else None


def get_stay_by_booking_number(
    cur: PgCursor, booking_number: str, *, lock: bool = False
) -> Stay | None:
    """Fetch a stay by business key; lock=True holds the row until commit."""
    return _select_stay(cur, "booking_number = %s", (booking_number,), lock)


def get_stay(cur: PgCursor, stay_id: int, *, lock: bool = False) -> Stay | None:
    return _select_stay(cur, "id = %s", (stay_id,), lock)


def insert_stay(
    cur: PgCursor,
    *,
    booking_number: str,
    status: StayStatus,
    channel: str,
    source: str,
    customer_type: str,
    check_in: date,
    check_out: date,
    nights: int,
    room_type_id: int,
    required_rooms: int,
    adults: int,
    children: int,
    rate_plan_id: int | None,
    totals: BookingTotals,
    balance: BalanceState,
    primary_guest_name: str | None = None,
    primary_guest_phone: str | None = None,
    primary_guest_email: str | None = None,
    special_requests: str | None = None,
    created_by: int | None = None,
) -> int:
    """Insert a new stay and return its id."""
    cur.execute(
        """
        INSERT INTO stays (
            booking_number, status, payment_status, channel, source, customer_type,
            check_in_date, check_out_date, nights, room_type_id, required_rooms,
            adults, children, rate_plan_id,
            base_amount, tax_amount, cgst_amount, sgst_amount, discount_amount,
            total_amount, deposit_amount, balance_amount,
            primary_guest_name, primary_guest_phone, primary_guest_email,
            special_requests, created_by, updated_by
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            booking_number,
            status.value,
            balance.payment_status.value,
            channel,
            source,
            customer_type,
            check_in,
            check_out,
            nights,
            room_type_id,
            required_rooms,
            adults,
            children,
            rate_plan_id,
            totals.base_amount,
            totals.tax_amount,
            totals.cgst_amount,
            totals.sgst_amount,
            totals.discount_amount,
            totals.total_amount,
            balance.deposit_amount,
            balance.balance_amount,
            primary_guest_name,
            primary_guest_phone,
            primary_guest_email,
            special_requests,
            created_by,
            created_by,
        ),
    )
    return cur.fetchone()[0]


def update_stay_dates_and_totals(
    cur: PgCursor,
    *,
    stay_id: int,
    check_in: date,
    check_out: date,
    nights: int,
    totals: BookingTotals,
    balance: BalanceState,
    updated_by: int | None = None,
) -> bool:
    cur.execute(
        """
        UPDATE stays
        SET check_in_date = %s,
            check_out_date = %s,
            nights = %s,
            base_amount = %s,
            tax_amount = %s,
            cgst_amount = %s,
            sgst_amount = %s,
            discount_amount = %s,
            total_amount = %s,
            deposit_amount = %s,
            balance_amount = %s,
            payment_status = %s,
            updated_by = %s,
            updated_at = now()
        WHERE id = %s
        """,
        (
            check_in,
            check_out,
            nights,
            totals.base_amount,
            totals.tax_amount,
            totals.cgst_amount,
            totals.sgst_amount,
            totals.discount_amount,
            totals.total_amount,
            balance.deposit_amount,
            balance.balance_amount,
            balance.payment_status.value,
            updated_by,
            stay_id,
        ),
    )
    return cur.rowcount > 0


def update_balance(
    cur: PgCursor, *, stay_id: int, balance: BalanceState, updated_by: int | None = None
) -> bool:
    cur.execute(
        """
        UPDATE stays
        SET deposit_amount = %s,
            balance_amount = %s,
            payment_status = %s,
            updated_by = %s,
            updated_at = now()
        WHERE id = %s
        """,
        (
            balance.deposit_amount,
            balance.balance_amount,
            balance.payment_status.value,
            updated_by,
            stay_id,
        ),
    )
    return cur.rowcount > 0


# ── Room assignments ─────────────────────────────────────


def list_assigned_room_ids(cur: PgCursor, stay_id: int) -> list[int]:
    cur.execute(
        """
        SELECT room_id
        FROM stay_rooms
        WHERE stay_id = %s AND is_active = true
        ORDER BY id
        """,
        (stay_id,),
    )
    return [row[0] for row in cur.fetchall()]


def replace_room_assignments(
    cur: PgCursor, *, stay_id: int, room_ids: Sequence[int], assigned_by: int | None = None
) -> None:
    """Close every active assignment and open one per room in room_ids."""
    cur.execute(
        """
        UPDATE stay_rooms
        SET is_active = false, unassigned_at = now()
        WHERE stay_id = %s AND is_active = true
        """,
        (stay_id,),
    )
    for room_id in room_ids:
        cur.execute(
            """
            INSERT INTO stay_rooms (stay_id, room_id, assigned_by)
            VALUES (%s, %s, %s)
            """,
            (stay_id, room_id, assigned_by),
        )


def attach_primary_room(
    cur: PgCursor,
    *,
    stay_id: int,
    room_id: int,
    checked_in_at: datetime,
    updated_by: int | None = None,
) -> datetime:
    """Set the primary room and capture the actual check-in once.

    The stay moves to CheckedIn only on that first capture; reassigning
    rooms later leaves its status alone. Returns the effective actual
    check-in timestamp (the first one ever recorded for the stay).
    """
    cur.execute(
        """
        UPDATE stays
        SET room_id = %s,
            actual_check_in_at = COALESCE(actual_check_in_at, %s),
            status = CASE WHEN actual_check_in_at IS NULL THEN %s ELSE status END,
            updated_by = %s,
            updated_at = now()
        WHERE id = %s
        RETURNING actual_check_in_at
        """,
        (room_id, checked_in_at, StayStatus.CHECKED_IN.value, updated_by, stay_id),
    )
    return cur.fetchone()[0]
