"""Rooms repository - room inventory lookups and status updates.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.stays import Room, RoomStatus

# Stay statuses whose room nights block a room.
BLOCKING_STAY_STATUSES = ("Pending", "Confirmed", "CheckedIn")


def _room_from_row(row: tuple) -> Room:
    return Room(id=row[0], room_number=row[1], room_type_id=row[2], status=row[3])


def get_rooms(cur: PgCursor, room_ids: Sequence[int]) -> dict[int, Room]:
    """Active rooms by id; missing or inactive ids are absent from the dict."""
    if not room_ids:
        return {}
    cur.execute(
        """
        SELECT id, room_number, room_type_id, status
        FROM rooms
        WHERE id = ANY(%s) AND is_active = true
        """,
        (list(room_ids),),
    )
    return {row[0]: _room_from_row(row) for row in cur.fetchall()}


def set_rooms_status(cur: PgCursor, room_ids: Sequence[int], status: RoomStatus) -> int:
    if not room_ids:
        return 0
    cur.execute(
        """
        UPDATE rooms
        SET status = %s, updated_at = now()
        WHERE id = ANY(%s)
        """,
        (status.value, list(room_ids)),
    )
    return cur.rowcount


def list_available_rooms(
    cur: PgCursor,
    *,
    room_type_id: int,
    check_in: date,
    check_out: date,
    exclude_stay_id: int | None = None,
    limit: int | None = None,
) -> list[Room]:
    """Rooms of a type with no blocking room night in [check_in, check_out)."""
    params: list = [
        room_type_id,
        list(BLOCKING_STAY_STATUSES),
        check_in,
        check_out,
        exclude_stay_id,
    ]
    limit_clause = ""
    if limit is not None:
        limit_clause = "LIMIT %s"
        params.append(limit)

    cur.execute(
        f"""
        SELECT r.id, r.room_number, r.room_type_id, r.status
        FROM rooms r
        WHERE r.room_type_id = %s
          AND r.is_active = true
          AND NOT EXISTS (
            SELECT 1
            FROM stay_room_nights srn
            JOIN stays s ON s.id = srn.stay_id
            WHERE srn.room_id = r.id
              AND s.status = ANY(%s)
              AND srn.stay_date >= %s
              AND srn.stay_date < %s
              AND s.id IS DISTINCT FROM %s
          )
        ORDER BY r.room_number
        {limit_clause}
        """,
        params,
    )
    return [_room_from_row(row) for row in cur.fetchall()]


def find_conflicting_stay(
    cur: PgCursor,
    *,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_stay_id: int | None = None,
) -> str | None:
    """Booking number of another stay holding the room in the range, if any."""
    cur.execute(
        """
        SELECT s.booking_number
        FROM stay_room_nights srn
        JOIN stays s ON s.id = srn.stay_id
        WHERE srn.room_id = %s
          AND s.status = ANY(%s)
          AND srn.stay_date >= %s
          AND srn.stay_date < %s
          AND s.id IS DISTINCT FROM %s
        ORDER BY srn.stay_date
        LIMIT 1
        """,
        (room_id, list(BLOCKING_STAY_STATUSES), check_in, check_out, exclude_stay_id),
    )
    row = cur.fetchone()
    return row[0] if row is not None else None


def find_available_room(
    cur: PgCursor, *, room_type_id: int, check_in: date, check_out: date
) -> Room | None:
    rooms = list_available_rooms(
        cur, room_type_id=room_type_id, check_in=check_in, check_out=check_out, limit=1
    )
    return rooms[0] if rooms else None
