"""Night ledger repository - both projections of a stay's nightly charges.

Regeneration is always wholesale: delete every row of the projection for
the stay, then insert the new rows, inside the caller's transaction.
"""

from __future__ import annotations

from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.ledger import RoomNightRow
from staybook.domain.nights import NightlyRow


def _night_values(row: NightlyRow) -> tuple:
    return (
        row.stay_date,
        row.rate_amount,
        row.actual_rate,
        row.discount_amount,
        row.tax_amount,
        row.cgst_amount,
        row.sgst_amount,
    )


def _night_from_row(row: tuple) -> NightlyRow:
    return NightlyRow(
        stay_date=row[0],
        rate_amount=row[1],
        actual_rate=row[2],
        discount_amount=row[3],
        tax_amount=row[4],
        cgst_amount=row[5],
        sgst_amount=row[6],
    )


def regenerate_reservation_nights(
    cur: PgCursor, *, stay_id: int, rows: Sequence[NightlyRow]
) -> int:
    """Replace the reservation-level nights of a stay. Returns rows written."""
    cur.execute("DELETE FROM stay_nights WHERE stay_id = %s", (stay_id,))
    for row in rows:
        cur.execute(
            """
            INSERT INTO stay_nights (
                stay_id, stay_date, rate_amount, actual_rate, discount_amount,
                tax_amount, cgst_amount, sgst_amount
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (stay_id, *_night_values(row)),
        )
    return len(rows)


def regenerate_room_nights(
    cur: PgCursor, *, stay_id: int, rows: Sequence[RoomNightRow]
) -> int:
    """Replace every per-room night of a stay. Returns rows written."""
    cur.execute("DELETE FROM stay_room_nights WHERE stay_id = %s", (stay_id,))
    for item in rows:
        cur.execute(
            """
            INSERT INTO stay_room_nights (
                stay_id, room_id, stay_date, rate_amount, actual_rate,
                discount_amount, tax_amount, cgst_amount, sgst_amount, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'Reserved')
            """,
            (stay_id, item.room_id, *_night_values(item.night)),
        )
    return len(rows)


def list_reservation_nights(cur: PgCursor, stay_id: int) -> list[NightlyRow]:
    cur.execute(
        """
        SELECT stay_date, rate_amount, actual_rate, discount_amount,
               tax_amount, cgst_amount, sgst_amount
        FROM stay_nights
        WHERE stay_id = %s
        ORDER BY stay_date
        """,
        (stay_id,),
    )
    return [_night_from_row(r) for r in cur.fetchall()]


def list_room_nights(cur: PgCursor, stay_id: int) -> list[RoomNightRow]:
    cur.execute(
        """
        SELECT room_id, stay_date, rate_amount, actual_rate, discount_amount,
               tax_amount, cgst_amount, sgst_amount
        FROM stay_room_nights
        WHERE stay_id = %s
        ORDER BY room_id, stay_date
        """,
        (stay_id,),
    )
    return [RoomNightRow(room_id=r[0], night=_night_from_row(r[1:])) for r in cur.fetchall()]
