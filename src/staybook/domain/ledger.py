"""Room-night ledger projections.

A stay carries two projections of the same nightly breakdown:

- reservation nights: one row per date, booking scoped, written at
  creation and rebuilt on every date change (the printable plan);
- room nights: one row per date per assigned room, written on room
  assignment and rebuilt on reassignment or date change.

This module only shapes rows; regeneration (delete + reinsert) lives in
``staybook.infra.repositories.nights_repository``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Sequence

from staybook.domain.money import round_money
from staybook.domain.nights import NightlyRow


class LedgerState(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    DATES_CHANGED = "dates_changed"


def next_state_on_assignment(previous_room_ids: Sequence[int]) -> LedgerState:
    return LedgerState.REASSIGNED if previous_room_ids else LedgerState.ASSIGNED


@dataclass(frozen=True)
class RoomNightRow:
    room_id: int
    night: NightlyRow


def room_nights_for(rows: Sequence[NightlyRow], room_ids: Sequence[int]) -> list[RoomNightRow]:
    """Write the same per-night breakdown once per assigned room.

    Each row already stands for one room's full nightly charge, so nothing
    is divided here.
    """
    return [RoomNightRow(room_id=room_id, night=row) for room_id in room_ids for row in rows]


def _room_shares(amount: Decimal, required_rooms: int, rooms: int) -> list[Decimal]:
    booking_wide = round_money(amount * required_rooms)
    share = round_money(booking_wide / rooms)
    return [share] * (rooms - 1) + [booking_wide - share * (rooms - 1)]


def split_reservation_nights(
    reservation_rows: Sequence[NightlyRow],
    room_ids: Sequence[int],
    required_rooms: int,
) -> list[RoomNightRow]:
    """Spread booking-wide per-date amounts evenly over the assigned rooms.

    Fallback for stays whose nights were prorated from hand-set totals:
    each reservation row times ``required_rooms`` is the booking-wide
    amount for that date, divided across ``room_ids``. The last room
    takes the rounding remainder, so the rooms of one date add up to the
    booking-wide amount exactly.
    """
    if not room_ids:
        return []
    rooms = len(room_ids)
    required = max(required_rooms, 1)

    per_room: list[list[NightlyRow]] = [[] for _ in room_ids]
    for row in reservation_rows:
        rates = _room_shares(row.rate_amount, required, rooms)
        discounts = _room_shares(row.discount_amount, required, rooms)
        taxes = _room_shares(row.tax_amount, required, rooms)
        cgst = _room_shares(row.cgst_amount, required, rooms)
        sgst = _room_shares(row.sgst_amount, required, rooms)
        for i in range(rooms):
            per_room[i].append(
                NightlyRow(
                    stay_date=row.stay_date,
                    rate_amount=rates[i],
                    actual_rate=rates[i] + discounts[i],
                    discount_amount=discounts[i],
                    tax_amount=taxes[i],
                    cgst_amount=cgst[i],
                    sgst_amount=sgst[i],
                )
            )
    return [
        RoomNightRow(room_id=room_id, night=night)
        for room_id, nights in zip(room_ids, per_room)
        for night in nights
    ]
