"""Rates repository - room types, rate plans and their rate cards.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.money import ZERO
from staybook.domain.rates import (
    RateCard,
    RatePlan,
    SpecialDayOverride,
    Weekday,
    WeekdayRate,
    select_best_rate_plan,
)
from staybook.domain.stays import RoomType
from staybook.observability.logging import get_logger

logger = get_logger(__name__)

_RATE_PLAN_COLUMNS = """
    id, room_type_id, customer_type, source, base_rate, extra_pax_rate,
    tax_percentage, cgst_percentage, sgst_percentage, start_date, end_date,
    apply_discount, is_active
"""


def _rate_plan_from_row(row: tuple) -> RatePlan:
    return RatePlan(
        id=row[0],
        room_type_id=row[1],
        customer_type=row[2] or "",
        source=row[3] or "",
        base_rate=row[4] if row[4] is not None else ZERO,
        extra_pax_rate=row[5] if row[5] is not None else ZERO,
        tax_percentage=row[6] if row[6] is not None else ZERO,
        cgst_percentage=row[7] if row[7] is not None else ZERO,
        sgst_percentage=row[8] if row[8] is not None else ZERO,
        start_date=row[9],
        end_date=row[10],
        apply_discount=row[11],
        is_active=bool(row[12]),
    )


def get_room_type(cur: PgCursor, room_type_id: int) -> RoomType | None:
    """Fetch an active room type, or None."""
    cur.execute(
        """
        SELECT id, name, base_rate, max_occupancy, max_room_availability
        FROM room_types
        WHERE id = %s AND is_active = true
        """,
        (room_type_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return RoomType(
        id=row[0],
        name=row[1],
        base_rate=row[2] if row[2] is not None else ZERO,
        max_occupancy=row[3] or 0,
        max_room_availability=row[4],
    )


def get_rate_plan(cur: PgCursor, rate_plan_id: int | None) -> RatePlan | None:
    if not rate_plan_id:
        return None
    cur.execute(
        f"SELECT {_RATE_PLAN_COLUMNS} FROM rate_plans WHERE id = %s",
        (rate_plan_id,),
    )
    row = cur.fetchone()
    return _rate_plan_from_row(row) if row is not None else None


def list_rate_plans(cur: PgCursor, room_type_id: int) -> list[RatePlan]:
    cur.execute(
        f"""
        SELECT {_RATE_PLAN_COLUMNS}
        FROM rate_plans
        WHERE room_type_id = %s AND is_active = true
        ORDER BY start_date DESC NULLS LAST, id DESC
        """,
        (room_type_id,),
    )
    return [_rate_plan_from_row(r) for r in cur.fetchall()]


def find_best_rate_plan(
    cur: PgCursor,
    *,
    room_type_id: int,
    customer_type: str,
    source: str,
    check_in: date,
    check_out: date,
) -> RatePlan | None:
    """Best active plan for the stay (segment+channel > segment > any)."""
    return select_best_rate_plan(
        list_rate_plans(cur, room_type_id),
        room_type_id=room_type_id,
        customer_type=customer_type,
        source=source,
        check_in=check_in,
        check_out=check_out,
    )


def load_rate_card(cur: PgCursor, rate_plan: RatePlan | None) -> RateCard | None:
    """Load special-day and weekday rates for a plan."""
    if rate_plan is None:
        return None

    cur.execute(
        """
        SELECT rate_plan_id, from_date, to_date, base_rate, extra_pax_rate, event_name
        FROM rate_plan_special_days
        WHERE rate_plan_id = %s AND is_active = true
        ORDER BY from_date DESC
        """,
        (rate_plan.id,),
    )
    special_days = tuple(
        SpecialDayOverride(
            rate_plan_id=r[0],
            from_date=r[1],
            to_date=r[2],
            base_rate=r[3] if r[3] is not None else ZERO,
            extra_pax_rate=r[4] if r[4] is not None else ZERO,
            event_name=r[5],
        )
        for r in cur.fetchall()
    )

    cur.execute(
        """
        SELECT rate_plan_id, day_of_week, base_rate, extra_pax_rate
        FROM rate_plan_weekday_rates
        WHERE rate_plan_id = %s AND is_active = true
        ORDER BY id
        """,
        (rate_plan.id,),
    )
    weekday_rates: list[WeekdayRate] = []
    for r in cur.fetchall():
        weekday = Weekday.from_name(r[1])
        if weekday is None:
            logger.warning(
                "skipping weekday rate with unknown day name",
                extra={"extra_fields": {"rate_plan_id": rate_plan.id}},
            )
            continue
        weekday_rates.append(
            WeekdayRate(
                rate_plan_id=r[0],
                weekday=weekday,
                base_rate=r[2] if r[2] is not None else ZERO,
                extra_pax_rate=r[3] if r[3] is not None else ZERO,
            )
        )

    return RateCard(
        rate_plan_id=rate_plan.id,
        discount_percent=rate_plan.discount_percent,
        special_days=special_days,
        weekday_rates=tuple(weekday_rates),
    )
