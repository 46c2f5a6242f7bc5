"""Builders shared by test modules.

These are NOT fixtures - they are regular functions returning domain
objects with sensible defaults.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from staybook.domain.nights import NightlyRow
from staybook.domain.rates import RateCard, RatePlan, SpecialDayOverride, WeekdayRate
from staybook.domain.stays import RoomType, Stay


def D(value) -> Decimal:
    return Decimal(str(value))


def room_type(**overrides) -> RoomType:
    fields = dict(
        id=1,
        name="Deluxe",
        base_rate=D("1000.00"),
        max_occupancy=2,
        max_room_availability=10,
    )
    fields.update(overrides)
    return RoomType(**fields)


def rate_plan(**overrides) -> RatePlan:
    fields = dict(
        id=7,
        room_type_id=1,
        customer_type="Walk-in",
        source="Direct",
        base_rate=D("1000.00"),
        extra_pax_rate=D("200.00"),
        tax_percentage=D("12"),
        cgst_percentage=D("6"),
        sgst_percentage=D("6"),
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        apply_discount=None,
    )
    fields.update(overrides)
    return RatePlan(**fields)


def rate_card(
    plan: RatePlan | None = None,
    special_days: tuple[SpecialDayOverride, ...] = (),
    weekday_rates: tuple[WeekdayRate, ...] = (),
) -> RateCard:
    plan = plan or rate_plan()
    return RateCard(
        rate_plan_id=plan.id,
        discount_percent=plan.discount_percent,
        special_days=special_days,
        weekday_rates=weekday_rates,
    )


def night(stay_date: date, after, actual=None, discount=0, cgst=0, sgst=0) -> NightlyRow:
    after = D(after)
    return NightlyRow(
        stay_date=stay_date,
        rate_amount=after,
        actual_rate=D(actual) if actual is not None else after,
        discount_amount=D(discount),
        tax_amount=D(cgst) + D(sgst),
        cgst_amount=D(cgst),
        sgst_amount=D(sgst),
    )


def stay(**overrides) -> Stay:
    fields = dict(
        id=42,
        booking_number="BK-20260301120000-123",
        status="Confirmed",
        payment_status="Pending",
        channel="FrontDesk",
        source="Direct",
        customer_type="Walk-in",
        check_in_date=date(2026, 3, 6),
        check_out_date=date(2026, 3, 8),
        nights=2,
        room_type_id=1,
        required_rooms=1,
        adults=2,
        children=0,
        rate_plan_id=7,
        room_id=None,
        base_amount=D("2000.00"),
        tax_amount=D("240.00"),
        cgst_amount=D("120.00"),
        sgst_amount=D("120.00"),
        discount_amount=D("0.00"),
        total_amount=D("2240.00"),
        deposit_amount=D("0.00"),
        balance_amount=D("2240.00"),
    )
    fields.update(overrides)
    return Stay(**fields)


def mock_txn(mock_txn_fn: MagicMock) -> MagicMock:
    """Wire a patched txn() so ``with txn() as cur`` yields a MagicMock cursor."""
    cur = MagicMock()
    mock_txn_fn.return_value.__enter__.return_value = cur
    mock_txn_fn.return_value.__exit__.return_value = False
    return cur
