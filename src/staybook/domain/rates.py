"""Rate resolution - which nightly rate applies to a given date.

Priority, highest first:
1. Special-day override whose inclusive range contains the date
   (the override with the latest start date wins).
2. Weekday schedule for the date's day of week.
3. The caller-supplied defaults (rate plan base/extra, falling back to
   the room type base rate).

The rate plan discount is always reported, so callers can compute the
original amount and the discount separately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import IntEnum

from staybook.domain.money import HUNDRED, ZERO, parse_discount_percent, round_money, to_decimal


class Weekday(IntEnum):
    """Locale-independent day of week, aligned with ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def from_name(cls, name: str) -> "Weekday | None":
        """Parse a stored English day name ("Saturday", "sat", "SATURDAY")."""
        key = (name or "").strip().upper()
        if not key:
            return None
        for member in cls:
            if member.name == key or member.name[:3] == key:
                return member
        return None


@dataclass(frozen=True)
class RatePlan:
    """Rate master row scoped to room type, segment, channel and window."""

    id: int
    room_type_id: int
    customer_type: str
    source: str
    base_rate: Decimal
    extra_pax_rate: Decimal
    tax_percentage: Decimal
    cgst_percentage: Decimal = ZERO
    sgst_percentage: Decimal = ZERO
    start_date: date | None = None
    end_date: date | None = None
    apply_discount: str | None = None
    is_active: bool = True

    @property
    def discount_percent(self) -> Decimal:
        return parse_discount_percent(self.apply_discount)

    def covers(self, check_in: date, check_out: date) -> bool:
        if self.start_date is not None and check_in < self.start_date:
            return False
        if self.end_date is not None and check_out > self.end_date:
            return False
        return True


@dataclass(frozen=True)
class SpecialDayOverride:
    rate_plan_id: int
    from_date: date
    to_date: date
    base_rate: Decimal
    extra_pax_rate: Decimal
    event_name: str | None = None
    is_active: bool = True

    def contains(self, day: date) -> bool:
        return self.from_date <= day <= self.to_date


@dataclass(frozen=True)
class WeekdayRate:
    rate_plan_id: int
    weekday: Weekday
    base_rate: Decimal
    extra_pax_rate: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class RateCard:
    """Everything needed to price any night under one rate plan."""

    rate_plan_id: int | None
    discount_percent: Decimal = ZERO
    special_days: tuple[SpecialDayOverride, ...] = field(default_factory=tuple)
    weekday_rates: tuple[WeekdayRate, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NightlyRate:
    base: Decimal
    extra: Decimal
    discount_percent: Decimal


def _special_day_for(card: RateCard, day: date) -> SpecialDayOverride | None:
    matches = [s for s in card.special_days if s.is_active and s.contains(day)]
    if not matches:
        return None
    return max(matches, key=lambda s: s.from_date)


def _weekday_rate_for(card: RateCard, day: date) -> WeekdayRate | None:
    weekday = Weekday.of(day)
    for rate in card.weekday_rates:
        if rate.is_active and rate.weekday == weekday:
            return rate
    return None


def resolve_nightly_rate(
    card: RateCard | None,
    stay_date: date,
    default_base: Decimal,
    default_extra: Decimal,
    *,
    apply_discount: bool,
) -> NightlyRate:
    """Resolve the base/extra rate in effect on ``stay_date``.

    Args:
        card: Loaded rate card, or None when the stay has no rate plan.
        stay_date: The night being priced.
        default_base: Fallback base rate (priority 3).
        default_extra: Fallback extra-occupant rate (priority 3).
        apply_discount: Scale the chosen rates by the plan discount.

    Returns:
        NightlyRate with the chosen base/extra and the plan discount.
    """
    if card is None or not card.rate_plan_id:
        return NightlyRate(
            base=to_decimal(default_base),
            extra=to_decimal(default_extra),
            discount_percent=Decimal("0"),
        )

    discount = card.discount_percent

    special = _special_day_for(card, stay_date)
    if special is not None:
        base, extra = special.base_rate, special.extra_pax_rate
    else:
        weekday_rate = _weekday_rate_for(card, stay_date)
        if weekday_rate is not None:
            base, extra = weekday_rate.base_rate, weekday_rate.extra_pax_rate
        else:
            base, extra = default_base, default_extra

    base = to_decimal(base)
    extra = to_decimal(extra)

    if apply_discount and discount > 0:
        factor = 1 - discount / HUNDRED
        base = round_money(base * factor)
        extra = round_money(extra * factor)

    return NightlyRate(base=base, extra=extra, discount_percent=discount)


def select_best_rate_plan(
    plans: list[RatePlan],
    *,
    room_type_id: int,
    customer_type: str,
    source: str,
    check_in: date,
    check_out: date,
) -> RatePlan | None:
    """Pick the single best active plan for a stay.

    Exact segment + channel beats segment only, which beats any plan for
    the room type. Within a tier the plan with the latest start wins.
    """
    eligible = [
        p
        for p in plans
        if p.is_active and p.room_type_id == room_type_id and p.covers(check_in, check_out)
    ]
    if not eligible:
        return None

    def _norm(value: str | None) -> str:
        return (value or "").strip().lower()

    segment = _norm(customer_type)
    channel = _norm(source)

    def _tier(plan: RatePlan) -> int:
        same_segment = _norm(plan.customer_type) == segment
        if same_segment and _norm(plan.source) == channel:
            return 2
        if same_segment:
            return 1
        return 0

    return max(eligible, key=lambda p: (_tier(p), p.start_date or date.min, p.id))
