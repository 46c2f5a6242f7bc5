"""Night-by-night breakdown of a stay.

One row per calendar night in [check_in, check_out). Every booking total
and both night ledgers are derived from these rows.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterator

from staybook.domain.money import ZERO, percent_of, round_money, to_decimal
from staybook.domain.rates import RateCard, resolve_nightly_rate


@dataclass(frozen=True)
class NightlyRow:
    """Charges for one room for one night.

    Attributes:
        stay_date: The night (check-in date of that night).
        rate_amount: Room rate after discount.
        actual_rate: Room rate before discount.
        discount_amount: actual_rate - rate_amount.
        tax_amount: Total tax on rate_amount.
        cgst_amount: First tax component on rate_amount.
        sgst_amount: Second tax component on rate_amount.
    """

    stay_date: date
    rate_amount: Decimal
    actual_rate: Decimal
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO


def iter_stay_dates(check_in: date, check_out: date) -> Iterator[date]:
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def count_nights(
    check_in: date,
    check_out: date,
    check_in_time: time = time(14, 0),
    check_out_time: time = time(12, 0),
) -> int:
    """Billable nights from hotel check-in/check-out clock times.

    ceil(hours between arrival and departure / 24), at least 1 whenever the
    departure date is after the arrival date; 0 otherwise.
    """
    if check_out <= check_in:
        return 0
    arrival = datetime.combine(check_in, check_in_time)
    departure = datetime.combine(check_out, check_out_time)
    hours = (departure - arrival).total_seconds() / 3600
    return max(1, math.ceil(hours / 24))


def extra_guests(adults: int, children: int, max_occupancy: int) -> int:
    return max(0, (adults or 0) + (children or 0) - (max_occupancy or 0))


def split_tax_percentages(
    tax_pct: Decimal, cgst_pct: Decimal | None, sgst_pct: Decimal | None
) -> tuple[Decimal, Decimal]:
    """Return the two tax component percentages.

    A zero or missing component falls back to half the total percentage.
    """
    tax_pct = to_decimal(tax_pct)
    half = tax_pct / 2
    cgst = to_decimal(cgst_pct)
    sgst = to_decimal(sgst_pct)
    return (cgst if cgst > 0 else half, sgst if sgst > 0 else half)


def build_nightly_breakdown(
    card: RateCard | None,
    check_in: date,
    check_out: date,
    default_base: Decimal,
    default_extra: Decimal,
    extra_guest_count: int,
    tax_pct: Decimal,
    cgst_pct: Decimal | None = None,
    sgst_pct: Decimal | None = None,
) -> list[NightlyRow]:
    """Price every night of a stay for a single room.

    Rates are resolved undiscounted, the discount is taken off the
    combined nightly amount and tax is computed on what remains.
    """
    tax_pct = to_decimal(tax_pct)
    cgst_rate, sgst_rate = split_tax_percentages(tax_pct, cgst_pct, sgst_pct)

    rows: list[NightlyRow] = []
    for stay_date in iter_stay_dates(check_in, check_out):
        original = resolve_nightly_rate(
            card, stay_date, default_base, default_extra, apply_discount=False
        )
        actual = round_money(original.base + original.extra * extra_guest_count)

        if original.discount_percent > 0:
            discount = percent_of(actual, original.discount_percent)
        else:
            discount = ZERO
        after = actual - discount

        rows.append(
            NightlyRow(
                stay_date=stay_date,
                rate_amount=after,
                actual_rate=actual,
                discount_amount=discount,
                tax_amount=percent_of(after, tax_pct),
                cgst_amount=percent_of(after, cgst_rate),
                sgst_amount=percent_of(after, sgst_rate),
            )
        )
    return rows
