"""Booking-level totals derived from the nightly breakdown."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from staybook.domain.money import HUNDRED, ZERO, round_money, to_decimal
from staybook.domain.nights import NightlyRow


@dataclass(frozen=True)
class BookingTotals:
    base_amount: Decimal
    tax_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    nights: int = 0

    def as_dict(self) -> dict:
        return {
            "base_amount": str(self.base_amount),
            "tax_amount": str(self.tax_amount),
            "cgst_amount": str(self.cgst_amount),
            "sgst_amount": str(self.sgst_amount),
            "discount_amount": str(self.discount_amount),
            "total_amount": str(self.total_amount),
            "nights": self.nights,
        }


def reconstruct_discount(base_amount: Decimal, discount_percent: Decimal) -> Decimal:
    """Discount implied by an already-rounded discounted base.

    round(base / (1 - d/100)) - base. Summing per-night discounts drifts
    from this figure under repeated rounding, so it is never used directly.
    """
    discount_percent = to_decimal(discount_percent)
    if discount_percent <= 0 or discount_percent >= HUNDRED:
        return ZERO
    original_total = round_money(base_amount / (1 - discount_percent / HUNDRED))
    return original_total - base_amount


def aggregate_totals(
    rows: Iterable[NightlyRow],
    required_rooms: int,
    discount_percent: Decimal = ZERO,
) -> BookingTotals:
    """Multiply one room's nightly rows out to the whole booking.

    Args:
        rows: Nightly breakdown for a single room.
        required_rooms: Number of identically priced rooms booked.
        discount_percent: Stay-level discount used to rebuild the discount.

    Returns:
        BookingTotals where total = base + cgst + sgst.
    """
    rows = list(rows)
    rooms = Decimal(required_rooms)

    base = round_money(sum((r.rate_amount for r in rows), ZERO) * rooms)
    cgst = round_money(sum((r.cgst_amount for r in rows), ZERO) * rooms)
    sgst = round_money(sum((r.sgst_amount for r in rows), ZERO) * rooms)
    tax = cgst + sgst

    discount_percent = to_decimal(discount_percent)
    if discount_percent >= HUNDRED:
        # Fully discounted: nothing to divide by, fall back to the sum.
        actual = round_money(sum((r.actual_rate for r in rows), ZERO) * rooms)
        discount = actual - base
    else:
        discount = reconstruct_discount(base, discount_percent)

    return BookingTotals(
        base_amount=base,
        tax_amount=tax,
        cgst_amount=cgst,
        sgst_amount=sgst,
        discount_amount=discount,
        total_amount=base + tax,
        nights=len(rows),
    )


def _spread(amount: Decimal, parts: int, divisor: Decimal) -> list[Decimal]:
    """Split amount / divisor over parts; the last part takes the remainder."""
    whole = round_money(to_decimal(amount) * parts / divisor)
    share = round_money(to_decimal(amount) / divisor)
    return [share] * (parts - 1) + [whole - share * (parts - 1)]


def prorate_totals(totals: BookingTotals, stay_dates: list, required_rooms: int) -> list[NightlyRow]:
    """Spread booking totals evenly over nights, per room.

    Used when totals were set by hand and there is no night-by-night
    pricing to read from. The last night absorbs the rounding, so the
    nights of one room add up to that room's share of each total.
    """
    nights = len(stay_dates)
    if nights == 0:
        return []
    divisor = Decimal(nights * max(required_rooms, 1))

    rates = _spread(totals.base_amount, nights, divisor)
    discounts = _spread(totals.discount_amount, nights, divisor)
    taxes = _spread(totals.tax_amount, nights, divisor)
    cgst = _spread(totals.cgst_amount, nights, divisor)
    sgst = _spread(totals.sgst_amount, nights, divisor)
    return [
        NightlyRow(
            stay_date=d,
            rate_amount=rates[i],
            actual_rate=rates[i] + discounts[i],
            discount_amount=discounts[i],
            tax_amount=taxes[i],
            cgst_amount=cgst[i],
            sgst_amount=sgst[i],
        )
        for i, d in enumerate(stay_dates)
    ]
