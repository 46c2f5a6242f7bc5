"""Quote domain logic - prices a stay request.

Pure: callers load the room type, the best rate plan and its rate card,
this module turns them into nightly rows and booking totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

from staybook.domain.money import ZERO, to_decimal
from staybook.domain.nights import (
    NightlyRow,
    build_nightly_breakdown,
    count_nights,
    extra_guests,
    split_tax_percentages,
)
from staybook.domain.rates import RateCard, RatePlan
from staybook.domain.stays import RoomType
from staybook.domain.totals import BookingTotals, aggregate_totals


class QuoteUnavailable(Exception):
    def __init__(self, reason_code: str, meta: dict | None = None):
        self.reason_code = reason_code
        self.meta = meta or {}
        super().__init__(f"Quote unavailable: {reason_code}")


@dataclass(frozen=True)
class PricingInputs:
    """Everything the breakdown needs besides the dates."""

    card: RateCard | None
    default_base: Decimal
    default_extra: Decimal
    extra_guests: int
    tax_percentage: Decimal
    cgst_percentage: Decimal
    sgst_percentage: Decimal

    @property
    def discount_percent(self) -> Decimal:
        return self.card.discount_percent if self.card is not None else ZERO


@dataclass(frozen=True)
class StayQuote:
    room_type_id: int
    rate_plan_id: int | None
    check_in: date
    check_out: date
    nights: int
    required_rooms: int
    extra_guests: int
    base_rate_per_night: Decimal
    extra_pax_rate_per_night: Decimal
    tax_percentage: Decimal
    cgst_percentage: Decimal
    sgst_percentage: Decimal
    discount_percent: Decimal
    rows: tuple[NightlyRow, ...]
    totals: BookingTotals

    def as_dict(self) -> dict:
        return {
            "available": True,
            "room_type_id": self.room_type_id,
            "rate_plan_id": self.rate_plan_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "required_rooms": self.required_rooms,
            "extra_guests": self.extra_guests,
            "base_rate_per_night": str(self.base_rate_per_night),
            "extra_pax_rate_per_night": str(self.extra_pax_rate_per_night),
            "tax_percentage": str(self.tax_percentage),
            "cgst_percentage": str(self.cgst_percentage),
            "sgst_percentage": str(self.sgst_percentage),
            "discount_percent": str(self.discount_percent),
            "totals": self.totals.as_dict(),
            "nightly": [
                {
                    "date": r.stay_date.isoformat(),
                    "rate_amount": str(r.rate_amount),
                    "actual_rate": str(r.actual_rate),
                    "discount_amount": str(r.discount_amount),
                    "cgst_amount": str(r.cgst_amount),
                    "sgst_amount": str(r.sgst_amount),
                }
                for r in self.rows
            ],
        }


def pricing_inputs(
    room_type: RoomType,
    rate_plan: RatePlan | None,
    card: RateCard | None,
    *,
    adults: int,
    children: int,
) -> PricingInputs:
    """Defaults come from the rate plan, falling back to the room type."""
    if rate_plan is not None:
        default_base = to_decimal(rate_plan.base_rate)
        default_extra = to_decimal(rate_plan.extra_pax_rate)
        tax_pct = to_decimal(rate_plan.tax_percentage)
        cgst_pct, sgst_pct = split_tax_percentages(
            tax_pct, rate_plan.cgst_percentage, rate_plan.sgst_percentage
        )
    else:
        default_base = to_decimal(room_type.base_rate)
        default_extra = ZERO
        tax_pct = ZERO
        cgst_pct = sgst_pct = ZERO

    return PricingInputs(
        card=card,
        default_base=default_base,
        default_extra=default_extra,
        extra_guests=extra_guests(adults, children, room_type.max_occupancy),
        tax_percentage=tax_pct,
        cgst_percentage=cgst_pct,
        sgst_percentage=sgst_pct,
    )


def breakdown_for(inputs: PricingInputs, check_in: date, check_out: date) -> list[NightlyRow]:
    return build_nightly_breakdown(
        inputs.card,
        check_in,
        check_out,
        inputs.default_base,
        inputs.default_extra,
        inputs.extra_guests,
        inputs.tax_percentage,
        inputs.cgst_percentage,
        inputs.sgst_percentage,
    )


def quote_stay(
    *,
    room_type: RoomType,
    rate_plan: RatePlan | None,
    card: RateCard | None,
    check_in: date,
    check_out: date,
    adults: int,
    children: int,
    required_rooms: int,
    check_in_time: time = time(14, 0),
    check_out_time: time = time(12, 0),
) -> StayQuote:
    """Price a stay request.

    Raises:
        QuoteUnavailable: invalid dates, non-positive room count, zero
            nights, or no rate to charge.
    """
    if check_in >= check_out:
        raise QuoteUnavailable("invalid_dates")
    if required_rooms < 1:
        raise QuoteUnavailable("invalid_required_rooms")

    nights = count_nights(check_in, check_out, check_in_time, check_out_time)
    if nights <= 0:
        raise QuoteUnavailable("no_nights")

    if rate_plan is None and to_decimal(room_type.base_rate) <= 0:
        raise QuoteUnavailable("no_matching_rate", {"room_type_id": room_type.id})

    inputs = pricing_inputs(room_type, rate_plan, card, adults=adults, children=children)
    rows = breakdown_for(inputs, check_in, check_out)
    if not rows:
        raise QuoteUnavailable("no_nights")

    totals = aggregate_totals(rows, required_rooms, inputs.discount_percent)

    return StayQuote(
        room_type_id=room_type.id,
        rate_plan_id=rate_plan.id if rate_plan is not None else None,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        required_rooms=required_rooms,
        extra_guests=inputs.extra_guests,
        base_rate_per_night=inputs.default_base,
        extra_pax_rate_per_night=inputs.default_extra,
        tax_percentage=inputs.tax_percentage,
        cgst_percentage=inputs.cgst_percentage,
        sgst_percentage=inputs.sgst_percentage,
        discount_percent=inputs.discount_percent,
        rows=tuple(rows),
        totals=totals,
    )
