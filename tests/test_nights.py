"""Tests for the nightly breakdown and night counting."""

from datetime import date, time

from staybook.domain.nights import (
    build_nightly_breakdown,
    count_nights,
    extra_guests,
    iter_stay_dates,
    split_tax_percentages,
)
from staybook.domain.rates import SpecialDayOverride

from .helpers import D, rate_card, rate_plan

CHECK_IN = date(2026, 3, 6)
CHECK_OUT = date(2026, 3, 8)


class TestCountNights:
    def test_default_clock_times(self):
        # 14:00 -> 12:00 two days later is 46 hours
        assert count_nights(CHECK_IN, CHECK_OUT) == 2

    def test_late_checkout_adds_a_night(self):
        assert count_nights(CHECK_IN, CHECK_OUT, time(14, 0), time(16, 0)) == 3

    def test_at_least_one_night(self):
        assert count_nights(CHECK_IN, date(2026, 3, 7), time(23, 0), time(1, 0)) == 1

    def test_checkout_not_after_checkin(self):
        assert count_nights(CHECK_IN, CHECK_IN) == 0
        assert count_nights(CHECK_OUT, CHECK_IN) == 0


def test_iter_stay_dates_is_half_open():
    assert list(iter_stay_dates(CHECK_IN, CHECK_OUT)) == [date(2026, 3, 6), date(2026, 3, 7)]


def test_extra_guests_never_negative():
    assert extra_guests(1, 0, 2) == 0
    assert extra_guests(2, 1, 2) == 1


class TestSplitTaxPercentages:
    def test_explicit_components(self):
        assert split_tax_percentages(D("12"), D("5"), D("7")) == (D("5"), D("7"))

    def test_missing_components_fall_back_to_half(self):
        assert split_tax_percentages(D("18"), None, D("0")) == (D("9"), D("9"))


class TestBuildNightlyBreakdown:
    def test_one_row_per_night(self):
        rows = build_nightly_breakdown(None, CHECK_IN, CHECK_OUT, D("1000"), D("0"), 0, D("12"))
        assert [r.stay_date for r in rows] == [date(2026, 3, 6), date(2026, 3, 7)]

    def test_extra_guests_priced_before_discount(self):
        card = rate_card(rate_plan(apply_discount="10"))
        rows = build_nightly_breakdown(card, CHECK_IN, CHECK_OUT, D("1000"), D("200"), 1, D("12"))
        first = rows[0]
        assert first.actual_rate == D("1200.00")
        assert first.discount_amount == D("120.00")
        assert first.rate_amount == D("1080.00")
        assert first.tax_amount == D("129.60")
        assert first.cgst_amount == D("64.80")
        assert first.sgst_amount == D("64.80")

    def test_night_sum_invariant(self):
        card = rate_card(rate_plan(apply_discount="7.5"))
        rows = build_nightly_breakdown(card, CHECK_IN, CHECK_OUT, D("1234.56"), D("99.99"), 2, D("18"))
        for r in rows:
            assert r.rate_amount + r.discount_amount == r.actual_rate

    def test_special_day_changes_only_its_night(self):
        card = rate_card(
            special_days=(
                SpecialDayOverride(
                    rate_plan_id=7,
                    from_date=date(2026, 3, 7),
                    to_date=date(2026, 3, 7),
                    base_rate=D("1500"),
                    extra_pax_rate=D("0"),
                    event_name="Holi",
                ),
            )
        )
        rows = build_nightly_breakdown(card, CHECK_IN, CHECK_OUT, D("1000"), D("0"), 0, D("0"))
        assert [r.rate_amount for r in rows] == [D("1000.00"), D("1500.00")]
