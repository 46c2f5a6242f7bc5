"""Tests for the nightly rate cascade and best-plan selection."""

from datetime import date

from staybook.domain.rates import (
    SpecialDayOverride,
    Weekday,
    WeekdayRate,
    resolve_nightly_rate,
    select_best_rate_plan,
)

from .helpers import D, rate_card, rate_plan

FRIDAY = date(2026, 3, 6)
SATURDAY = date(2026, 3, 7)


def _special(from_date, to_date, base, extra="0", plan_id=7, **kw):
    return SpecialDayOverride(
        rate_plan_id=plan_id,
        from_date=from_date,
        to_date=to_date,
        base_rate=D(base),
        extra_pax_rate=D(extra),
        **kw,
    )


def _weekday(weekday, base, extra="0", plan_id=7):
    return WeekdayRate(
        rate_plan_id=plan_id, weekday=weekday, base_rate=D(base), extra_pax_rate=D(extra)
    )


class TestWeekday:
    def test_of_date(self):
        assert Weekday.of(FRIDAY) is Weekday.FRIDAY
        assert Weekday.of(SATURDAY) is Weekday.SATURDAY

    def test_from_name_accepts_full_and_short_names(self):
        assert Weekday.from_name("Saturday") is Weekday.SATURDAY
        assert Weekday.from_name("sat") is Weekday.SATURDAY
        assert Weekday.from_name(" MONDAY ") is Weekday.MONDAY

    def test_from_name_unknown(self):
        assert Weekday.from_name("Samstag") is None
        assert Weekday.from_name("") is None


class TestResolveNightlyRate:
    def test_no_card_uses_defaults_without_discount(self):
        rate = resolve_nightly_rate(None, FRIDAY, D("800"), D("100"), apply_discount=True)
        assert (rate.base, rate.extra, rate.discount_percent) == (D("800"), D("100"), D("0"))

    def test_defaults_when_card_has_nothing_for_the_date(self):
        rate = resolve_nightly_rate(rate_card(), FRIDAY, D("1000"), D("200"), apply_discount=False)
        assert (rate.base, rate.extra) == (D("1000"), D("200"))

    def test_weekday_beats_defaults(self):
        card = rate_card(weekday_rates=(_weekday(Weekday.SATURDAY, "1200", "250"),))
        sat = resolve_nightly_rate(card, SATURDAY, D("1000"), D("200"), apply_discount=False)
        fri = resolve_nightly_rate(card, FRIDAY, D("1000"), D("200"), apply_discount=False)
        assert (sat.base, sat.extra) == (D("1200"), D("250"))
        assert fri.base == D("1000")

    def test_special_day_beats_weekday(self):
        card = rate_card(
            special_days=(_special(SATURDAY, SATURDAY, "1500"),),
            weekday_rates=(_weekday(Weekday.SATURDAY, "1200"),),
        )
        rate = resolve_nightly_rate(card, SATURDAY, D("1000"), D("200"), apply_discount=False)
        assert rate.base == D("1500")

    def test_overlapping_special_days_latest_start_wins(self):
        card = rate_card(
            special_days=(
                _special(date(2026, 3, 1), date(2026, 3, 31), "1300"),
                _special(date(2026, 3, 5), date(2026, 3, 8), "1700"),
            )
        )
        rate = resolve_nightly_rate(card, FRIDAY, D("1000"), D("0"), apply_discount=False)
        assert rate.base == D("1700")

    def test_inactive_special_day_is_ignored(self):
        card = rate_card(special_days=(_special(FRIDAY, FRIDAY, "1500", is_active=False),))
        rate = resolve_nightly_rate(card, FRIDAY, D("1000"), D("0"), apply_discount=False)
        assert rate.base == D("1000")

    def test_discount_always_reported(self):
        card = rate_card(rate_plan(apply_discount="10"))
        rate = resolve_nightly_rate(card, FRIDAY, D("1000"), D("200"), apply_discount=False)
        assert rate.discount_percent == D("10")
        assert rate.base == D("1000")

    def test_apply_discount_scales_and_rounds(self):
        card = rate_card(rate_plan(apply_discount="15"))
        rate = resolve_nightly_rate(card, FRIDAY, D("999.99"), D("100.01"), apply_discount=True)
        assert rate.base == D("849.99")  # 849.9915
        assert rate.extra == D("85.01")  # 85.0085


class TestSelectBestRatePlan:
    def _select(self, plans, customer_type="Corporate", source="OTA"):
        return select_best_rate_plan(
            plans,
            room_type_id=1,
            customer_type=customer_type,
            source=source,
            check_in=date(2026, 3, 6),
            check_out=date(2026, 3, 8),
        )

    def test_exact_segment_and_channel_wins(self):
        generic = rate_plan(id=1, customer_type="Walk-in", source="Direct")
        segment = rate_plan(id=2, customer_type="Corporate", source="Direct")
        exact = rate_plan(id=3, customer_type="Corporate", source="OTA")
        assert self._select([generic, segment, exact]).id == 3

    def test_segment_only_beats_any(self):
        generic = rate_plan(id=1, customer_type="Walk-in", source="OTA")
        segment = rate_plan(id=2, customer_type="corporate", source="Direct")
        assert self._select([generic, segment]).id == 2

    def test_falls_back_to_any_plan_for_room_type(self):
        generic = rate_plan(id=1, customer_type="Walk-in", source="Direct")
        assert self._select([generic]).id == 1

    def test_tie_broken_by_latest_start(self):
        older = rate_plan(id=5, customer_type="Corporate", source="OTA", start_date=date(2026, 1, 1))
        newer = rate_plan(id=4, customer_type="Corporate", source="OTA", start_date=date(2026, 2, 1))
        assert self._select([older, newer]).id == 4

    def test_window_must_cover_whole_stay(self):
        short = rate_plan(id=1, end_date=date(2026, 3, 7))
        assert self._select([short]) is None

    def test_inactive_and_other_room_types_excluded(self):
        inactive = rate_plan(id=1, is_active=False)
        other = rate_plan(id=2, room_type_id=9)
        assert self._select([inactive, other]) is None
