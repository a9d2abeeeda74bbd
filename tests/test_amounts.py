from __future__ import annotations

from datetime import date

import pytest

from ijcalc.amounts import compute, round_currency, window_end_dates
from ijcalc.models import BenefitClass, ClaimContext, ReasonCode, StoppagePeriod
from ijcalc.rate_table import RateTable

PASS_2024 = 46368.0
REFORM_A = PASS_2024 / 730


def _context(**overrides) -> ClaimContext:
    values = {
        "birth_date": date(1980, 5, 10),
        "as_of_date": date(2025, 3, 31),
        "affiliation_date": date(2010, 1, 1),
        "benefit_class": "A",
        "status": "M",
    }
    values.update(overrides)
    return ClaimContext(**values)


STRADDLING = [StoppagePeriod(start=date(2024, 9, 1), end=date(2025, 2, 28))]


@pytest.fixture(scope="module")
def straddling_result(rate_table: RateTable):
    return compute(STRADDLING, _context(), rate_table)


def test_round_currency_is_half_up() -> None:
    assert round_currency(2.675) == 2.68
    assert round_currency(1.005) == 1.01
    assert round_currency(-0.0) == 0.0


def test_reform_straddle_prices_each_day_by_its_own_period(straddling_result) -> None:
    (detail,) = straddling_result.payment_details
    assert detail.entitlement_date == date(2024, 11, 30)
    assert detail.payable_days == 91

    rates_by_year: dict[int, set[float]] = {}
    for segment in detail.segments:
        rates_by_year.setdefault(segment.year, set()).add(round(segment.daily_rate, 6))
    assert rates_by_year[2024] == {75.06}
    assert rates_by_year[2025] == {round(REFORM_A, 6)}

    days_2024 = sum(segment.days for segment in detail.segments if segment.year == 2024)
    days_2025 = sum(segment.days for segment in detail.segments if segment.year == 2025)
    assert (days_2024, days_2025) == (32, 59)
    assert straddling_result.total_amount == pytest.approx(
        round_currency(32 * 75.06 + 59 * REFORM_A), abs=0.01
    )


def test_segments_split_on_month_ends(straddling_result) -> None:
    (detail,) = straddling_result.payment_details
    assert [(segment.start, segment.end) for segment in detail.segments] == [
        (date(2024, 11, 30), date(2024, 11, 30)),
        (date(2024, 12, 1), date(2024, 12, 31)),
        (date(2025, 1, 1), date(2025, 1, 31)),
        (date(2025, 2, 1), date(2025, 2, 28)),
    ]
    assert all(segment.rate_code == 1 for segment in detail.segments)
    assert all(segment.sub_period == 1 for segment in detail.segments)


def test_compute_is_idempotent(rate_table: RateTable, straddling_result) -> None:
    again = compute(STRADDLING, _context(), rate_table)
    assert again.model_dump_json() == straddling_result.model_dump_json()


def test_threshold_boundary_end_to_end(rate_table: RateTable) -> None:
    context = _context(as_of_date=date(2024, 6, 30))
    ninety = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 3, 30))], context, rate_table)
    assert ninety.total_days == 0
    assert ninety.total_amount == 0.0

    ninety_one = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 3, 31))], context, rate_table)
    assert ninety_one.total_days == 1
    assert ninety_one.payment_details[0].entitlement_date == date(2024, 3, 31)
    assert ninety_one.total_amount == pytest.approx(75.06)


def test_forced_daily_rate_overrides_amount(rate_table: RateTable) -> None:
    result = compute(STRADDLING, _context(forced_daily_rate=50.0), rate_table)
    assert result.total_amount == pytest.approx(50.0 * 91)
    assert {segment.daily_rate for segment in result.payment_details[0].segments} == {50.0}


def test_prorata_applied_last(rate_table: RateTable, straddling_result) -> None:
    result = compute(STRADDLING, _context(prorata=0.5), rate_table)
    assert result.total_amount == pytest.approx(straddling_result.total_amount / 2, abs=0.01)


def test_ccpl_option_halves_the_amount(rate_table: RateTable) -> None:
    context = _context(as_of_date=date(2024, 12, 31), status="CCPL", option="50")
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 4, 9))], context, rate_table)
    assert result.total_days == 10
    assert result.total_amount == pytest.approx(round_currency(10 * 75.06 / 2))


def test_enforced_option_rules_correct_invalid_option(rate_table: RateTable) -> None:
    context = _context(as_of_date=date(2024, 12, 31), status="CCPL", option=0.75, enforce_option_rules=True)
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 4, 9))], context, rate_table)
    assert result.total_amount == pytest.approx(round_currency(10 * 75.06 * 0.25))


def test_per_year_class_from_income(rate_table: RateTable) -> None:
    context = _context(as_of_date=date(2024, 12, 31), incomes_by_year={2022: 100000.0})
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 4, 9))], context, rate_table)
    segment = result.payment_details[0].segments[0]
    assert segment.benefit_class is BenefitClass.B
    assert segment.daily_rate == pytest.approx(112.59)


def test_insufficient_affiliation(rate_table: RateTable) -> None:
    context = _context(as_of_date=date(2024, 6, 30), affiliation_date=date(2023, 1, 1))
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 6, 30))], context, rate_table)
    assert result.affiliation_quarters == 6
    assert result.total_days == 0
    assert result.total_amount == 0.0
    assert result.payment_details[0].reason_code is ReasonCode.INSUFFICIENT_AFFILIATION


def test_age_70_cap_end_to_end(rate_table: RateTable) -> None:
    context = _context(
        birth_date=date(1954, 7, 1),
        as_of_date=date(2025, 6, 30),
        prior_cumulative_days=300,
    )
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2025, 6, 30))], context, rate_table)
    assert result.age == 70
    assert result.total_days == 65
    detail = result.payment_details[0]
    # 300 prior days already clear the 90-day threshold.
    assert detail.entitlement_date == date(2024, 1, 1)
    assert detail.payment_end == date(2024, 3, 5)
    assert detail.reason_code is ReasonCode.AGE_CAP
    assert sum(segment.days for segment in detail.segments) == 65


def test_long_episode_between_62_and_69_uses_intermediate_codes(rate_table: RateTable) -> None:
    context = _context(birth_date=date(1958, 6, 3), as_of_date=date(2024, 6, 30))
    result = compute([StoppagePeriod(start=date(2022, 1, 1), end=date(2024, 3, 31))], context, rate_table)
    detail = result.payment_details[0]
    assert detail.entitlement_date == date(2022, 4, 1)
    assert detail.payable_days == 731

    def segment_on(day: date):
        return next(segment for segment in detail.segments if segment.start <= day <= segment.end)

    assert segment_on(date(2022, 6, 1)).rate_code == 1
    assert segment_on(date(2023, 3, 31)).rate_code == 1
    assert segment_on(date(2023, 4, 1)).rate_code == 7
    assert segment_on(date(2023, 6, 10)).daily_rate == pytest.approx(54.29)
    assert segment_on(date(2024, 3, 30)).rate_code == 7
    last = segment_on(date(2024, 3, 31))
    assert last.rate_code == 4
    assert last.daily_rate == pytest.approx(37.53)
    assert last.days == 1


def test_short_episode_between_62_and_69_drops_to_reduced_codes(rate_table: RateTable) -> None:
    context = _context(birth_date=date(1958, 6, 3), as_of_date=date(2024, 6, 30))
    result = compute([StoppagePeriod(start=date(2022, 1, 1), end=date(2023, 6, 30))], context, rate_table)
    detail = result.payment_details[0]
    later = next(segment for segment in detail.segments if segment.start <= date(2023, 5, 1) <= segment.end)
    assert later.rate_code == 4
    assert later.daily_rate == pytest.approx(54.29)


def test_birthday_splits_segment(rate_table: RateTable) -> None:
    context = _context(birth_date=date(1962, 3, 15), as_of_date=date(2024, 12, 31))
    result = compute([StoppagePeriod(start=date(2023, 12, 1), end=date(2024, 3, 31))], context, rate_table)
    segments = result.payment_details[0].segments
    march = [segment for segment in segments if segment.month == 3]
    assert [(segment.start, segment.end, segment.age) for segment in march] == [
        (date(2024, 3, 1), date(2024, 3, 14), 61),
        (date(2024, 3, 15), date(2024, 3, 31), 62),
    ]


def test_end_to_end_claim_across_calendar_years(rate_table: RateTable) -> None:
    context = _context(
        birth_date=date(1958, 6, 3),
        as_of_date=date(2025, 4, 30),
        benefit_class="C",
        status="standard",
        option=100,
        affiliation_date=date(2000, 1, 1),
        prior_cumulative_days=60,
    )
    period = StoppagePeriod(start=date(2024, 11, 23), end=date(2025, 3, 31))
    result = compute([period], context, rate_table, include_daily=True)
    detail = result.payment_details[0]

    assert detail.entitlement_date == date(2024, 12, 23)
    assert result.total_days == detail.duration - detail.decompte == 99
    amounts_by_year: dict[int, float] = {}
    for segment in detail.segments:
        amounts_by_year[segment.year] = amounts_by_year.get(segment.year, 0.0) + segment.amount
    assert sorted(amounts_by_year) == [2024, 2025]
    assert all(amount > 0 for amount in amounts_by_year.values())
    assert result.total_amount == pytest.approx(
        round_currency(9 * 150.12 + 90 * 3 * PASS_2024 / 730), abs=0.01
    )
    assert len(detail.daily) == 99
    assert detail.daily[0].day == date(2024, 12, 23)
    assert detail.daily[0].weekday == "Monday"
    assert len(result.window_end_dates) == 3
    assert result.total_cumulative_days == 60 + 129


def test_window_end_dates() -> None:
    assert window_end_dates(date(2024, 1, 1), date(1950, 1, 1), date(2024, 6, 1)) == [date(2024, 12, 30)]
    assert window_end_dates(date(2024, 1, 1), date(1950, 1, 1), date(2024, 6, 1), 100) == [date(2024, 9, 21)]
    assert window_end_dates(date(2024, 3, 31), date(1954, 7, 1), date(2025, 1, 1)) == [
        date(2025, 3, 30),
        date(2026, 3, 30),
    ]
    assert len(window_end_dates(date(2024, 3, 31), date(1960, 7, 1), date(2024, 12, 1))) == 3
    assert window_end_dates(date(2024, 3, 31), date(1980, 7, 1), date(2024, 12, 1)) == []
    assert window_end_dates(None, date(1950, 1, 1), date(2024, 6, 1)) == []


def test_prior_condition_code_follows_quarters_at_each_segment(rate_table: RateTable) -> None:
    context = _context(
        birth_date=date(1980, 9, 10),
        as_of_date=date(2024, 12, 31),
        affiliation_date=date(2018, 10, 1),
        prior_condition=True,
        first_pathology_stop_date=date(2021, 6, 1),
    )
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 5, 31))], context, rate_table)
    assert result.affiliation_quarters == 12
    assert result.total_days == 62

    segments = result.payment_details[0].segments
    assert [(segment.start, segment.affiliation_quarters, segment.rate_code) for segment in segments] == [
        (date(2024, 3, 31), 22, 3),
        (date(2024, 4, 1), 24, 1),
        (date(2024, 5, 1), 24, 1),
    ]


def test_prior_condition_reform_rate_uses_current_quarters(rate_table: RateTable) -> None:
    context = _context(
        as_of_date=date(2025, 6, 30),
        affiliation_date=date(2018, 1, 1),
        prior_condition=True,
        first_pathology_stop_date=date(2021, 6, 1),
    )
    result = compute([StoppagePeriod(start=date(2025, 1, 1), end=date(2025, 4, 30))], context, rate_table)
    assert result.affiliation_quarters == 15
    assert result.total_days == 30
    segments = result.payment_details[0].segments
    assert {segment.rate_code for segment in segments} == {1}
    assert {segment.affiliation_quarters for segment in segments} == {31}
    assert result.total_amount == pytest.approx(round_currency(30 * REFORM_A), abs=0.01)


@pytest.mark.parametrize("prior_condition, expected_days", [(True, 0), (False, 10)])
def test_affiliation_gate_at_first_pathology_stop(rate_table: RateTable, prior_condition, expected_days) -> None:
    context = _context(
        as_of_date=date(2024, 12, 31),
        affiliation_date=date(2020, 1, 1),
        prior_condition=prior_condition,
        first_pathology_stop_date=date(2021, 6, 1),
    )
    result = compute([StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 4, 9))], context, rate_table)
    assert result.total_days == expected_days
    if prior_condition:
        assert result.affiliation_quarters == 7
        assert result.payment_details[0].reason_code is ReasonCode.INSUFFICIENT_AFFILIATION
        assert result.total_amount == 0.0
    else:
        assert result.affiliation_quarters >= 8


def test_payment_checkpoint_restarts_episode_day_count(rate_table: RateTable) -> None:
    context = _context(
        birth_date=date(1958, 6, 3),
        as_of_date=date(2024, 6, 30),
        last_payment_date=date(2024, 1, 1),
    )
    result = compute([StoppagePeriod(start=date(2020, 1, 1), end=date(2024, 6, 30))], context, rate_table)
    detail = result.payment_details[0]
    assert detail.payment_start == date(2024, 1, 1)
    assert result.total_days == 182
    assert sum(segment.days for segment in detail.segments) == 182
    assert all(segment.reason_code is None for segment in detail.segments)
    assert {segment.sub_period for segment in detail.segments} == {1}
    assert result.total_amount == pytest.approx(round_currency(182 * 75.06))
