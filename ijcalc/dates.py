"""Calendar helpers: day counts, business days, ages and affiliation quarters."""

from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache

from dateutil.easter import easter
from dateutil.relativedelta import relativedelta

from ijcalc.config import SKIP_PUBLIC_HOLIDAYS

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days in [start, end]; 0 when end precedes start."""
    return max((end - start).days + 1, 0)


def month_end(value: date) -> date:
    return value + relativedelta(day=31)


def quarter_of(value: date) -> int:
    return (value.month - 1) // 3 + 1


def is_quarter_end(value: date) -> bool:
    return value.month % 3 == 0 and value == month_end(value)


@lru_cache(maxsize=64)
def french_holidays(year: int) -> frozenset[date]:
    """Public holidays observed in metropolitan France for ``year``."""

    easter_sunday = easter(year)
    return frozenset(
        {
            date(year, 1, 1),
            date(year, 5, 1),
            date(year, 5, 8),
            date(year, 7, 14),
            date(year, 8, 15),
            date(year, 11, 1),
            date(year, 11, 11),
            date(year, 12, 25),
            easter_sunday + timedelta(days=1),
            easter_sunday + timedelta(days=39),
            easter_sunday + timedelta(days=50),
        }
    )


def is_business_day(value: date, skip_holidays: bool = SKIP_PUBLIC_HOLIDAYS) -> bool:
    if value.weekday() >= 5:
        return False
    return not (skip_holidays and value in french_holidays(value.year))


def next_business_day(value: date, skip_holidays: bool = SKIP_PUBLIC_HOLIDAYS) -> date:
    """First business day strictly after ``value``."""
    candidate = value + timedelta(days=1)
    while not is_business_day(candidate, skip_holidays):
        candidate += timedelta(days=1)
    return candidate


def age_on(birth_date: date, on: date) -> int:
    """Age in completed years on the given day."""
    return relativedelta(on, birth_date).years


def next_birthday(birth_date: date, after: date) -> date:
    """First birthday strictly after ``after`` (29 Feb birthdays fall on 28 Feb in common years)."""
    years = age_on(birth_date, after) + 1
    return birth_date + relativedelta(years=years)


def affiliation_quarters(affiliation_date: date | None, on: date) -> int:
    """Count calendar quarters of affiliation up to ``on``.

    The affiliation quarter counts as complete, and so does the current one
    unless ``on`` is the last day of its quarter.
    """

    if affiliation_date is None or affiliation_date > on:
        return 0
    total = 4 * (on.year - affiliation_date.year) + (quarter_of(on) - quarter_of(affiliation_date)) + 1
    if not is_quarter_end(on):
        total += 1
    return max(total, 0)


def semester_after_75(birth_date: date) -> date:
    """First day of the half-year following the 75th birthday."""
    birthday_75 = birth_date + relativedelta(years=75)
    if birthday_75.month <= 6:
        return date(birthday_75.year, 7, 1)
    return date(birthday_75.year + 1, 1, 1)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
