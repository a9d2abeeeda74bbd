"""Immutable daily-rate table and its delimited-file loader."""

from __future__ import annotations

import bisect
import csv
import logging
import os
from datetime import date
from typing import Any, Iterable, Mapping

from ijcalc.config import RATE_TABLE_PATH
from ijcalc.models import RatePeriod

LOGGER = logging.getLogger(__name__)

_TABLE_CACHE: dict[str, "RateTable"] = {}


class RateTable:
    """Sorted, non-overlapping rate periods queried by day or by year.

    Built once and shared read-only between computations.
    """

    __slots__ = ("_periods", "_starts")

    def __init__(self, periods: Iterable[RatePeriod]) -> None:
        ordered = tuple(periods)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start <= previous.start:
                raise ValueError(
                    f"rate periods must be sorted by start date ({current.start} after {previous.start})"
                )
            if current.start <= previous.end:
                raise ValueError(
                    f"rate periods overlap: {previous.start}..{previous.end} and {current.start}..{current.end}"
                )
        self._periods = ordered
        self._starts = tuple(period.start for period in ordered)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "RateTable":
        """Build a table from mappings with ``start``/``end`` (or ``date_start``/``date_end``) and rate columns."""

        periods = []
        for row in rows:
            row = dict(row)
            start = row.pop("start", None) or row.pop("date_start", None)
            end = row.pop("end", None) or row.pop("date_end", None)
            rates = row.pop("rates", None) or row
            periods.append(RatePeriod(start=start, end=end, rates=rates))
        return cls(periods)

    @property
    def periods(self) -> tuple[RatePeriod, ...]:
        return self._periods

    def __len__(self) -> int:
        return len(self._periods)

    def __iter__(self):
        return iter(self._periods)

    def for_date(self, day: date) -> RatePeriod | None:
        """Return the rate period containing ``day``, if any."""
        index = bisect.bisect_right(self._starts, day) - 1
        if index < 0:
            return None
        period = self._periods[index]
        return period if day <= period.end else None

    def for_year(self, year: int) -> RatePeriod | None:
        """Return the period covering 1 January of ``year``, else the first one starting in that year."""
        period = self.for_date(date(year, 1, 1))
        if period is not None:
            return period
        return next((candidate for candidate in self._periods if candidate.start.year == year), None)

    def next_period_after(self, day: date) -> RatePeriod | None:
        """First rate period starting strictly after ``day``."""
        index = bisect.bisect_right(self._starts, day)
        return self._periods[index] if index < len(self._periods) else None

    def coverage(self) -> tuple[date, date] | None:
        if not self._periods:
            return None
        return self._periods[0].start, self._periods[-1].end


def _parse_number(raw: str) -> float:
    return float(raw.strip().replace(",", "."))


def load_rate_table(path: str | None = None, *, use_cache: bool = True) -> RateTable:
    """Load a ``;``-delimited rate file with ``date_start;date_end;taux_a1;...;taux_c3`` columns."""

    resolved = os.path.abspath(path or RATE_TABLE_PATH)
    if use_cache and resolved in _TABLE_CACHE:
        return _TABLE_CACHE[resolved]

    if not os.path.exists(resolved):
        raise FileNotFoundError(f"Rate table missing at {resolved}")

    with open(resolved, "r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle, delimiter=";")
        rows = []
        for line_number, record in enumerate(reader, start=2):
            if not any((value or "").strip() for value in record.values()):
                continue
            try:
                rates = {
                    key.strip(): _parse_number(value)
                    for key, value in record.items()
                    if key and key.strip().lower().startswith("taux_")
                }
            except (AttributeError, ValueError) as exc:
                raise ValueError(f"{resolved}:{line_number}: invalid rate value") from exc
            rows.append(
                {
                    "start": record["date_start"].strip(),
                    "end": record["date_end"].strip(),
                    "rates": rates,
                }
            )

    rows.sort(key=lambda row: row["start"])
    table = RateTable.from_rows(rows)
    LOGGER.info("Loaded %s rate periods from %s", len(table), resolved)
    if use_cache:
        _TABLE_CACHE[resolved] = table
    return table
