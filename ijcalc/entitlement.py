"""Merge, classify and date stoppage periods up to their entitlement date."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from functools import reduce
from typing import Iterable, NamedTuple

from ijcalc.config import CONSECUTIVE_DEFERRAL_DAYS, OPENING_DEFERRAL_DAYS, SKIP_PUBLIC_HOLIDAYS
from ijcalc.dates import age_on, inclusive_days, next_business_day
from ijcalc.models import Classification, StoppagePeriod

LOGGER = logging.getLogger(__name__)

OPENING_THRESHOLD = 90
RELAPSE_THRESHOLD = 15
RELAPSE_WINDOW_DAYS = 365


def merge_prolongations(
	periods: Iterable[StoppagePeriod],
	*,
	skip_holidays: bool = SKIP_PUBLIC_HOLIDAYS,
) -> list[StoppagePeriod]:
	"""Sort periods and fold prolongations into the period they extend.

	A period is a prolongation when it starts on the next business day after
	the previous end, or overlaps it.
	"""

	merged: list[StoppagePeriod] = []
	for period in sorted(periods, key=lambda item: (item.start, item.end)):
		if merged:
			last = merged[-1]
			if period.start <= last.end or period.start == next_business_day(last.end, skip_holidays):
				merged[-1] = last.model_copy(
					update={
						"end": max(last.end, period.end),
						"attestation_date": period.attestation_date or last.attestation_date,
						"medical_controller_valid": last.medical_controller_valid and period.medical_controller_valid,
						"contributions_up_to_date": last.contributions_up_to_date and period.contributions_up_to_date,
						"merged_count": last.merged_count + period.merged_count,
					}
				)
				continue
		merged.append(period)
	return merged


class _Chain(NamedTuple):
	cumulative: int
	opened_index: int | None
	previous: StoppagePeriod | None
	periods: tuple[StoppagePeriod, ...]


def _is_consecutive(previous: StoppagePeriod | None, period: StoppagePeriod, skip_holidays: bool) -> bool:
	if previous is None:
		return False
	return previous.end < period.start <= next_business_day(previous.end, skip_holidays)


def _classify(chain: _Chain, period: StoppagePeriod) -> Classification:
	if chain.previous is None:
		return Classification.FIRST_CLAIM
	if chain.opened_index is None:
		return Classification.CONTINUATION
	if (period.start - chain.previous.end).days < RELAPSE_WINDOW_DAYS:
		return Classification.RELAPSE
	return Classification.NEW_CONDITION


def _defer(candidate: date, period: StoppagePeriod, deferral_days: int) -> date:
	"""Keep the latest of the threshold date and the late-declaration / late-account penalties."""

	candidates = [candidate]
	if period.late_declaration_date is not None and not period.declaration_excused:
		candidates.append(period.late_declaration_date + timedelta(days=deferral_days))
	if period.account_update_date is not None:
		candidates.append(period.account_update_date + timedelta(days=deferral_days))
	return max(candidates)


def _days_before(period: StoppagePeriod, entitlement_date: date, duration: int) -> int:
	return max(min((entitlement_date - period.start).days, duration), 0)


def compute_entitlement_dates(
	periods: Iterable[StoppagePeriod],
	birth_date: date | None = None,
	prior_cumulative_days: int = 0,
	*,
	opening_deferral_days: int = OPENING_DEFERRAL_DAYS,
	consecutive_deferral_days: int = CONSECUTIVE_DEFERRAL_DAYS,
	skip_holidays: bool = SKIP_PUBLIC_HOLIDAYS,
) -> list[StoppagePeriod]:
	"""Return merged periods enriched with duration, classification, entitlement date and decompte.

	Inputs are never modified; each returned period is a fresh copy.
	"""

	merged = merge_prolongations(periods, skip_holidays=skip_holidays)

	def step(chain: _Chain, item: tuple[int, StoppagePeriod]) -> _Chain:
		index, period = item
		duration = inclusive_days(period.start, period.end)
		consecutive = _is_consecutive(chain.previous, period, skip_holidays)
		deferral_days = consecutive_deferral_days if consecutive else opening_deferral_days
		classification = _classify(chain, period)

		cumulative = chain.cumulative
		opened_index = chain.opened_index
		if classification is Classification.NEW_CONDITION:
			cumulative = 0
			opened_index = None

		relapse_of = opened_index if classification is Classification.RELAPSE else None
		entitlement_date: date | None = None

		if not period.medical_controller_valid:
			decompte = 0
		elif period.forced_entitlement_date is not None:
			entitlement_date = period.forced_entitlement_date
			decompte = _days_before(period, entitlement_date, duration)
			cumulative += duration
		elif classification is Classification.RELAPSE:
			if consecutive:
				candidate: date | None = period.start
			elif duration >= RELAPSE_THRESHOLD:
				candidate = period.start + timedelta(days=RELAPSE_THRESHOLD - 1)
			else:
				candidate = None
			if candidate is not None:
				candidate = _defer(candidate, period, deferral_days)
			if candidate is not None and candidate <= period.end:
				entitlement_date = candidate
				decompte = RELAPSE_THRESHOLD
			else:
				decompte = 0
			cumulative += duration
		else:
			cumulative_after = cumulative + duration
			if cumulative_after > OPENING_THRESHOLD:
				offset = max(OPENING_THRESHOLD - cumulative, 0)
				entitlement_date = _defer(period.start + timedelta(days=offset), period, deferral_days)
				decompte = _days_before(period, entitlement_date, duration)
			else:
				decompte = duration
			cumulative = cumulative_after

		if entitlement_date is not None and opened_index is None:
			opened_index = index

		enriched = period.model_copy(
			update={
				"duration": duration,
				"entitlement_date": entitlement_date,
				"decompte": decompte,
				"classification": classification,
				"relapse_of_index": relapse_of,
				"consecutive": consecutive,
			}
		)
		LOGGER.debug(
			"Period %s %s..%s: %s, %s days, cumulative %s, entitlement %s, decompte %s%s",
			index,
			period.start,
			period.end,
			classification.value,
			duration,
			cumulative,
			entitlement_date,
			decompte,
			f", age {age_on(birth_date, entitlement_date)} at entitlement"
			if birth_date is not None and entitlement_date is not None
			else "",
		)
		return _Chain(cumulative, opened_index, enriched, chain.periods + (enriched,))

	initial = _Chain(prior_cumulative_days, None, None, ())
	return list(reduce(step, enumerate(merged), initial).periods)


def first_entitlement_date(periods: Iterable[StoppagePeriod]) -> date | None:
	return next((period.entitlement_date for period in periods if period.entitlement_date is not None), None)
