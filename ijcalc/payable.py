"""Payable day-windows per period and the global caps applied to them."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from ijcalc.dates import inclusive_days, month_end, semester_after_75
from ijcalc.models import REASON_MESSAGES, PayableWindows, PaymentDetail, ReasonCode, StoppagePeriod

LOGGER = logging.getLogger(__name__)

MIN_AFFILIATION_QUARTERS = 8
MAX_CUMULATIVE_DAYS = 1095
SENIOR_AGE = 70
SENIOR_MAX_DAYS = 365
ATTESTATION_MONTH_END_DAY = 27


def extend_attestation(attestation_date: date) -> date:
	"""Attestations dated on or after the 27th cover the rest of the month."""
	if attestation_date.day >= ATTESTATION_MONTH_END_DAY:
		return month_end(attestation_date)
	return attestation_date


def _detail(index: int, period: StoppagePeriod, reason_code: ReasonCode, **fields) -> PaymentDetail:
	return PaymentDetail(
		index=index,
		period_start=period.start,
		period_end=period.end,
		duration=period.duration if period.duration is not None else inclusive_days(period.start, period.end),
		classification=period.classification,
		relapse_flag=period.relapse_flag,
		entitlement_date=period.entitlement_date,
		decompte=period.decompte,
		reason_code=reason_code,
		reason=REASON_MESSAGES[reason_code],
		**fields,
	)


def payable_window(
	index: int,
	period: StoppagePeriod,
	*,
	as_of_date: date,
	attestation_date: date | None = None,
	last_payment_date: date | None = None,
	birth_date: date | None = None,
) -> PaymentDetail:
	"""Compute the payment window of one entitlement-dated period."""

	if not period.medical_controller_valid:
		return _detail(index, period, ReasonCode.MEDICAL_CONTROLLER_REFUSED)
	entitlement_date = period.entitlement_date
	if entitlement_date is None:
		return _detail(index, period, ReasonCode.NO_ENTITLEMENT_DATE)
	if birth_date is not None and entitlement_date >= semester_after_75(birth_date):
		return _detail(index, period, ReasonCode.AGE_LIMIT_75)
	if not period.contributions_up_to_date:
		return _detail(index, period, ReasonCode.CONTRIBUTIONS_NOT_UP_TO_DATE)

	raw_attestation = period.attestation_date or attestation_date
	if raw_attestation is not None:
		extended = extend_attestation(raw_attestation)
	else:
		extended = min(period.end, as_of_date)

	# A forced entitlement date never opens payment before the stoppage itself.
	payment_start = max(entitlement_date, period.start)
	advanced = False
	if last_payment_date is not None and payment_start < last_payment_date < period.end:
		payment_start = last_payment_date
		advanced = True
	payment_end = min(period.end, extended)

	if payment_start > payment_end:
		days = 0
	elif payment_start == payment_end:
		# A window cut by an attestation or a payment checkpoint is exclusive.
		days = 0 if advanced or extended < period.end else 1
	else:
		days = inclusive_days(payment_start, payment_end)

	if days == 0:
		reason_code = ReasonCode.OUTSIDE_PAYMENT_PERIOD
	elif raw_attestation is not None:
		reason_code = ReasonCode.PAID
	else:
		reason_code = ReasonCode.PAID_NO_ATTESTATION

	return _detail(
		index,
		period,
		reason_code,
		attestation_date=raw_attestation,
		attestation_date_extended=extended,
		payment_start=payment_start if days else None,
		payment_end=payment_end if days else None,
		payable_days=days,
	)


def compute_payable_windows(
	periods: Iterable[StoppagePeriod],
	attestation_date: date | None = None,
	last_payment_date: date | None = None,
	*,
	as_of_date: date,
	birth_date: date | None = None,
) -> PayableWindows:
	"""Compute payment windows for entitlement-dated periods, before global caps."""

	details = [
		payable_window(
			index,
			period,
			as_of_date=as_of_date,
			attestation_date=attestation_date,
			last_payment_date=last_payment_date,
			birth_date=birth_date,
		)
		for index, period in enumerate(periods)
	]
	return PayableWindows(total_days=sum(detail.payable_days for detail in details), details=details)


def _zeroed(detail: PaymentDetail, reason_code: ReasonCode) -> PaymentDetail:
	return detail.model_copy(
		update={
			"payable_days": 0,
			"payment_start": None,
			"payment_end": None,
			"reason_code": reason_code,
			"reason": REASON_MESSAGES[reason_code],
		}
	)


def truncate_details(
	details: Iterable[PaymentDetail],
	allowed_days: int,
	reason_code: ReasonCode,
) -> list[PaymentDetail]:
	"""Keep at most ``allowed_days`` paid days, consuming windows in chronological order."""

	remaining = max(allowed_days, 0)
	truncated: list[PaymentDetail] = []
	for detail in sorted(details, key=lambda item: (item.period_start, item.index)):
		if detail.payable_days == 0:
			truncated.append(detail)
		elif remaining <= 0:
			truncated.append(_zeroed(detail, reason_code))
		elif detail.payable_days > remaining:
			truncated.append(
				detail.model_copy(
					update={
						"payable_days": remaining,
						"payment_end": detail.payment_start + timedelta(days=remaining - 1),
						"reason_code": reason_code,
						"reason": REASON_MESSAGES[reason_code],
					}
				)
			)
			remaining = 0
		else:
			truncated.append(detail)
			remaining -= detail.payable_days
	truncated.sort(key=lambda item: item.index)
	return truncated


def apply_global_caps(
	windows: PayableWindows,
	*,
	affiliation_quarters: int,
	prior_cumulative_days: int,
	age: int,
) -> PayableWindows:
	"""Apply the affiliation gate, the three-year cap and the 365-day cap from age 70."""

	details = list(windows.details)
	if affiliation_quarters < MIN_AFFILIATION_QUARTERS:
		LOGGER.info("Only %s affiliation quarters; nothing is payable", affiliation_quarters)
		details = truncate_details(details, 0, ReasonCode.INSUFFICIENT_AFFILIATION)
	elif prior_cumulative_days >= MAX_CUMULATIVE_DAYS:
		LOGGER.info("Prior cumulative days %s already reach the three-year cap", prior_cumulative_days)
		details = truncate_details(details, 0, ReasonCode.CUMULATIVE_CAP_REACHED)
	else:
		if age >= SENIOR_AGE and windows.total_days + prior_cumulative_days > SENIOR_MAX_DAYS:
			allowed = SENIOR_MAX_DAYS - prior_cumulative_days
			LOGGER.info("Age %s: payable days capped at %s", age, max(allowed, 0))
			details = truncate_details(details, allowed, ReasonCode.AGE_CAP)
		total = sum(detail.payable_days for detail in details)
		if total + prior_cumulative_days > MAX_CUMULATIVE_DAYS:
			details = truncate_details(
				details,
				MAX_CUMULATIVE_DAYS - prior_cumulative_days,
				ReasonCode.CUMULATIVE_CAP_REACHED,
			)
	return PayableWindows(total_days=sum(detail.payable_days for detail in details), details=details)
