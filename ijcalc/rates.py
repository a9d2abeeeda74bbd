"""Rate-code selection and daily-rate resolution against the rate table."""

from __future__ import annotations

import logging
from datetime import date

from ijcalc.config import REFORM_CUTOFF
from ijcalc.models import BenefitClass, ClaimContext, ReasonCode, Status
from ijcalc.rate_table import RateTable

LOGGER = logging.getLogger(__name__)

CLASS_MULTIPLIERS: dict[BenefitClass, int] = {
	BenefitClass.A: 1,
	BenefitClass.B: 2,
	BenefitClass.C: 3,
}

# Position inside a code family (1/2/3, 4/5/6, 7/8/9): full rate, minus 1/3, minus 2/3.
_REDUCTIONS = (1.0, 2 / 3, 1 / 3)
_FAMILY_FACTORS = {1: 1.0, 4: 0.5, 7: 0.75}

_ALLOWED_OPTIONS: dict[Status, tuple[float, ...]] = {
	Status.STANDARD: (1.0,),
	Status.CCPL: (0.25, 0.5),
	Status.RSPM: (0.25, 1.0),
}

# Sub-period numbers returned by sub_period_for_day: first year, 366-730 on a long
# episode, and the reduced tail.
FIRST_YEAR = 1
INTERMEDIATE = 2
REDUCED = 3


def determine_class(
	income: float | None,
	pass_value: float,
	*,
	assessed_by_default: bool = False,
) -> BenefitClass:
	"""Derive the contribution class from the N-2 income.

	Below one ceiling value is class A, up to and including three is class B,
	above is class C. Claimants assessed by default, or without a known income,
	are class A.
	"""

	if assessed_by_default or income is None:
		return BenefitClass.A
	if income < pass_value:
		return BenefitClass.A
	if income <= 3 * pass_value:
		return BenefitClass.B
	return BenefitClass.C


def pass_for_year(context: ClaimContext, year: int) -> float:
	return float(context.pass_by_year.get(year, context.pass_value))


def class_for_year(context: ClaimContext, year: int) -> BenefitClass:
	"""Class applied to days of ``year``: from the N-2 income when known, else the claim's class."""

	if context.assessed_by_default:
		return BenefitClass.A
	income = context.incomes_by_year.get(year - 2)
	if income is None:
		return context.benefit_class
	return determine_class(income, pass_for_year(context, year))


def quarter_reduction(quarters: int, prior_condition: bool) -> int:
	"""Offset inside a code family: 0 full rate, 1 reduced by a third, 2 reduced by two thirds."""

	if not prior_condition or quarters >= 24:
		return 0
	if 8 <= quarters <= 15:
		return 1
	if 16 <= quarters <= 23:
		return 2
	return 0


def sub_period_for_day(episode_day: int, long_episode: bool) -> int | None:
	"""Sub-period of the 62-69 bracket for the n-th paid day of an episode (1-based)."""

	if episode_day <= 365:
		return FIRST_YEAR
	if episode_day <= 730:
		return INTERMEDIATE if long_episode else REDUCED
	if episode_day <= 1095:
		return REDUCED
	return None


def select_rate_code(
	age: int,
	quarters: int,
	prior_condition: bool,
	historical_code: int | None = None,
	sub_period: int | None = FIRST_YEAR,
) -> int:
	"""Pick one of the nine rate codes.

	``sub_period`` only matters between 62 and 69; a historical code always wins.
	"""

	if historical_code is not None:
		return historical_code
	offset = quarter_reduction(quarters, prior_condition)
	if age < 62:
		return 1 + offset
	if age >= 70:
		return 4 + offset
	if sub_period == INTERMEDIATE:
		return 7 + offset
	if sub_period == REDUCED:
		return 4 + offset
	return 1 + offset


def rate_tier(code: int, age: int, long_episode: bool) -> int:
	"""Map a rate code to the table column tier (1, 2 or 3)."""

	if 1 <= code <= 3:
		return 1
	if 7 <= code <= 9:
		return 3
	if age >= 70 or long_episode:
		return 2
	return 3


def normalize_option(option: float) -> float:
	"""Options above 1 are percentages."""
	return option / 100 if option > 1 else option


def apply_option(rate: float, status: Status, option: float) -> float:
	if status not in (Status.CCPL, Status.RSPM):
		return rate
	fraction = normalize_option(option)
	if 0 < fraction <= 1:
		return rate * fraction
	return rate


def validated_option(status: Status, option: float) -> float:
	"""Return the option allowed for ``status``, correcting anything else to the default."""

	fraction = normalize_option(option)
	allowed = _ALLOWED_OPTIONS[status]
	if any(abs(fraction - value) < 1e-9 for value in allowed):
		return fraction
	corrected = 1.0 if status is Status.STANDARD else 0.25
	LOGGER.warning(
		"Option %s is not allowed for status %s; using %s",
		option,
		status.value,
		corrected,
	)
	return corrected


def reform_rate(benefit_class: BenefitClass, code: int, pass_value: float) -> float:
	"""Ceiling-based daily rate: class multiplier x PASS / 730, reduced per rate code."""

	base = CLASS_MULTIPLIERS[benefit_class] * pass_value / 730
	family = 1 + 3 * ((code - 1) // 3)
	return base * _FAMILY_FACTORS[family] * _REDUCTIONS[(code - 1) % 3]


def daily_rate(
	rate_table: RateTable,
	day: date,
	code: int,
	benefit_class: BenefitClass,
	status: Status,
	option: float,
	*,
	age: int,
	long_episode: bool,
	pass_value: float,
	reform_cutoff: date = REFORM_CUTOFF,
) -> tuple[float, ReasonCode | None]:
	"""Resolve the daily rate for ``day``.

	The rate period covering the day is authoritative. Uncovered days on or
	after the reform cutoff use the ceiling formula; other uncovered days are
	priced at zero and flagged ``no_rate_data``.
	"""

	period = rate_table.for_date(day)
	if period is not None:
		base = period.rate(benefit_class, rate_tier(code, age, long_episode))
	elif day >= reform_cutoff:
		base = reform_rate(benefit_class, code, pass_value)
	else:
		LOGGER.warning("No rate period covers %s (code %s, class %s)", day, code, benefit_class.value)
		return 0.0, ReasonCode.NO_RATE_DATA
	return apply_option(base, status, option), None
