"""Shared data models for the ijcalc engine and its front ends."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, Any, Mapping, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator, model_validator

from ijcalc.config import DEFAULT_PASS_VALUE
from ijcalc.errors import InvalidClaimError


class BenefitClass(str, Enum):
	"""Contribution class, derived from the N-2 income against the ceiling value."""

	A = "A"
	B = "B"
	C = "C"


class Status(str, Enum):
	"""Professional status; CCPL and RSPM are paid a chosen option percentage."""

	STANDARD = "M"
	CCPL = "CCPL"
	RSPM = "RSPM"


class Classification(str, Enum):
	FIRST_CLAIM = "first_claim"
	CONTINUATION = "continuation"
	RELAPSE = "relapse"
	NEW_CONDITION = "new_condition"


class ReasonCode(str, Enum):
	PAID = "paid"
	PAID_NO_ATTESTATION = "paid_no_attestation"
	NO_ENTITLEMENT_DATE = "no_entitlement_date"
	OUTSIDE_PAYMENT_PERIOD = "outside_payment_period"
	INSUFFICIENT_AFFILIATION = "insufficient_affiliation"
	CUMULATIVE_CAP_REACHED = "cumulative_cap_reached"
	AGE_CAP = "age_cap"
	MEDICAL_CONTROLLER_REFUSED = "medical_controller_refused"
	CONTRIBUTIONS_NOT_UP_TO_DATE = "contributions_not_up_to_date"
	AGE_LIMIT_75 = "age_limit_75"
	NO_RATE_DATA = "no_rate_data"


REASON_MESSAGES: dict[ReasonCode, str] = {
	ReasonCode.PAID: "Paid",
	ReasonCode.PAID_NO_ATTESTATION: "Paid (no attestation, calculated up to the period end or as-of date)",
	ReasonCode.NO_ENTITLEMENT_DATE: "No entitlement date",
	ReasonCode.OUTSIDE_PAYMENT_PERIOD: "Outside payment period",
	ReasonCode.INSUFFICIENT_AFFILIATION: "Insufficient affiliation (fewer than 8 quarters)",
	ReasonCode.CUMULATIVE_CAP_REACHED: "Three-year cumulative cap reached",
	ReasonCode.AGE_CAP: "365-day cap after age 70 reached",
	ReasonCode.MEDICAL_CONTROLLER_REFUSED: "Not validated by the medical controller",
	ReasonCode.CONTRIBUTIONS_NOT_UP_TO_DATE: "Contributions account not up to date",
	ReasonCode.AGE_LIMIT_75: "Entitlement date on or after the semester following the 75th birthday",
	ReasonCode.NO_RATE_DATA: "No rate period covers this date",
}

RATE_KEYS: tuple[str, ...] = tuple(f"{cls}{tier}" for cls in "ABC" for tier in (1, 2, 3))


def _reject_timestamp(value: Any) -> Any:
	if isinstance(value, (int, float)) or (isinstance(value, str) and value.strip().isdigit()):
		raise ValueError("expected an ISO date (YYYY-MM-DD), not a number")
	return value


# Numbers would otherwise be read as Unix timestamps.
InputDate = Annotated[date, BeforeValidator(_reject_timestamp)]


def _normalize_upper(value: Any) -> Any:
	if isinstance(value, str):
		return value.strip().upper()
	return value


class StoppagePeriod(BaseModel):
	"""A contiguous span of work incapacity ("arret").

	Caller-supplied fields describe the stoppage. The engine returns enriched
	copies carrying ``duration``, ``entitlement_date``, ``decompte``,
	``classification`` and, for relapses, ``relapse_of_index``.
	"""

	model_config = ConfigDict(frozen=True)

	start: InputDate
	end: InputDate
	relapse_flag: bool | None = None
	late_declaration_date: InputDate | None = None
	declaration_excused: bool = False
	account_update_date: InputDate | None = None
	forced_entitlement_date: InputDate | None = None
	attestation_date: InputDate | None = None
	medical_controller_valid: bool = True
	contributions_up_to_date: bool = True

	duration: int | None = None
	entitlement_date: InputDate | None = None
	decompte: int = 0
	classification: Classification | None = None
	relapse_of_index: int | None = None
	consecutive: bool = False
	merged_count: int = 1

	@model_validator(mode="after")
	def _check_order(self) -> "StoppagePeriod":
		if self.start > self.end:
			raise ValueError(f"period starts after it ends ({self.start} > {self.end})")
		return self


class ClaimContext(BaseModel):
	"""Biographical, affiliation and payment facts shared by every period of a claim."""

	model_config = ConfigDict(frozen=True)

	birth_date: InputDate
	as_of_date: InputDate
	affiliation_date: InputDate | None = None
	affiliation_quarters: int | None = Field(default=None, ge=0)
	prior_cumulative_days: int = Field(default=0, ge=0)
	prior_condition: bool = False
	historical_rate_code: int | None = Field(default=None, ge=1, le=9)
	benefit_class: BenefitClass = BenefitClass.A
	status: Status = Status.STANDARD
	option: float = Field(default=1.0, ge=0)
	pass_value: float = Field(default=DEFAULT_PASS_VALUE, gt=0)
	pass_by_year: dict[int, float] = Field(default_factory=dict)
	incomes_by_year: dict[int, float] = Field(default_factory=dict)
	assessed_by_default: bool = False
	forced_daily_rate: float | None = Field(default=None, ge=0)
	prorata: float = Field(default=1.0, ge=0)
	attestation_date: InputDate | None = None
	last_payment_date: InputDate | None = None
	first_pathology_stop_date: InputDate | None = None
	enforce_option_rules: bool = False

	@field_validator("benefit_class", mode="before")
	@classmethod
	def _upper_class(cls, value: Any) -> Any:
		return _normalize_upper(value)

	@field_validator("status", mode="before")
	@classmethod
	def _status_alias(cls, value: Any) -> Any:
		value = _normalize_upper(value)
		if value in {"STANDARD", "MEDECIN", "MÉDECIN"}:
			return Status.STANDARD.value
		return value

	@field_validator("option", mode="before")
	@classmethod
	def _option_decimal_comma(cls, value: Any) -> Any:
		if isinstance(value, str):
			return value.strip().rstrip("%").replace(",", ".")
		return value

	@model_validator(mode="after")
	def _check_dates(self) -> "ClaimContext":
		if self.birth_date > self.as_of_date:
			raise ValueError("birth_date is after as_of_date")
		return self


class RatePeriod(BaseModel):
	"""Nine daily rates (class A/B/C x tier 1/2/3) valid over [start, end]."""

	model_config = ConfigDict(frozen=True)

	start: date
	end: date
	rates: dict[str, float]

	@field_validator("rates", mode="before")
	@classmethod
	def _normalize_keys(cls, value: Any) -> Any:
		if isinstance(value, dict):
			return {str(key).upper().replace("TAUX_", ""): rate for key, rate in value.items()}
		return value

	@model_validator(mode="after")
	def _check_rates(self) -> "RatePeriod":
		if self.start > self.end:
			raise ValueError(f"rate period starts after it ends ({self.start} > {self.end})")
		missing = [key for key in RATE_KEYS if key not in self.rates]
		if missing:
			raise ValueError(f"rate period {self.start} is missing rates: {', '.join(missing)}")
		return self

	def rate(self, benefit_class: BenefitClass, tier: int) -> float:
		return float(self.rates[f"{benefit_class.value}{tier}"])


class RateSegment(BaseModel):
	"""A priced slice of a payment window with a single rate code and daily rate."""

	year: int
	month: int
	quarter: int
	affiliation_quarters: int
	sub_period: int | None
	start: date
	end: date
	days: int
	daily_rate: float
	rate_code: int
	age: int
	benefit_class: BenefitClass
	amount: float
	reason_code: ReasonCode | None = None


class DailyEntry(BaseModel):
	day: date
	weekday: str
	year: int
	month: int
	quarter: int
	sub_period: int | None
	rate_code: int
	daily_rate: float
	amount: float
	benefit_class: BenefitClass


class PaymentDetail(BaseModel):
	"""Payment outcome for one (merged) stoppage period."""

	index: int
	period_start: date
	period_end: date
	duration: int
	classification: Classification | None = None
	relapse_flag: bool | None = None
	entitlement_date: date | None = None
	decompte: int = 0
	attestation_date: date | None = None
	attestation_date_extended: date | None = None
	payment_start: date | None = None
	payment_end: date | None = None
	payable_days: int = 0
	segments: list[RateSegment] = Field(default_factory=list)
	amount: float = 0.0
	daily: list[DailyEntry] | None = None
	reason_code: ReasonCode
	reason: str


class PayableWindows(BaseModel):
	total_days: int
	details: list[PaymentDetail]


class Result(BaseModel):
	"""Outcome of a full entitlement computation for one claim."""

	total_days: int
	total_amount: float
	payment_details: list[PaymentDetail]
	window_end_dates: list[date] = Field(default_factory=list)
	age: int
	affiliation_quarters: int
	total_cumulative_days: int
	periods: list[StoppagePeriod]


class ComputeRequest(BaseModel):
	"""Payload accepted by the compute endpoint and the command-line script."""

	periods: list[StoppagePeriod] = Field(min_length=1)
	context: ClaimContext
	include_daily: bool = False


class EntitlementRequest(BaseModel):
	periods: list[StoppagePeriod] = Field(min_length=1)
	birth_date: InputDate | None = None
	prior_cumulative_days: int = Field(default=0, ge=0)


class PayableWindowsRequest(BaseModel):
	periods: list[StoppagePeriod] = Field(min_length=1)
	birth_date: InputDate | None = None
	prior_cumulative_days: int = Field(default=0, ge=0)
	attestation_date: InputDate | None = None
	last_payment_date: InputDate | None = None
	as_of_date: InputDate


class ClassRequest(BaseModel):
	income: float | None = None
	pass_value: float = Field(default=DEFAULT_PASS_VALUE, gt=0)
	assessed_by_default: bool = False


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model(model: type[ModelT], payload: Mapping[str, Any]) -> ModelT:
	"""Validate ``payload`` into ``model``, reporting the first problem as an InvalidClaimError."""

	try:
		return model.model_validate(payload)
	except ValidationError as exc:
		first = exc.errors()[0]
		field = ".".join(str(part) for part in first.get("loc", ()))
		raise InvalidClaimError(first.get("msg", str(exc)), field=field or None) from exc


def parse_claim(payload: Mapping[str, Any]) -> ComputeRequest:
	return parse_model(ComputeRequest, payload)
