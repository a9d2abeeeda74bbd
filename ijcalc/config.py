"""Configuration flags for the ijcalc engine and its front ends."""

from __future__ import annotations

import os
from datetime import date
from typing import Final


def _get_bool(env_var: str, default: bool) -> bool:
	value = os.getenv(env_var)
	if value is None:
		return default
	return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(env_var: str, default: int) -> int:
	value = os.getenv(env_var)
	if value is None or not value.strip():
		return default
	return int(value)


def _get_float(env_var: str, default: float) -> float:
	value = os.getenv(env_var)
	if value is None or not value.strip():
		return default
	return float(value.replace(",", "."))


def _get_date(env_var: str, default: str) -> date:
	return date.fromisoformat(os.getenv(env_var, default).strip())


RATE_TABLE_PATH: Final[str] = os.getenv(
	"IJCALC_RATE_TABLE",
	os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data", "rates", "taux.csv")),
)

# First day on which the ceiling-based formula may price a day the table does not cover.
REFORM_CUTOFF: Final[date] = _get_date("IJCALC_REFORM_CUTOFF", "2025-01-01")
DEFAULT_PASS_VALUE: Final[float] = _get_float("IJCALC_DEFAULT_PASS", 46368.0)

OPENING_DEFERRAL_DAYS: Final[int] = _get_int("IJCALC_OPENING_DEFERRAL_DAYS", 30)
CONSECUTIVE_DEFERRAL_DAYS: Final[int] = _get_int("IJCALC_CONSECUTIVE_DEFERRAL_DAYS", 31)

SKIP_PUBLIC_HOLIDAYS: Final[bool] = _get_bool("IJCALC_SKIP_HOLIDAYS", True)
LOG_LEVEL: Final[str] = os.getenv("IJCALC_LOG_LEVEL", "INFO").upper()
