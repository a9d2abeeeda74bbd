from __future__ import annotations

import pytest

from ijcalc.rate_table import RateTable

RATE_ROWS = [
	{
		"start": "2022-01-01",
		"end": "2022-12-31",
		"rates": {"A1": 69.98, "A2": 34.99, "A3": 52.49, "B1": 104.97, "B2": 52.49, "B3": 78.73, "C1": 139.96, "C2": 69.98, "C3": 104.97},
	},
	{
		"start": "2023-01-01",
		"end": "2023-12-31",
		"rates": {"A1": 72.39, "A2": 36.20, "A3": 54.29, "B1": 108.59, "B2": 54.30, "B3": 81.44, "C1": 144.78, "C2": 72.39, "C3": 108.59},
	},
	{
		"start": "2024-01-01",
		"end": "2024-12-31",
		"rates": {"A1": 75.06, "A2": 37.53, "A3": 56.30, "B1": 112.59, "B2": 56.30, "B3": 84.44, "C1": 150.12, "C2": 75.06, "C3": 112.59},
	},
]


@pytest.fixture(scope="module")
def rate_table() -> RateTable:
	return RateTable.from_rows(RATE_ROWS)
