from __future__ import annotations

from datetime import date
from io import BytesIO

import pytest

from ijcalc.amounts import compute
from ijcalc.exporter import DAILY_CSV_COLUMNS, build_daily_csv, build_result_docx
from ijcalc.models import ClaimContext, StoppagePeriod
from ijcalc.rate_table import RateTable


@pytest.fixture(scope="module")
def result(rate_table: RateTable):
    context = ClaimContext(
        birth_date=date(1958, 6, 3),
        as_of_date=date(2024, 12, 31),
        affiliation_date=date(2000, 1, 1),
        benefit_class="C",
    )
    periods = [
        StoppagePeriod(start=date(2024, 1, 1), end=date(2024, 4, 9)),
        StoppagePeriod(start=date(2024, 5, 6), end=date(2024, 5, 15)),
    ]
    return compute(periods, context, rate_table)


def test_docx_recap_lists_each_period(result) -> None:
    docx_module = pytest.importorskip("docx")
    payload = build_result_docx(result)
    assert len(payload) > 1024

    doc = docx_module.Document(BytesIO(payload))
    texts = [p.text for p in doc.paragraphs if p.text.strip()]
    assert texts[0] == "Daily benefit recap"
    assert any(text.startswith("Period 1: 2024-01-01") for text in texts)
    assert any(text.startswith("Period 2: 2024-05-06") for text in texts)
    assert any("No entitlement date" in text for text in texts)
    assert len(doc.tables) == 1


def test_daily_csv_has_one_row_per_paid_day(result) -> None:
    lines = build_daily_csv(result).strip().splitlines()
    assert lines[0].split(";") == list(DAILY_CSV_COLUMNS)
    rows = [line.split(";") for line in lines[1:]]
    assert len(rows) == result.total_days == 10
    assert rows[0][1] == "2024-03-31"
    assert rows[0][9] == "150.1200"
    assert {row[0] for row in rows} == {"0"}
