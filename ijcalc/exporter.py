"""Recap exports of a computed Result: a DOCX summary and a per-day CSV."""
from __future__ import annotations

import csv
import io

from docx import Document

from ijcalc.amounts import daily_breakdown
from ijcalc.models import PaymentDetail, Result

DAILY_CSV_COLUMNS = (
    "period_index",
    "day",
    "weekday",
    "year",
    "month",
    "quarter",
    "sub_period",
    "rate_code",
    "class",
    "daily_rate",
    "amount",
)


def _fmt_amount(value: float) -> str:
    return f"{value:,.2f}"


def _fmt_date(value) -> str:
    return value.isoformat() if value is not None else "-"


def _add_detail(doc, detail: PaymentDetail) -> None:
    doc.add_heading(
        f"Period {detail.index + 1}: {detail.period_start.isoformat()} to {detail.period_end.isoformat()}",
        level=2,
    )
    classification = detail.classification.value if detail.classification else "-"
    doc.add_paragraph(f"Classification: {classification}", style="List Bullet")
    doc.add_paragraph(f"Entitlement date: {_fmt_date(detail.entitlement_date)}", style="List Bullet")
    doc.add_paragraph(f"Decompte: {detail.decompte} days", style="List Bullet")
    doc.add_paragraph(
        f"Payment window: {_fmt_date(detail.payment_start)} to {_fmt_date(detail.payment_end)}"
        f" ({detail.payable_days} days)",
        style="List Bullet",
    )
    doc.add_paragraph(f"Outcome: {detail.reason}", style="List Bullet")

    if not detail.segments:
        return
    table = doc.add_table(rows=1, cols=6)
    header = table.rows[0].cells
    for cell, label in zip(header, ("From", "To", "Days", "Code", "Daily rate", "Amount")):
        cell.text = label
    for segment in detail.segments:
        row = table.add_row().cells
        row[0].text = segment.start.isoformat()
        row[1].text = segment.end.isoformat()
        row[2].text = str(segment.days)
        row[3].text = f"{segment.rate_code} ({segment.benefit_class.value})"
        row[4].text = f"{segment.daily_rate:.4f}"
        row[5].text = _fmt_amount(segment.amount)
    doc.add_paragraph(f"Period amount: {_fmt_amount(detail.amount)}")


def build_result_docx(result: Result, title: str = "Daily benefit recap") -> bytes:
    """Return DOCX bytes summarising totals, window end dates and each period's segments."""
    doc = Document()
    doc.add_heading(title, level=1)

    doc.add_paragraph(f"Age at calculation date: {result.age}")
    doc.add_paragraph(f"Affiliation quarters: {result.affiliation_quarters}")
    doc.add_paragraph(f"Total cumulative days: {result.total_cumulative_days}")
    doc.add_paragraph(f"Total payable days: {result.total_days}")
    doc.add_paragraph(f"Total amount: {_fmt_amount(result.total_amount)}", style="Intense Quote")

    if result.window_end_dates:
        doc.add_paragraph("Entitlement window end dates:")
        for position, end in enumerate(result.window_end_dates, start=1):
            doc.add_paragraph(f"Window {position}: {end.isoformat()}", style="List Bullet")

    for detail in result.payment_details:
        _add_detail(doc, detail)

    bio = io.BytesIO()
    doc.save(bio)
    bio.seek(0)
    return bio.read()


def build_daily_csv(result: Result) -> str:
    """One ``;``-delimited row per paid day, derived from the segment breakdown."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";", lineterminator="\n")
    writer.writerow(DAILY_CSV_COLUMNS)
    for detail in result.payment_details:
        entries = detail.daily if detail.daily is not None else daily_breakdown(detail.segments)
        for entry in entries:
            writer.writerow(
                (
                    detail.index,
                    entry.day.isoformat(),
                    entry.weekday,
                    entry.year,
                    entry.month,
                    entry.quarter,
                    entry.sub_period if entry.sub_period is not None else "",
                    entry.rate_code,
                    entry.benefit_class.value,
                    f"{entry.daily_rate:.4f}",
                    f"{entry.amount:.2f}",
                )
            )
    return buffer.getvalue()
