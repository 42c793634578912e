"""Spreadsheet and summary rendering for donation reports."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from .models import CURRENCY, DonationRecord, Totals

SHEET_TITLE = "Donations"
REPORT_COLUMNS: tuple[str, ...] = (
    "Payment Method",
    "Date",
    "Time",
    "Comment",
    "Gross Amount",
    "Tax",
    "Net Amount",
    "Currency",
)
COLUMN_WIDTHS = {
    "A": 15,  # Payment Method
    "B": 12,  # Date
    "C": 10,  # Time
    "D": 30,  # Comment
    "E": 12,  # Gross Amount
    "F": 10,  # Tax
    "G": 12,  # Net Amount
    "H": 8,  # Currency
}
AMOUNT_COLUMNS = ("E", "F", "G")
NO_DATA = "нет данных"


@dataclass(slots=True)
class DonationReport:
    workbook: Workbook
    summary: str
    totals: Totals


def build_report(
    records: Sequence[DonationRecord],
    terms: Iterable[str],
    latest: Optional[date],
    *,
    workbook: Optional[Workbook] = None,
) -> DonationReport:
    """Render *records* into a workbook and a summary message.

    *latest* is the most recent donation date of the whole dataset, which may
    be later than anything in a keyword-filtered *records*. A *workbook*
    already rendered for exactly these records is reused as is.
    """

    totals = Totals.from_records(records)
    return DonationReport(
        workbook=workbook if workbook is not None else build_workbook(records),
        summary=build_summary(terms, totals, latest),
        totals=totals,
    )


def build_workbook(records: Iterable[DonationRecord]) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(list(REPORT_COLUMNS))
    header_font = Font(bold=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = Alignment(vertical="top")

    for record in records:
        ws.append(record.as_row())
        # Display only; the stored value keeps full precision
        for column in AMOUNT_COLUMNS:
            ws[f"{column}{ws.max_row}"].number_format = "0.00"

    for col, width in COLUMN_WIDTHS.items():
        ws.column_dimensions[col].width = width

    ws.freeze_panes = "A2"
    return wb


def build_csv(records: Iterable[DonationRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REPORT_COLUMNS)
    for record in records:
        writer.writerow(
            [
                record.payment_method,
                record.date,
                record.time,
                record.comment or "",
                f"{record.gross_amount:.2f}",
                f"{record.tax:.2f}",
                f"{record.net_amount:.2f}",
                record.currency,
            ]
        )
    return buffer.getvalue()


def build_summary(terms: Iterable[str], totals: Totals, latest: Optional[date]) -> str:
    latest_label = latest.strftime("%d.%m.%Y") if latest else NO_DATA
    return (
        "📊 *Отчет по пожертвованиям*\n"
        "\n"
        f"🔍 *Поиск по:* {', '.join(terms)}\n"
        f"📈 *Найдено:* {totals.count} пожертвований на {latest_label}\n"
        "\n"
        f"💰 *Общая сумма:* {totals.gross_amount:.2f} {CURRENCY}\n"
        f"🏦 *Комиссия:* {totals.tax:.2f} {CURRENCY}\n"
        f"💵 *К получению:* {totals.net_amount:.2f} {CURRENCY}\n"
        "\n"
        "📁 Подробный отчет в XLSX файле"
    )


def worksheet_rows(workbook: Workbook) -> list[tuple[object, ...]]:
    """Data rows of the report sheet, header excluded."""

    ws = workbook[SHEET_TITLE]
    return [tuple(row) for row in ws.iter_rows(min_row=2, values_only=True)]
