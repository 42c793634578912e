"""Data models used across the forum donation scraper."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from openpyxl import Workbook

PAYMENT_METHODS: tuple[str, ...] = ("ЕРИП", "WebPay")
CURRENCY = "BYN"
DATE_TIME_FORMAT = "%d.%m.%Y %H:%M:%S"


@dataclass(frozen=True, slots=True)
class DonationRecord:
    """A single donation parsed from a forum post line."""

    payment_method: str
    date: str
    time: str
    comment: Optional[str]
    gross_amount: float
    tax: float
    net_amount: float
    currency: str = CURRENCY

    @property
    def date_time(self) -> str:
        return f"{self.date} {self.time}"

    @property
    def timestamp(self) -> datetime:
        """Calendar value of ``date_time`` (source order is day.month.year)."""
        return datetime.strptime(self.date_time, DATE_TIME_FORMAT)

    def as_row(self) -> list[object]:
        return [
            self.payment_method,
            self.date,
            self.time,
            self.comment or "",
            self.gross_amount,
            self.tax,
            self.net_amount,
            self.currency,
        ]


@dataclass(frozen=True, slots=True)
class Totals:
    count: int = 0
    gross_amount: float = 0.0
    tax: float = 0.0
    net_amount: float = 0.0

    @classmethod
    def from_records(cls, records: Iterable[DonationRecord]) -> "Totals":
        count = 0
        gross = tax = net = 0.0
        for record in records:
            count += 1
            gross += record.gross_amount
            tax += record.tax
            net += record.net_amount
        return cls(count=count, gross_amount=gross, tax=tax, net_amount=net)


@dataclass(slots=True)
class ScrapeCache:
    """Last complete scrape. Replaced as a whole, never updated in place."""

    records: Optional[tuple[DonationRecord, ...]] = None
    timestamp: float = 0.0
    report: Optional["Workbook"] = None
    # Page cap the scrape ran with, None when uncapped
    page_cap: Optional[int] = None

    @property
    def is_populated(self) -> bool:
        return self.records is not None

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.records is not None and (now - self.timestamp) < ttl

    def serves(self, page_cap: Optional[int], now: float, ttl: float) -> bool:
        """Fresh and built with the same page cap as the caller asks for."""
        return self.page_cap == page_cap and self.is_fresh(now, ttl)


@dataclass(frozen=True, slots=True)
class ReportRequest:
    """One inbound report request: forum URL plus comma-separated keywords."""

    forum_url: str
    raw_terms: str = ""
    max_pages: Optional[int] = None

    @property
    def terms(self) -> list[str]:
        return parse_terms(self.raw_terms)


@dataclass(slots=True)
class ReportResult:
    """Outcome of one report request, successful or not."""

    success: bool
    summary_message: str
    terms: list[str] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)
    records: list[DonationRecord] = field(default_factory=list)
    latest_date: Optional[date] = None
    workbook: Optional["Workbook"] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def failure(cls, message: str, code: str, *, terms: Iterable[str] = ()) -> "ReportResult":
        return cls(
            success=False,
            summary_message=f"❌ Ошибка: {message}",
            terms=list(terms),
            error=message,
            error_code=code,
        )


def parse_terms(value: str | Iterable[str] | None) -> list[str]:
    """Split a comma-separated keyword string, dropping blank entries."""

    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [item.strip() for item in items if item and item.strip()]
