from __future__ import annotations

import time

import pytest

from donation_scraper.models import DonationRecord
from donation_scraper.parsing import clean_comment, parse_donation_line


def test_parses_erip_line_with_comment() -> None:
    record = parse_donation_line("ЕРИП 13.01.2025 13:46:08 К.Ю. (лошади сено) 30.00 0.06 29.94 BYN")

    assert record == DonationRecord(
        payment_method="ЕРИП",
        date="13.01.2025",
        time="13:46:08",
        comment="К.Ю. (лошади сено)",
        gross_amount=30.00,
        tax=0.06,
        net_amount=29.94,
        currency="BYN",
    )
    assert record.date_time == "13.01.2025 13:46:08"


def test_collapses_whitespace_before_matching() -> None:
    record = parse_donation_line("  WebPay\t02.03.2025   09:05:00  на корм   коту   15   0.3   14.7    BYN ")

    assert record is not None
    assert record.payment_method == "WebPay"
    assert record.comment == "на корм коту"
    assert (record.gross_amount, record.tax, record.net_amount) == (15.0, 0.3, 14.7)


@pytest.mark.parametrize(
    ("line", "amounts"),
    [
        ("ЕРИП 01.01.2025 10:00:00 сено 100 0.2 99.8 BYN", (100.0, 0.2, 99.8)),
        ("ЕРИП 01.01.2025 10:00:00 сено 12.345 1.5 10.845 BYN", (12.345, 1.5, 10.845)),
        ("ЕРИП 01.01.2025 10:00:00 сено 7. 0 7 BYN", (7.0, 0.0, 7.0)),
    ],
)
def test_amounts_are_matched_substrings_as_floats(line: str, amounts: tuple[float, float, float]) -> None:
    record = parse_donation_line(line)

    assert record is not None
    assert (record.gross_amount, record.tax, record.net_amount) == amounts


def test_mismatched_totals_are_not_rejected() -> None:
    record = parse_donation_line("ЕРИП 01.01.2025 10:00:00 сено 30.00 1.00 5.00 BYN")

    assert record is not None
    assert record.net_amount == 5.0


def test_trailing_numbers_are_stripped_from_comment() -> None:
    record = parse_donation_line("ЕРИП 13.01.2025 13:46:08 Корм 12 5 30.00 0.06 29.94 BYN")

    assert record is not None
    assert record.comment == "Корм"


def test_numeric_only_comment_becomes_none() -> None:
    record = parse_donation_line("WebPay 01.02.2025 10:00:00 7 10.00 0.20 9.80 BYN")

    assert record is not None
    assert record.comment is None


@pytest.mark.parametrize(
    "line",
    [
        "ЕРИП 13.01.2025 13:46:08 К.Ю. 30.00 0.06 29.94 USD",
        "Карта 13.01.2025 13:46:08 К.Ю. 30.00 0.06 29.94 BYN",
        "ЕРИП 13.01.25 13:46:08 К.Ю. 30.00 0.06 29.94 BYN",
        "ЕРИП 13.01.2025 К.Ю. 30.00 0.06 29.94 BYN",
        "ЕРИП 13.01.2025 13:46:08 К.Ю. 30.00 0.06 BYN",
        "Спасибо всем за помощь!",
        "",
    ],
)
def test_rejects_lines_without_donation_shape(line: str) -> None:
    assert parse_donation_line(line) is None


def test_rejects_impossible_calendar_date() -> None:
    assert parse_donation_line("ЕРИП 31.02.2025 13:46:08 сено 30.00 0.06 29.94 BYN") is None


def test_clean_comment_keeps_text_with_inner_numbers() -> None:
    assert clean_comment("Барсик 2 года") == "Барсик 2 года"
    assert clean_comment("   ") is None


def test_long_number_run_in_comment_parses_quickly() -> None:
    numbers = " ".join(["1234567"] * 20)
    started = time.perf_counter()

    assert clean_comment(numbers + " x") == numbers + " x"
    record = parse_donation_line(f"ЕРИП 13.01.2025 13:46:08 {numbers} x 30.00 0.06 29.94 BYN")

    assert time.perf_counter() - started < 1.0
    assert record is not None
    assert record.comment == numbers + " x"
    assert record.net_amount == 29.94
