from __future__ import annotations

import os
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest
from openpyxl import load_workbook

from donation_scraper.models import DonationRecord
from donation_scraper.report import build_workbook
from donation_scraper.storage import (
    PersistenceError,
    cleanup_temp_files,
    report_filename,
    save_csv,
    save_report,
)

NOW = datetime(2025, 1, 14, 9, 30, 15, 123000, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("лошади, сено", "лошади_сено.xlsx"),
        ("  корм  коту , ", "корм коту.xlsx"),
        ('a/b:c*d?"e"', "a_b_c_d_e_.xlsx"),
    ],
)
def test_report_filename_sanitizes_terms(raw: str, expected: str) -> None:
    assert report_filename(raw, now=NOW) == expected


@pytest.mark.parametrize("raw", ["", None, " , ,", "???", "../.."])
def test_report_filename_falls_back_to_timestamp(raw) -> None:
    assert report_filename(raw, now=NOW) == "donations_2025-01-14T09-30-15-123000+00-00.xlsx"


def test_save_report_writes_loadable_workbook(tmp_path: Path) -> None:
    wb = build_workbook([DonationRecord("ЕРИП", "13.01.2025", "13:46:08", "сено", 30.0, 0.06, 29.94)])

    path = save_report(wb, "сено", tmp_path / "reports")

    assert path == tmp_path / "reports" / "сено.xlsx"
    loaded = load_workbook(path)
    assert loaded["Donations"]["D2"].value == "сено"


def test_save_report_failure_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")

    with pytest.raises(PersistenceError):
        save_report(build_workbook([]), "сено", blocker)


def test_save_csv_prefixes_bom(tmp_path: Path) -> None:
    path = save_csv("a,b\n", "коту", tmp_path)

    assert path.name == "коту.csv"
    assert path.read_bytes().startswith(b"\xef\xbb\xbf")


def test_cleanup_removes_only_old_files(tmp_path: Path) -> None:
    now = time.time()
    old = tmp_path / "old.xlsx"
    fresh = tmp_path / "fresh.xlsx"
    old.write_text("old")
    fresh.write_text("fresh")
    os.utime(old, (now - 61 * 60, now - 61 * 60))
    os.utime(fresh, (now - 5 * 60, now - 5 * 60))
    (tmp_path / "subdir").mkdir()

    removed = cleanup_temp_files(tmp_path, 60, now=now)

    assert removed == [old]
    assert not old.exists()
    assert fresh.exists()
    assert (tmp_path / "subdir").is_dir()


def test_cleanup_of_missing_directory_is_a_no_op(tmp_path: Path) -> None:
    assert cleanup_temp_files(tmp_path / "missing") == []
