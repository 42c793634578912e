"""Report files on disk: naming, saving and cleanup of old reports."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from openpyxl import Workbook

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')
_WHITESPACE = re.compile(r"\s+")
UTF8_BOM = "\ufeff"


class PersistenceError(OSError):
    """Raised when a report cannot be written or old reports cannot be removed."""


def report_filename(raw_terms: Optional[str], suffix: str = ".xlsx", *, now: Optional[datetime] = None) -> str:
    """Derive a filesystem-safe report name from the keyword string.

    ``"лошади, сено"`` becomes ``"лошади_сено.xlsx"``; an empty or fully
    sanitized string falls back to ``donations_<timestamp>``.
    """

    base = ""
    if raw_terms:
        parts = [part.strip() for part in raw_terms.split(",") if part.strip()]
        base = _UNSAFE_CHARS.sub("_", "_".join(parts))
        base = _WHITESPACE.sub(" ", base).strip().strip(".")
        if not base.strip("_"):
            base = ""
    if not base:
        moment = now or datetime.now(timezone.utc)
        stamp = moment.isoformat().replace(":", "-").replace(".", "-")
        base = f"donations_{stamp}"
    return f"{base}{suffix}"


def save_report(workbook: Workbook, raw_terms: Optional[str], directory: Path) -> Path:
    path = Path(directory) / report_filename(raw_terms, ".xlsx")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)
    except OSError as exc:
        raise PersistenceError(f"Не удалось сохранить отчет: {exc}") from exc
    logger.info("Saved report to %s", path)
    return path


def save_csv(csv_text: str, raw_terms: Optional[str], directory: Path) -> Path:
    # BOM so spreadsheet apps detect UTF-8
    path = Path(directory) / report_filename(raw_terms, ".csv")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(UTF8_BOM + csv_text, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Не удалось сохранить CSV: {exc}") from exc
    logger.info("Saved CSV to %s", path)
    return path


def cleanup_temp_files(
    directory: Path,
    older_than_minutes: float = 60,
    *,
    now: Optional[float] = None,
) -> list[Path]:
    """Delete regular files in *directory* older than *older_than_minutes*."""

    directory = Path(directory)
    if not directory.is_dir():
        return []

    current = time.time() if now is None else now
    removed: list[Path] = []
    try:
        for path in directory.iterdir():
            if not path.is_file():
                continue
            age_minutes = (current - path.stat().st_mtime) / 60
            if age_minutes > older_than_minutes:
                path.unlink(missing_ok=True)
                removed.append(path)
                logger.info("Deleted old temp file: %s", path.name)
    except OSError as exc:
        raise PersistenceError(f"Не удалось очистить временные файлы: {exc}") from exc
    return removed
