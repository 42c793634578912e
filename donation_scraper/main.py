"""CLI entry point for the forum donation scraper."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config import ScraperConfig
from .models import ReportRequest, ReportResult
from .report import build_csv
from .service import ReportService
from .storage import PersistenceError, cleanup_temp_files, save_csv, save_report


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the CLI and return the process exit code."""

    args = _parse_args(argv)
    _configure_logging(args.log_level)

    overrides: dict[str, object] = {}
    if args.output_dir:
        overrides["output_dir"] = Path(args.output_dir)
    if args.parallel:
        overrides["parallel_fetch"] = True
    config = ScraperConfig.from_env(**overrides)
    forum_url = args.url or config.base_url

    if args.cleanup:
        try:
            removed = cleanup_temp_files(config.output_dir, config.cleanup_after_minutes)
        except PersistenceError as exc:
            logging.error("%s", exc)
            return 1
        logging.info("Removed %d old report file(s) from %s", len(removed), config.output_dir)

    request = ReportRequest(forum_url=forum_url, raw_terms=args.terms, max_pages=args.max_pages)
    result = asyncio.run(_run(config, request))

    print(result.summary_message)
    if not result.success:
        return 1

    try:
        _write_outputs(result, args.terms, config.output_dir, with_csv=args.csv)
    except PersistenceError as exc:
        logging.error("%s", exc)
        return 1
    return 0


async def _run(config: ScraperConfig, request: ReportRequest) -> ReportResult:
    service = ReportService(config)
    try:
        return await service.process(request)
    finally:
        await service.aclose()


def _write_outputs(result: ReportResult, raw_terms: str, directory: Path, *, with_csv: bool) -> None:
    assert result.workbook is not None
    xlsx_path = save_report(result.workbook, raw_terms, directory)
    print(f"XLSX: {xlsx_path}")
    if with_csv:
        csv_path = save_csv(build_csv(result.records), raw_terms, directory)
        print(f"CSV: {csv_path}")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "terms",
        nargs="?",
        default="",
        help="Comma-separated comment keywords, e.g. 'лошади,сено' (empty = all donations)",
    )
    parser.add_argument("--url", default=None, help="Forum topic URL (defaults to FORUM_URL)")
    parser.add_argument(
        "--max-pages",
        type=_positive_int,
        default=None,
        help="Optional limit on the number of topic pages to scrape",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for generated reports (defaults to REPORT_DIR)",
    )
    parser.add_argument("--csv", action="store_true", help="Also write a CSV copy of the report")
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Fetch topic pages concurrently instead of one by one",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove old report files from the output directory before running",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. INFO, DEBUG)",
    )
    return parser.parse_args(argv)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return number


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(message)s",
    )


if __name__ == "__main__":
    sys.exit(main())
