"""Minimal FastAPI wrapper that serves donation reports over HTTP."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Form
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from donation_scraper.config import ScraperConfig
from donation_scraper.models import ReportRequest
from donation_scraper.report import worksheet_rows
from donation_scraper.service import ReportService
from donation_scraper.storage import PersistenceError, cleanup_temp_files, save_report

# Restore request-level logging (including httpx request lines) in the app process.
logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logging.getLogger("httpx").setLevel(logging.INFO)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

CONFIG = ScraperConfig.from_env()
OUTPUT_DIR = CONFIG.output_dir
CLEANUP_INTERVAL_SECONDS = 10 * 60  # 10 minutes
PREVIEW_ROWS = 20

HELP_TEXT = """👋 Я бот для сбора пожертвований с форума!

Использование:
/donations <поисковые_слова>

Пример:
/donations лошади,сено

Я скачаю пожертвования, отфильтрую по комментариям и пришлю отчет в XLSX."""

ERROR_STATUS = {
    "request_error": 400,
    "fetch_error": 502,
    "persistence_error": 500,
    "internal_error": 500,
}

app = FastAPI(title="Forum Donation Reports")
service = ReportService(CONFIG)

_cleanup_task: asyncio.Task | None = None


async def _cleanup_loop() -> None:
    while True:
        await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
        try:
            cleanup_temp_files(OUTPUT_DIR, CONFIG.cleanup_after_minutes)
        except PersistenceError as exc:
            logger.warning("Periodic cleanup failed: %s", exc)


@app.on_event("startup")
async def _on_startup() -> None:
    global _cleanup_task
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    service.queue.start()
    if _cleanup_task is None:
        _cleanup_task = asyncio.create_task(_cleanup_loop())


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    global _cleanup_task
    if _cleanup_task is not None:
        _cleanup_task.cancel()
        _cleanup_task = None
    await service.aclose()


@app.get("/help", response_class=PlainTextResponse)
def help_text() -> str:
    return HELP_TEXT


@app.post("/donations")
async def donations(
    terms: str = Form(""),
    max_pages: Optional[int] = Form(None),
    forum_url: Optional[str] = Form(None),
):
    if max_pages is not None and max_pages < 1:
        return JSONResponse({"error": "validation", "max_pages": "Must be at least 1."}, status_code=400)

    request = ReportRequest(
        forum_url=(forum_url or CONFIG.base_url).strip(),
        raw_terms=terms,
        max_pages=max_pages,
    )
    result = await service.process(request)
    if not result.success:
        code = result.error_code or "internal_error"
        return JSONResponse(
            {"success": False, "error": result.error, "code": code, "summary": result.summary_message},
            status_code=ERROR_STATUS.get(code, 500),
        )

    assert result.workbook is not None
    try:
        path = save_report(result.workbook, terms, OUTPUT_DIR)
    except PersistenceError as exc:
        logger.error("Failed to save report: %s", exc)
        return JSONResponse(
            {"success": False, "error": str(exc), "code": "persistence_error", "summary": result.summary_message},
            status_code=ERROR_STATUS["persistence_error"],
        )

    preview = [list(row) for row in worksheet_rows(result.workbook)[:PREVIEW_ROWS]]
    return {
        "success": True,
        "summary": result.summary_message,
        "terms": result.terms,
        "count": result.totals.count,
        "totals": {
            "gross": round(result.totals.gross_amount, 2),
            "tax": round(result.totals.tax, 2),
            "net": round(result.totals.net_amount, 2),
        },
        "latest_date": result.latest_date.isoformat() if result.latest_date else None,
        "download_url": f"/download/{path.name}",
        "preview": preview,
    }


@app.post("/cleanup")
def cleanup():
    try:
        removed = cleanup_temp_files(OUTPUT_DIR, CONFIG.cleanup_after_minutes)
    except PersistenceError as exc:
        return JSONResponse({"error": str(exc), "code": "persistence_error"}, status_code=500)
    return {"removed": len(removed)}


@app.get("/download/{filename}")
def download(filename: str):
    if Path(filename).name != filename or filename.startswith("."):
        return PlainTextResponse("File missing", status_code=404)

    output_path = OUTPUT_DIR / filename
    if not output_path.is_file():
        return PlainTextResponse("File missing", status_code=404)

    return FileResponse(
        output_path,
        filename=filename,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
