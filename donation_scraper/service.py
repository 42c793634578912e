"""Report pipeline shared by the CLI and the web app."""

from __future__ import annotations

import logging
from typing import Optional

from .config import ScraperConfig
from .crawler import FetchError
from .models import ReportRequest, ReportResult
from .report import build_report
from .request_queue import RequestQueue
from .scraper import DonationScraper

logger = logging.getLogger(__name__)


class RequestError(ValueError):
    """Raised for report requests that cannot be served as given."""


class ReportService:
    """Serves report requests one at a time against a reused scraper.

    The scraper, and with it the record cache, is kept between requests and
    replaced only when a request targets a different forum URL.
    """

    def __init__(
        self,
        config: ScraperConfig,
        *,
        scraper: Optional[DonationScraper] = None,
        queue: Optional[RequestQueue] = None,
    ) -> None:
        self._config = config
        self._scraper = scraper
        self._queue = queue or RequestQueue()

    @property
    def config(self) -> ScraperConfig:
        return self._config

    @property
    def queue(self) -> RequestQueue:
        return self._queue

    @property
    def scraper(self) -> Optional[DonationScraper]:
        return self._scraper

    async def process(self, request: ReportRequest) -> ReportResult:
        """Queue *request* and return its result. Never raises."""

        async def task() -> ReportResult:
            return await self._run(request)

        try:
            return await self._queue.submit(task)
        except Exception as exc:  # pragma: no cover - _run already maps errors
            logger.exception("Report task failed unexpectedly")
            return ReportResult.failure(str(exc), "internal_error", terms=request.terms)

    async def aclose(self) -> None:
        await self._queue.aclose()

    async def _run(self, request: ReportRequest) -> ReportResult:
        terms = request.terms
        logger.info("Processing report request for %s, terms=%s", request.forum_url, terms)
        try:
            scraper = self._scraper_for(request.forum_url)
            await scraper.get_all_donations(max_pages=request.max_pages)
        except RequestError as exc:
            return ReportResult.failure(str(exc), "request_error", terms=terms)
        except FetchError as exc:
            logger.error("Scrape failed: %s", exc)
            return ReportResult.failure(str(exc), "fetch_error", terms=terms)
        except Exception as exc:
            logger.exception("Unexpected error while scraping %s", request.forum_url)
            return ReportResult.failure(str(exc), "internal_error", terms=terms)

        filtered = scraper.filter_by_keywords(terms)
        latest = scraper.latest_date()
        # Unfiltered requests reuse the workbook rendered with the cache
        prebuilt = scraper.cached_report if not terms else None
        report = build_report(filtered, terms, latest, workbook=prebuilt)
        logger.info("Found %d donations matching %s", report.totals.count, terms)

        return ReportResult(
            success=True,
            summary_message=report.summary,
            terms=terms,
            totals=report.totals,
            records=filtered,
            latest_date=latest,
            workbook=report.workbook,
        )

    def _scraper_for(self, forum_url: str) -> DonationScraper:
        url = (forum_url or "").strip()
        if not url:
            raise RequestError("Не указан адрес форума")
        if self._scraper is None or self._scraper.base_url != url:
            self._scraper = DonationScraper(self._config, base_url=url)
        return self._scraper
