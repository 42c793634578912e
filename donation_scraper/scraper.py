"""Scrape orchestration: pagination, fetching, extraction and the record cache."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date
from typing import Callable, Iterable, Optional, Sequence

from .config import ScraperConfig
from .crawler import ForumClient
from .extraction import extract_donations
from .models import DonationRecord, ScrapeCache, Totals, parse_terms
from .pagination import resolve_page_count
from .report import build_workbook

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., ForumClient]


class DonationScraper:
    """Owns the donation records of one forum thread.

    The cache holds the last complete scrape and is swapped for a new
    :class:`ScrapeCache` only after every page was fetched and parsed. A
    failed cycle leaves the previous cache in place.
    """

    def __init__(
        self,
        config: ScraperConfig,
        *,
        base_url: str | None = None,
        client_factory: ClientFactory = ForumClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._base_url = base_url or config.base_url
        self._client_factory = client_factory
        self._clock = clock
        self._cache = ScrapeCache()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def cache(self) -> ScrapeCache:
        return self._cache

    @property
    def donations(self) -> list[DonationRecord]:
        return list(self._cache.records or ())

    @property
    def cached_report(self):
        """Workbook of the full cached dataset, rendered at scrape time."""
        return self._cache.report

    def invalidate(self) -> None:
        self._cache = ScrapeCache()

    async def get_all_donations(self, *, max_pages: Optional[int] = None) -> list[DonationRecord]:
        """Return every donation of the thread ordered by date and time.

        The cache only answers calls made with the page cap it was built with;
        any other cap triggers a new scrape that replaces it.
        """

        page_cap = max_pages or self._config.max_pages
        if self._cache.serves(page_cap, self._clock(), self._config.cache_ttl):
            logger.info("Loaded %d donations from cache", len(self._cache.records or ()))
            return self.donations

        records = await self._scrape(page_cap=page_cap)
        self._cache = ScrapeCache(
            records=tuple(records),
            timestamp=self._clock(),
            report=build_workbook(records),
            page_cap=page_cap,
        )
        logger.info("Scraping completed, found %d donations", len(records))
        return self.donations

    def filter_by_keywords(
        self,
        terms: Iterable[str] | None,
        records: Sequence[DonationRecord] | None = None,
    ) -> list[DonationRecord]:
        """Keep records whose comment contains any of *terms*, ignoring case."""

        source = list(records) if records is not None else self.donations
        needles = [term.lower() for term in parse_terms(terms)]
        if not needles:
            return source
        return [
            record
            for record in source
            if record.comment and any(needle in record.comment.lower() for needle in needles)
        ]

    @staticmethod
    def compute_totals(records: Iterable[DonationRecord]) -> Totals:
        return Totals.from_records(records)

    def latest_date(self) -> Optional[date]:
        """Most recent donation date across the full cached dataset."""

        records = self._cache.records
        if not records:
            return None
        return max(record.timestamp for record in records).date()

    async def _scrape(self, *, page_cap: Optional[int]) -> list[DonationRecord]:
        async with self._client_factory(self._config, base_url=self._base_url) as client:
            first_html = await client.fetch_page(1)
            total_pages = resolve_page_count(first_html)
            effective_pages = min(total_pages, page_cap) if page_cap else total_pages
            logger.info("Total pages to scrape: %d (of %d)", effective_pages, total_pages)

            pages: list[list[DonationRecord]] = [extract_donations(first_html)]
            remaining = range(2, effective_pages + 1)
            if self._config.parallel_fetch:
                pages.extend(await self._fetch_parallel(client, remaining))
            else:
                for page_number in remaining:
                    html = await client.fetch_page(page_number)
                    pages.append(extract_donations(html))

        records = [record for page in pages for record in page]
        # sort() is stable, so equal timestamps keep page order
        records.sort(key=lambda record: record.timestamp)
        return records

    async def _fetch_parallel(
        self,
        client: ForumClient,
        page_numbers: Iterable[int],
    ) -> list[list[DonationRecord]]:
        semaphore = asyncio.Semaphore(self._config.concurrency)

        async def fetch_one(page_number: int) -> list[DonationRecord]:
            async with semaphore:
                html = await client.fetch_page(page_number)
            return extract_donations(html)

        tasks = [asyncio.create_task(fetch_one(page_number)) for page_number in page_numbers]
        try:
            # gather keeps submission order, so the merge is deterministic
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
