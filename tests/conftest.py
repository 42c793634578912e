"""Shared fixtures for the donation scraper tests.

Network access is replaced with ``httpx.MockTransport`` and every sleep is
recorded instead of awaited, so the suite runs offline and instantly.
"""

from __future__ import annotations

from functools import partial
from typing import Callable, Iterable, Sequence

import httpx
import pytest

from donation_scraper.config import ScraperConfig
from donation_scraper.crawler import ForumClient

BASE_URL = "https://forum.example.by/viewtopic.php?f=15&t=54158"


class RecordingSleep:
    """Async stand-in for ``asyncio.sleep`` that remembers requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(float(delay))


class ForumPages:
    """Serves topic pages keyed by page number, counting every request."""

    def __init__(self, pages: dict[int, str], page_size: int = 20) -> None:
        self.pages = pages
        self.page_size = page_size
        self.requested: list[int] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        start = int(request.url.params.get("start", "0"))
        page_number = start // self.page_size + 1
        self.requested.append(page_number)
        html = self.pages.get(page_number)
        if html is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=html, headers={"content-type": "text/html; charset=utf-8"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def post_html(*posts: Sequence[str]) -> str:
    """Render phpBB style posts, each a list of lines joined with <br>."""

    return "\n".join(
        f'<div class="post"><div class="postbody"><div class="content">{"<br>".join(lines)}</div></div></div>'
        for lines in posts
    )


def pagination_html(page_numbers: Iterable[int], *, total_posts: int | None = None) -> str:
    links = "".join(
        f'<li><a href="./viewtopic.php?f=15&amp;t=54158&amp;start={(n - 1) * 20}">{n}</a></li>'
        for n in page_numbers
    )
    caption = f'<div class="responsive-hide">{total_posts} сообщений</div>' if total_posts else ""
    return f'<div class="pagination">{caption}<ul>{links}</ul></div>'


def topic_page(*posts: Sequence[str], pagination: str = "") -> str:
    return f"<html><body>{pagination}{post_html(*posts)}</body></html>"


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def config() -> ScraperConfig:
    return ScraperConfig(base_url=BASE_URL, request_delay=0.0, retry_backoff=0.5, max_retries=3)


@pytest.fixture
def client_factory(recording_sleep: RecordingSleep) -> Callable[[ForumPages], Callable[..., ForumClient]]:
    """Build a ``DonationScraper`` client factory serving *pages*."""

    def make(pages: ForumPages) -> Callable[..., ForumClient]:
        return partial(ForumClient, transport=pages.transport, sleep=recording_sleep)

    return make
