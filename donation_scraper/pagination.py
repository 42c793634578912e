"""phpBB pagination helpers: page count discovery and page URLs."""

from __future__ import annotations

import logging
import math
import re
from urllib.parse import parse_qsl, urlencode, urlparse

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# phpBB default posts per topic page
PAGE_SIZE = 20
OFFSET_PARAM = "start"

_START_RE = re.compile(r"[?&;]start=(\d+)")
_POST_COUNT_RE = re.compile(r"(\d+)\s+сообщени", re.IGNORECASE)


def resolve_page_count(html: str) -> int:
    """Return the number of topic pages advertised by the first page.

    Takes the maximum of the highest numbered page link, the highest ``start``
    offset found in pagination links and the total post count caption. A page
    without pagination is a single page.
    """

    if not html:
        return 1

    soup = BeautifulSoup(html, "lxml")
    max_page = 1

    for anchor in soup.select(".pagination ul li a"):
        text = anchor.get_text(strip=True)
        if text.isdigit():
            max_page = max(max_page, int(text))

        href = anchor.get("href") or ""
        match = _START_RE.search(href)
        if match:
            max_page = max(max_page, int(match.group(1)) // PAGE_SIZE + 1)

    caption = " ".join(node.get_text(" ", strip=True) for node in soup.select(".pagination .responsive-hide"))
    match = _POST_COUNT_RE.search(caption)
    if match:
        total_posts = int(match.group(1))
        if total_posts > 0:
            max_page = max(max_page, math.ceil(total_posts / PAGE_SIZE))

    logger.debug("Resolved %d page(s) from pagination", max_page)
    return max_page


def page_offset(page_number: int) -> int:
    if page_number < 1:
        raise ValueError("page_number must be >= 1")
    return (page_number - 1) * PAGE_SIZE


def build_page_url(base_url: str, page_number: int) -> str:
    """Return the URL of *page_number*; page 1 is *base_url* unchanged."""

    offset = page_offset(page_number)
    if page_number == 1:
        return base_url

    parsed = urlparse(base_url)
    params = parse_qsl(parsed.query, keep_blank_values=True)
    replaced = False
    updated: list[tuple[str, str]] = []
    for key, value in params:
        if key == OFFSET_PARAM:
            if replaced:
                continue
            value = str(offset)
            replaced = True
        updated.append((key, value))
    if not replaced:
        updated.append((OFFSET_PARAM, str(offset)))

    return parsed._replace(query=urlencode(updated)).geturl()
