"""Donation extraction from phpBB topic pages."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from .models import CURRENCY, PAYMENT_METHODS, DonationRecord
from .parsing import parse_donation_line

logger = logging.getLogger(__name__)

# Narrowest first; a node nested inside a match of another selector is skipped.
POST_SELECTORS: tuple[str, ...] = (
    ".postbody .content",
    ".post .content",
    ".postbody",
    ".content",
)


def extract_donations(html: str) -> list[DonationRecord]:
    """Return every donation record found in the posts of *html*."""

    donations: list[DonationRecord] = []
    for line in extract_candidate_lines(html):
        record = parse_donation_line(line)
        if record is None:
            logger.debug("Rejected candidate line: %r", line)
            continue
        donations.append(record)
    return donations


def extract_candidate_lines(html: str) -> list[str]:
    """Return unique post lines that look like donations, in document order."""

    if not html:
        return []

    soup = BeautifulSoup(html, "lxml")
    found: list[str] = []
    seen: set[str] = set()

    for node in _select_post_nodes(soup):
        for line in _node_lines(node):
            if not _looks_like_donation(line) or line in seen:
                continue
            seen.add(line)
            found.append(line)

    return found


def _select_post_nodes(soup: BeautifulSoup) -> list[Tag]:
    """Collect post bodies, preferring the narrowest selector that matches.

    A node that contains, or sits inside, an already selected node is the same
    post seen through a broader selector and is skipped.
    """

    nodes: list[Tag] = []
    for selector in POST_SELECTORS:
        for node in soup.select(selector):
            if any(_overlaps(node, chosen) for chosen in nodes):
                continue
            nodes.append(node)
    return nodes


def _overlaps(node: Tag, other: Tag) -> bool:
    if node is other:
        return True
    return any(parent is other for parent in node.parents) or any(
        parent is node for parent in other.parents
    )


def _node_lines(node: Tag) -> list[str]:
    # Work on a copy so the shared soup keeps its <br> tags for other selectors
    fragment = BeautifulSoup(str(node), "lxml")
    for br in fragment.find_all("br"):
        br.replace_with("\n")
    text = fragment.get_text()
    return [line.strip() for line in text.split("\n") if line.strip()]


def _looks_like_donation(line: str) -> bool:
    return CURRENCY in line and any(method in line for method in PAYMENT_METHODS)
