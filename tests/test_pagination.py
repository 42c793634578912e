from __future__ import annotations

import pytest

from donation_scraper.pagination import build_page_url, page_offset, resolve_page_count

from conftest import BASE_URL, pagination_html, topic_page


def test_single_page_without_pagination() -> None:
    assert resolve_page_count(topic_page(["привет"])) == 1
    assert resolve_page_count("") == 1


def test_highest_numbered_link_wins() -> None:
    html = topic_page(["x"], pagination=pagination_html([1, 2, 3, 7]))

    assert resolve_page_count(html) == 7


def test_start_offset_in_href_implies_page() -> None:
    html = (
        '<div class="pagination"><ul>'
        '<li><a href="./viewtopic.php?t=1&amp;start=20">2</a></li>'
        '<li><a href="./viewtopic.php?t=1&amp;start=180">След.</a></li>'
        "</ul></div>"
    )

    assert resolve_page_count(html) == 10


def test_post_count_caption_rounds_up() -> None:
    html = topic_page(["x"], pagination=pagination_html([1, 2], total_posts=241))

    assert resolve_page_count(html) == 13


def test_maximum_of_all_signals() -> None:
    html = (
        '<div class="pagination"><div class="responsive-hide">41 сообщение</div><ul>'
        '<li><a href="?t=1&amp;start=40">3</a></li>'
        '<li><a href="?t=1&amp;start=80">Последняя</a></li>'
        "</ul></div>"
    )

    assert resolve_page_count(html) == 5


def test_links_outside_pagination_are_ignored() -> None:
    html = '<div class="post"><ul><li><a href="?start=2000">99</a></li></ul></div>'

    assert resolve_page_count(html) == 1


def test_first_page_url_is_unchanged() -> None:
    assert build_page_url(BASE_URL, 1) == BASE_URL


def test_start_parameter_is_appended() -> None:
    assert build_page_url(BASE_URL, 3) == BASE_URL + "&start=40"
    assert build_page_url("https://forum.example.by/viewtopic.php", 2) == (
        "https://forum.example.by/viewtopic.php?start=20"
    )


def test_existing_start_parameter_is_replaced() -> None:
    url = "https://forum.example.by/viewtopic.php?f=15&start=100&t=5"

    assert build_page_url(url, 2) == "https://forum.example.by/viewtopic.php?f=15&start=20&t=5"


def test_page_offset_rejects_zero() -> None:
    assert page_offset(1) == 0
    with pytest.raises(ValueError):
        page_offset(0)
