"""Tests for the Scribble Hub adapter: AJAX TOC, pagination fallback, metadata."""

from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from serialcrawl.scraper.client import PoliteClient
from serialcrawl.scraper.errors import (
    InvalidUrlError,
    NotIndexUrlError,
    StoryPageParseError,
    TocParseError,
)
from serialcrawl.scraper.models import CrawlOptions
from serialcrawl.scraper.scribblehub import (
    SCRIBBLEHUB_AJAX_URL,
    ScribbleHubAdapter,
    extract_series_id,
    parse_toc_page,
)

SERIES = "https://www.scribblehub.com/series/123/test-series/"

_LD_BOOK = {
    "@context": "https://schema.org",
    "@type": "Book",
    "name": "Test Series",
    "author": {"@type": "Person", "name": "SH Author"},
    "description": "Series synopsis.",
    "image": "https://cdn.scribblehub.com/images/123.jpg",
}


# ---------------------------------------------------------------------------
# Page builders
# ---------------------------------------------------------------------------

def _chapter_url(order: int) -> str:
    return f"https://www.scribblehub.com/read/123-test-series/chapter/{1000 + order}/"


def _toc_items(*orders: int) -> str:
    return "".join(
        f'<li class="toc_w" order="{o}"><a class="toc_a" href="{_chapter_url(o)}">Chapter {o}</a>'
        f'<span class="fic_date_pub">Jan {o}, 2024</span></li>'
        for o in orders
    )


def _toc_list(*orders: int) -> str:
    return f'<ol class="toc_ol">{_toc_items(*orders)}</ol>'


def _pagination(*pages: int, next_page: int | None = None) -> str:
    links = "".join(f'<a class="page-link" href="?toc={p}#content">{p}</a>' for p in pages)
    if next_page is not None:
        links += f'<a href="?toc={next_page}#content">»</a>'
    return f'<div id="pagination-mesh-toc">{links}</div>'


def _series_page(toc_html: str, ld_json: dict | None = _LD_BOOK) -> str:
    ld = (
        f'<script type="application/ld+json">{json.dumps(ld_json)}</script>'
        if ld_json is not None
        else ""
    )
    return f"""<!DOCTYPE html><html><head><title>Test Series | Scribble Hub</title>
<meta property="og:image" content="https://cdn.scribblehub.com/images/og.jpg"/>{ld}</head><body>
<div class="fic_title">Test Series (DOM)</div>
<div class="sb_content author"><div property="author"><a href="/profile/9/">
<span class="auth_name_fic">DOM Author</span></a></div></div>
<div class="wi_fic_desc"><p>DOM synopsis.</p></div>
{toc_html}
</body></html>"""


def _chapter_page(order: int) -> str:
    return f"""<html><head><title>Test Series - Chapter {order} | Scribble Hub</title></head><body>
<div class="chapter-title">Chapter {order}</div>
<div id="chp_raw" class="chp_raw"><p>Body of chapter {order}.</p></div>
</body></html>"""


def _mock_chapters(*orders: int) -> dict[int, respx.Route]:
    return {
        o: respx.get(_chapter_url(o)).mock(return_value=httpx.Response(200, text=_chapter_page(o)))
        for o in orders
    }


@pytest.fixture()
def adapter(client: PoliteClient) -> ScribbleHubAdapter:
    return ScribbleHubAdapter(client)


# ---------------------------------------------------------------------------
# TOC page parsing
# ---------------------------------------------------------------------------

class TestParseTocPage:
    def test_reads_order_title_and_url(self) -> None:
        entries = parse_toc_page(_toc_list(3, 2, 1))
        assert [e.index for e in entries] == [3, 2, 1]
        assert entries[0].url == _chapter_url(3)
        assert entries[0].title == "Chapter 3"
        assert all(e.unlocked for e in entries)

    def test_relative_links_are_resolved(self) -> None:
        page = '<ol class="toc_ol"><li class="toc_w" order="1"><a class="toc_a" href="/read/1-x/chapter/5/">One</a></li></ol>'
        assert parse_toc_page(page)[0].url == "https://www.scribblehub.com/read/1-x/chapter/5/"

    def test_items_without_numeric_order_are_ignored(self) -> None:
        page = (
            '<ol class="toc_ol">'
            '<li class="toc_w"><a class="toc_a" href="/read/1-x/chapter/9/">No order</a></li>'
            '<li class="toc_w" order="n/a"><a class="toc_a" href="/read/1-x/chapter/8/">Bad</a></li>'
            f"{_toc_items(1)}</ol>"
        )
        assert [e.index for e in parse_toc_page(page)] == [1]

    def test_missing_list_raises(self) -> None:
        with pytest.raises(TocParseError):
            parse_toc_page("<html><body>No chapters here</body></html>")

    def test_series_id(self) -> None:
        assert extract_series_id(SERIES) == "123"
        assert extract_series_id("https://www.scribblehub.com/profile/5/x/") is None


# ---------------------------------------------------------------------------
# URL validation
# ---------------------------------------------------------------------------

class TestCheckIndexUrl:
    @pytest.mark.parametrize(
        "url",
        [
            _chapter_url(1),
            "https://www.scribblehub.com/profile/5/someone/",
            "https://www.royalroad.com/series/1/x/",
            "https://notscribblehub.com/series/1/x/",
        ],
    )
    def test_rejected_before_network(self, adapter: ScribbleHubAdapter, url: str) -> None:
        with respx.mock:
            with pytest.raises(NotIndexUrlError):
                adapter.crawl(url)

    @pytest.mark.parametrize("url", ["not-a-url", "ftp://www.scribblehub.com/series/1/x/"])
    def test_malformed_url_rejected_before_network(
        self, adapter: ScribbleHubAdapter, url: str
    ) -> None:
        with respx.mock:
            with pytest.raises(InvalidUrlError):
                adapter.crawl(url)

    def test_series_url_accepted(self, adapter: ScribbleHubAdapter) -> None:
        adapter.check_index_url(SERIES)


# ---------------------------------------------------------------------------
# TOC discovery
# ---------------------------------------------------------------------------

class TestDiscoverToc:
    def test_ajax_returns_full_list(self, adapter: ScribbleHubAdapter) -> None:
        progress: list[tuple[int, int]] = []
        with respx.mock:
            respx.get(SERIES).mock(
                return_value=httpx.Response(200, text=_series_page(_toc_list(3, 2)))
            )
            ajax = respx.post(SCRIBBLEHUB_AJAX_URL).mock(
                return_value=httpx.Response(200, text=_toc_list(3, 2, 1))
            )
            _mock_chapters(1, 2, 3)
            book = adapter.crawl(
                SERIES,
                CrawlOptions(progress=lambda done, total: progress.append((done, total))),
            )

        fields = parse_qs(ajax.calls.last.request.content.decode())
        assert fields == {
            "action": ["wi_getreleases_pagination"],
            "pagenum": ["-1"],
            "mypostid": ["123"],
        }
        assert book.title == "Test Series"
        assert book.author == "SH Author"
        assert book.cover_url == "https://cdn.scribblehub.com/images/123.jpg"
        assert [c.index for c in book.chapters] == [1, 2, 3]
        assert book.chapters[0].title == "Chapter 1"
        assert book.chapters[0].body == "<p>Body of chapter 1.</p>"
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_ajax_failure_falls_back_to_pagination(self, adapter: ScribbleHubAdapter) -> None:
        first = _series_page(_toc_list(4, 3, 2) + _pagination(1, 2, next_page=2))
        second = _series_page(_toc_list(2, 1) + _pagination(1, 2))
        with respx.mock:
            page_two = respx.get(SERIES, params={"toc": "2"}).mock(
                return_value=httpx.Response(200, text=second)
            )
            respx.get(SERIES).mock(return_value=httpx.Response(200, text=first))
            respx.post(SCRIBBLEHUB_AJAX_URL).mock(return_value=httpx.Response(500))
            routes = _mock_chapters(1, 2, 3, 4)
            book = adapter.crawl(SERIES)

        assert page_two.call_count == 1
        assert [c.index for c in book.chapters] == [1, 2, 3, 4]
        assert routes[2].call_count == 1

    def test_ajax_network_error_falls_back(self, adapter: ScribbleHubAdapter) -> None:
        with respx.mock:
            respx.get(SERIES).mock(
                return_value=httpx.Response(200, text=_series_page(_toc_list(1)))
            )
            respx.post(SCRIBBLEHUB_AJAX_URL).mock(side_effect=httpx.ConnectError)
            _mock_chapters(1)
            book = adapter.crawl(SERIES)
        assert [c.index for c in book.chapters] == [1]

    def test_empty_ajax_list_falls_back(self, adapter: ScribbleHubAdapter) -> None:
        with respx.mock:
            respx.get(SERIES).mock(
                return_value=httpx.Response(200, text=_series_page(_toc_list(2, 1)))
            )
            respx.post(SCRIBBLEHUB_AJAX_URL).mock(
                return_value=httpx.Response(200, text='<ol class="toc_ol"></ol>')
            )
            _mock_chapters(1, 2)
            book = adapter.crawl(SERIES)
        assert [c.index for c in book.chapters] == [1, 2]

    def test_paginate_stops_on_revisited_page(self, adapter: ScribbleHubAdapter) -> None:
        first = _series_page(_toc_list(1) + _pagination(1, next_page=2))
        self_link = '<div id="pagination-mesh-toc"><a class="page-link next" href="?toc=2#content">»</a></div>'
        second = _series_page(_toc_list(2) + self_link)
        with respx.mock:
            route = respx.get(SERIES, params={"toc": "2"}).mock(
                return_value=httpx.Response(200, text=second)
            )
            entries = adapter.paginate_toc(SERIES, first)
        assert [e.index for e in entries] == [1, 2]
        assert route.call_count == 1


# ---------------------------------------------------------------------------
# Metadata and chapter pages
# ---------------------------------------------------------------------------

class TestMetadata:
    def test_markup_fallback(self, adapter: ScribbleHubAdapter) -> None:
        meta = adapter.parse_metadata(_series_page(_toc_list(1), ld_json=None))
        assert meta.title == "Test Series (DOM)"
        assert meta.author == "DOM Author"
        assert meta.description == "DOM synopsis."
        assert meta.cover_url == "https://cdn.scribblehub.com/images/og.jpg"

    def test_missing_author_is_fatal(self, adapter: ScribbleHubAdapter) -> None:
        with pytest.raises(StoryPageParseError):
            adapter.parse_metadata('<div class="fic_title">Only a title</div>')


class TestChapterPage:
    def test_title_falls_back_to_page_title(self, adapter: ScribbleHubAdapter) -> None:
        page = (
            "<html><head><title>Test Series - Chapter 1 | Part 2 | Scribble Hub</title></head>"
            '<body><div id="chp_raw" class="chp_raw"><p>Text.</p></div></body></html>'
        )
        entries = parse_toc_page(_toc_list(1))
        parsed = adapter.parse_chapter(page, entries[0])
        assert parsed.title == "Test Series - Chapter 1 | Part 2"
        assert parsed.body == "<p>Text.</p>"
