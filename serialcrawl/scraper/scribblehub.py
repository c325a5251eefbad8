"""Scribble Hub adapter.

The series page only renders a small window of the chapter list, and its
pagination links are not always marked consistently.  The adapter first asks
the site's admin-ajax endpoint for every chapter in one response and only
walks the paginated TOC when that fails.  Chapter bodies live in
``#chp_raw.chp_raw``.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlsplit

from serialcrawl.scraper.base import SiteAdapter, split_index_url
from serialcrawl.scraper.errors import (
    HttpStatusError,
    NetworkError,
    NotIndexUrlError,
    StoryPageParseError,
    TocParseError,
)
from serialcrawl.scraper.models import TocEntry
from serialcrawl.scraper.parsing import (
    BookMetadata,
    make_soup,
    parse_ld_json_book,
    read_page,
    select_attr,
    select_text,
)
from serialcrawl.scraper.toc import find_next_page_url, merge_toc_entries

logger = logging.getLogger(__name__)

SCRIBBLEHUB_DOMAIN = "scribblehub.com"
SCRIBBLEHUB_BASE = "https://www.scribblehub.com"
SCRIBBLEHUB_AJAX_URL = "https://www.scribblehub.com/wp-admin/admin-ajax.php"
TOC_ACTION = "wi_getreleases_pagination"
ALL_PAGES = "-1"

_PAGINATION = "#pagination-mesh-toc"


def extract_series_id(url: str) -> str | None:
    """Return the numeric id from ``/series/{id}/{slug}/``, or ``None``."""
    path = urlsplit(url).path
    if not path.startswith("/series/"):
        return None
    series_id = path[len("/series/") :].split("/", 1)[0]
    if series_id.isdigit():
        return series_id
    return None


def parse_toc_page(page: str) -> list[TocEntry]:
    """Parse one TOC page (``ol.toc_ol > li.toc_w[order] a.toc_a``).

    Entries without a numeric ``order``, a link or a title are ignored.

    Raises:
        TocParseError: If the page has no ``ol.toc_ol`` list.
    """
    soup = make_soup(page)
    toc_list = soup.select_one("ol.toc_ol")
    if toc_list is None:
        raise TocParseError("ol.toc_ol not found")

    entries: list[TocEntry] = []
    for item in toc_list.select("li.toc_w"):
        try:
            order = int(str(item.get("order", "")).strip())
        except ValueError:
            logger.debug("TOC item without a numeric order ignored: %s", item.get_text().strip())
            continue
        link = item.select_one("a.toc_a")
        if link is None:
            continue
        href = (link.get("href") or "").strip()
        title = link.get_text().strip()
        if not href or not title:
            continue
        entries.append(TocEntry(index=order, url=urljoin(SCRIBBLEHUB_BASE, href), title=title))
    return entries


class ScribbleHubAdapter(SiteAdapter):
    title_suffixes = (" | Scribble Hub", " - Scribble Hub")
    chapter_heading_selector = "div.chapter-title"
    chapter_container_selector = "#chp_raw.chp_raw"

    def check_index_url(self, url: str) -> None:
        parts = split_index_url(url)
        host = parts.hostname or ""
        if host != SCRIBBLEHUB_DOMAIN and not host.endswith("." + SCRIBBLEHUB_DOMAIN):
            raise NotIndexUrlError(url, "Expected a Scribble Hub series URL (host scribblehub.com).")
        if "/read/" in parts.path and "/chapter/" in parts.path:
            raise NotIndexUrlError(
                url,
                "Expected a series (index) URL, not a chapter URL. Use the series page, "
                "e.g. https://www.scribblehub.com/series/862913/hp-the-arcane-thief-litrpg/",
            )
        if "/series/" not in parts.path:
            raise NotIndexUrlError(url, "Expected a series URL containing /series/{id}/{slug}/.")

    # ------------------------------------------------------------------
    # TOC
    # ------------------------------------------------------------------
    def discover_toc(self, url: str, page: str) -> list[TocEntry]:
        series_id = extract_series_id(url)
        if series_id is not None:
            try:
                entries = self.fetch_all_chapters(series_id)
            except (NetworkError, HttpStatusError, TocParseError) as exc:
                logger.warning("Full chapter list request failed (%s); using pagination", exc)
            else:
                if entries:
                    logger.info("Full chapter list: %d chapter(s)", len(entries))
                    return entries
                logger.info("Full chapter list was empty; using pagination")
        return self.paginate_toc(url, page)

    def fetch_all_chapters(self, series_id: str) -> list[TocEntry]:
        """Ask admin-ajax for every chapter of *series_id* in one page."""
        response = self.client.post_form(
            SCRIBBLEHUB_AJAX_URL,
            {"action": TOC_ACTION, "pagenum": ALL_PAGES, "mypostid": series_id},
        )
        page = read_page(response, SCRIBBLEHUB_AJAX_URL, "TOC AJAX")
        return merge_toc_entries(parse_toc_page(page))

    def paginate_toc(self, url: str, first_page: str) -> list[TocEntry]:
        """Walk ``?toc=N`` pages starting from the already fetched *first_page*."""
        entries = parse_toc_page(first_page)
        visited = {url}
        next_url = self._next_page(first_page, url, url)
        while next_url is not None and next_url not in visited:
            visited.add(next_url)
            logger.debug("Fetching TOC page %s", next_url)
            page = read_page(self.client.get_with_retry(next_url), next_url, "TOC page")
            entries.extend(parse_toc_page(page))
            next_url = self._next_page(page, next_url, url)
        return merge_toc_entries(entries)

    def _next_page(self, page: str, current_url: str, series_url: str) -> str | None:
        return find_next_page_url(
            make_soup(page),
            current_url=current_url,
            base_url=series_url,
            container_selector=_PAGINATION,
            next_selector=f"{_PAGINATION} a.page-link.next",
            param="toc",
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def parse_metadata(self, page: str) -> BookMetadata:
        soup = make_soup(page)
        meta = parse_ld_json_book(soup)
        if meta is not None:
            return meta

        title = select_text(soup, "div.fic_title") or select_attr(
            soup, 'meta[property="og:title"]', "content"
        )
        author_block = 'div.sb_content.author div[property="author"] a'
        author = select_text(soup, f"{author_block} span.auth_name_fic") or select_text(
            soup, author_block
        )
        if not title or not author:
            raise StoryPageParseError(
                "missing title or author (selector or structure may have changed)"
            )
        return BookMetadata(
            title=title,
            author=author,
            description=select_text(soup, "div.wi_fic_desc"),
            cover_url=select_attr(soup, 'meta[property="og:image"]', "content"),
        )
