"""Royal Road adapter.

The fiction page embeds the full chapter list as ``window.chapters = [...]``
and carries the story metadata as JSON-LD.  Chapter bodies live in
``div.chapter-inner.chapter-content``.  Cloudflare challenges are not handled;
the client's cookie jar and browser-like User-Agent are all we offer.
"""

from __future__ import annotations

from urllib.parse import urljoin

from serialcrawl.scraper.base import SiteAdapter, split_index_url
from serialcrawl.scraper.errors import (
    NotIndexUrlError,
    StoryPageParseError,
    TocParseError,
)
from serialcrawl.scraper.models import TocEntry
from serialcrawl.scraper.parsing import (
    BookMetadata,
    make_soup,
    parse_ld_json_book,
    select_attr,
    select_text,
)
from serialcrawl.scraper.toc import parse_assigned_array

ROYALROAD_BASE = "https://www.royalroad.com"
CHAPTERS_MARKER = "window.chapters = "


class RoyalRoadAdapter(SiteAdapter):
    title_suffixes = (" _ Royal Road", " - Royal Road", " | Royal Road")
    chapter_heading_selector = "h1.font-white.break-word"
    chapter_container_selector = "div.chapter-inner.chapter-content"

    def check_index_url(self, url: str) -> None:
        path = split_index_url(url).path
        if "/chapter/" in path:
            raise NotIndexUrlError(
                url,
                "Expected a fiction (index) URL, not a chapter URL. Use the story page, "
                "e.g. https://www.royalroad.com/fiction/21220/mother-of-learning",
            )

    def discover_toc(self, url: str, page: str) -> list[TocEntry]:
        return parse_chapter_list(page)

    def parse_metadata(self, page: str) -> BookMetadata:
        soup = make_soup(page)
        meta = parse_ld_json_book(soup)
        if meta is not None:
            return meta

        title = select_text(soup, "h1.font-white")
        author = select_text(soup, "h4 a.font-white")
        if not title or not author:
            raise StoryPageParseError(
                "missing title or author (selector or structure may have changed)"
            )
        return BookMetadata(
            title=title,
            author=author,
            description=select_text(soup, ".description"),
            cover_url=select_attr(soup, 'meta[property="og:image"]', "content"),
        )


def parse_chapter_list(page: str) -> list[TocEntry]:
    """Parse ``window.chapters`` into TOC entries sorted by 1-based index.

    ``order`` is 0-based on the site; entries without it fall back to their
    array position.  A missing ``isUnlocked`` means the chapter is free.

    Raises:
        TocParseError: If the array is missing or malformed.
    """
    entries: list[TocEntry] = []
    for position, raw in enumerate(parse_assigned_array(page, CHAPTERS_MARKER)):
        if not isinstance(raw, dict) or not raw.get("url"):
            raise TocParseError(f"chapter entry {position} has no url")
        try:
            order = int(raw.get("order", position))
        except (TypeError, ValueError) as exc:
            raise TocParseError(f"chapter entry {position} has a bad order: {exc}") from exc
        entries.append(
            TocEntry(
                index=order + 1,
                url=urljoin(ROYALROAD_BASE, str(raw["url"])),
                title=str(raw.get("title") or "").strip() or f"Chapter {order + 1}",
                unlocked=bool(raw.get("isUnlocked", True)),
            )
        )
    entries.sort(key=lambda e: e.index)
    return entries
