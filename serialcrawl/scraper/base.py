"""Shared crawl contract for the site adapters.

:class:`SiteAdapter` runs the whole crawl: fetch the index page, discover the
TOC, enforce the locked-chapter policy, build or resume the :class:`Book`, then
fetch chapters one by one.  Subclasses only supply the site-specific parts
(index URL validation, TOC discovery, metadata, chapter page selectors).

Progress rule: the progress callback fires once per chapter appended to the
Book (real or placeholder), with ``completed`` equal to the number of chapters
the Book holds at that point and ``total`` equal to the unfiltered TOC size.
Skipped and failed chapters do not advance it.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from urllib.parse import SplitResult, urlsplit

from serialcrawl.scraper.client import PoliteClient
from serialcrawl.scraper.errors import (
    ChapterError,
    ChapterParseError,
    CrawlCancelledError,
    EmptyChapterError,
    EmptyTocError,
    HttpStatusError,
    InvalidUrlError,
    LockedChaptersError,
    NetworkError,
    NoChaptersRetrievedError,
)
from serialcrawl.scraper.models import (
    Book,
    Chapter,
    CrawlOptions,
    EmptyChapterPolicy,
    LockedChapterPolicy,
    TocEntry,
)
from serialcrawl.scraper.parsing import (
    BookMetadata,
    ParsedChapter,
    parse_chapter_page,
    read_page,
)

logger = logging.getLogger(__name__)

LOCKED_BODY = "<p>This chapter is locked (premium) and could not be retrieved.</p>"
NO_CONTENT_BODY = "<p>This chapter returned no content.</p>"


def split_index_url(url: str) -> SplitResult:
    """Split an absolute http(s) URL.

    Raises:
        InvalidUrlError: If *url* is not an absolute http(s) URL with a host.
    """
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as exc:
        raise InvalidUrlError(url, str(exc)) from exc
    if parts.scheme not in ("http", "https"):
        raise InvalidUrlError(url, "expected an http:// or https:// URL")
    if not host:
        raise InvalidUrlError(url, "URL has no host")
    return parts


class SiteAdapter(ABC):
    """Base class for one supported site."""

    #: Trailing page-title suffixes the site appends, e.g. " | Scribble Hub".
    title_suffixes: tuple[str, ...] = ()
    #: CSS selector for the chapter heading on a chapter page.
    chapter_heading_selector: str = ""
    #: CSS selector for the element whose direct ``<p>`` children are the body.
    chapter_container_selector: str = ""

    def __init__(self, client: PoliteClient) -> None:
        self.client = client

    # ------------------------------------------------------------------
    # Site-specific hooks
    # ------------------------------------------------------------------
    @abstractmethod
    def check_index_url(self, url: str) -> None:
        """Raise :class:`NotIndexUrlError` if *url* is not a story/series page."""

    @abstractmethod
    def discover_toc(self, url: str, page: str) -> list[TocEntry]:
        """Return every listed chapter, sorted by index."""

    @abstractmethod
    def parse_metadata(self, page: str) -> BookMetadata:
        """Parse title/author/description/cover from the index page."""

    def parse_chapter(self, page: str, entry: TocEntry) -> ParsedChapter:
        return parse_chapter_page(
            page,
            index=entry.index,
            url=entry.url,
            heading_selector=self.chapter_heading_selector,
            container_selector=self.chapter_container_selector,
            suffixes=self.title_suffixes,
        )

    # ------------------------------------------------------------------
    # Crawl
    # ------------------------------------------------------------------
    def crawl(self, url: str, options: CrawlOptions | None = None) -> Book:
        """Crawl the story at *url* into a :class:`Book`.

        Raises:
            CrawlError: Any fatal failure; per-chapter failures are logged and
                skipped unless the empty-chapter policy is ``FAIL``.
        """
        options = options or CrawlOptions()
        self.check_index_url(url)

        index_page = read_page(self.client.get_with_retry(url), url, "story page")

        toc = self.discover_toc(url, index_page)
        if not toc:
            raise EmptyTocError()

        locked = sum(1 for entry in toc if not entry.unlocked)
        if locked and options.locked_policy is LockedChapterPolicy.FAIL:
            raise LockedChaptersError(locked)

        total = len(toc)
        toc = [entry for entry in toc if options.in_range(entry.index)]
        logger.info("%d chapter(s) listed, %d selected", total, len(toc))

        book = self._base_book(url, index_page, options)

        if options.toc_only:
            return self._toc_only(book, toc, options)

        for entry in toc:
            if book.has_index(entry.index):
                continue
            if options.should_cancel is not None and options.should_cancel():
                raise CrawlCancelledError()

            chapter = self._fetch_chapter(entry, options)
            if chapter is None:
                continue

            book.add_chapter(chapter)
            if options.checkpoint is not None:
                options.checkpoint(book)
            if options.progress is not None:
                options.progress(len(book.chapters), total)

        if not book.chapters:
            raise NoChaptersRetrievedError()
        return book

    def _base_book(self, url: str, index_page: str, options: CrawlOptions) -> Book:
        if options.resume_book is not None:
            return copy.deepcopy(options.resume_book)
        meta = self.parse_metadata(index_page)
        return Book(
            title=meta.title,
            author=meta.author,
            description=meta.description,
            cover_url=meta.cover_url,
            source_url=url,
        )

    def _toc_only(self, book: Book, toc: list[TocEntry], options: CrawlOptions) -> Book:
        for entry in toc:
            if book.has_index(entry.index):
                continue
            if not entry.unlocked:
                if options.locked_policy is LockedChapterPolicy.PLACEHOLDER:
                    book.add_chapter(Chapter(f"{entry.title} (locked)", entry.index, ""))
                continue
            book.add_chapter(Chapter(entry.title, entry.index, ""))
        return book

    def _fetch_chapter(self, entry: TocEntry, options: CrawlOptions) -> Chapter | None:
        """Fetch and parse one chapter; ``None`` means it is left out of the Book."""
        if not entry.unlocked:
            if options.locked_policy is LockedChapterPolicy.PLACEHOLDER:
                return Chapter(f"{entry.title} (locked)", entry.index, LOCKED_BODY)
            logger.warning("Chapter %d is locked at %s. Skipped.", entry.index, entry.url)
            return None

        try:
            response = self.client.get_with_retry(entry.url)
            page = read_page(response, entry.url, f"chapter {entry.index}")
        except (InvalidUrlError, NetworkError, HttpStatusError) as exc:
            logger.warning("Chapter %d: %s. Skipped.", entry.index, exc)
            return None

        try:
            parsed = self.parse_chapter(page, entry)
        except ChapterParseError as exc:
            return self._no_content(entry, exc, options)
        if not parsed.body:
            return self._no_content(entry, EmptyChapterError(entry.index, entry.url), options)
        return Chapter(parsed.title, entry.index, parsed.body)

    def _no_content(
        self, entry: TocEntry, error: ChapterError, options: CrawlOptions
    ) -> Chapter | None:
        if options.empty_policy is EmptyChapterPolicy.FAIL:
            raise error
        if options.empty_policy is EmptyChapterPolicy.PLACEHOLDER:
            return Chapter(f"{entry.title} (no content)", entry.index, NO_CONTENT_BODY)
        logger.warning("%s Skipped.", error)
        return None
