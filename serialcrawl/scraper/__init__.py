"""Scraper package: polite client, site adapters and the canonical Book model."""

from serialcrawl.scraper.client import PoliteClient
from serialcrawl.scraper.errors import CrawlError
from serialcrawl.scraper.models import (
    Book,
    Chapter,
    CrawlOptions,
    EmptyChapterPolicy,
    LockedChapterPolicy,
    TocEntry,
)
from serialcrawl.scraper.sites import Site, crawl_book, resolve_site

__all__ = [
    "Book",
    "Chapter",
    "CrawlError",
    "CrawlOptions",
    "EmptyChapterPolicy",
    "LockedChapterPolicy",
    "PoliteClient",
    "Site",
    "TocEntry",
    "crawl_book",
    "resolve_site",
]
