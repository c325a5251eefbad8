"""Site resolution and the top-level crawl entry point."""

from __future__ import annotations

from enum import Enum
from urllib.parse import urlsplit

from serialcrawl.scraper.base import SiteAdapter
from serialcrawl.scraper.client import PoliteClient
from serialcrawl.scraper.errors import InvalidUrlError, ResumeMismatchError, UnrecognizedHostError
from serialcrawl.scraper.models import Book, CrawlOptions
from serialcrawl.scraper.royalroad import RoyalRoadAdapter
from serialcrawl.scraper.scribblehub import ScribbleHubAdapter


class Site(str, Enum):
    ROYALROAD = "royalroad"
    SCRIBBLEHUB = "scribblehub"

    @property
    def domain(self) -> str:
        return _DOMAINS[self]


_DOMAINS = {
    Site.ROYALROAD: "royalroad.com",
    Site.SCRIBBLEHUB: "scribblehub.com",
}

_ADAPTERS: dict[Site, type[SiteAdapter]] = {
    Site.ROYALROAD: RoyalRoadAdapter,
    Site.SCRIBBLEHUB: ScribbleHubAdapter,
}


def resolve_site(url: str, override: Site | None = None) -> Site:
    """Pick the site for *url*; an explicit *override* always wins.

    Raises:
        InvalidUrlError: If *url* cannot be parsed or has no host.
        UnrecognizedHostError: If the host belongs to neither site.
    """
    if override is not None:
        return override
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as exc:
        raise InvalidUrlError(url, str(exc)) from exc
    if not parts.scheme:
        raise InvalidUrlError(url, "relative URL without a scheme")
    if not host:
        raise InvalidUrlError(url, "URL has no host")
    for site in Site:
        if host == site.domain or host.endswith("." + site.domain):
            return site
    raise UnrecognizedHostError(host)


def adapter_for(site: Site, client: PoliteClient) -> SiteAdapter:
    return _ADAPTERS[site](client)


def check_resume_identity(book: Book, url: str) -> None:
    """Refuse a resume snapshot taken from a different story URL.

    Trailing slashes are ignored; a snapshot without a source URL is accepted.
    """
    if book.source_url is None:
        return
    if book.source_url.rstrip("/") != url.rstrip("/"):
        raise ResumeMismatchError(book.source_url, url)


def crawl_book(
    url: str,
    *,
    site: Site | None = None,
    options: CrawlOptions | None = None,
    client: PoliteClient | None = None,
) -> Book:
    """Crawl the story at *url* and return the canonical :class:`Book`.

    Input validation (site resolution and the resume identity check) runs
    before any request.  When *client* is omitted a :class:`PoliteClient` is
    built from settings and closed afterwards.
    """
    options = options or CrawlOptions()
    resolved = resolve_site(url, site)
    if options.resume_book is not None:
        check_resume_identity(options.resume_book, url)

    if client is not None:
        return adapter_for(resolved, client).crawl(url, options)
    with PoliteClient() as own_client:
        return adapter_for(resolved, own_client).crawl(url, options)
