"""Exception hierarchy for the crawler.

Every failure raised by :mod:`serialcrawl.scraper` derives from
:class:`CrawlError`.  Subclasses keep their structured payload (url, index,
status, ...) as attributes so callers can branch on the kind of failure while
``str(exc)`` still gives a readable message.

Categories:
    input       :class:`InputError` and subclasses, raised before any request.
    transport   :class:`NetworkError`, after the client gave up retrying.
    status      :class:`HttpStatusError`.
    structure   :class:`StoryPageParseError`, :class:`TocParseError`,
                :class:`EmptyTocError`; fatal for the whole crawl.
    chapter     :class:`ChapterError` and subclasses; only raised when the
                empty-chapter policy is ``FAIL``.
"""

from __future__ import annotations


class CrawlError(Exception):
    """Base class for all crawler failures."""


# ---------------------------------------------------------------------------
# Input / validation
# ---------------------------------------------------------------------------

class InputError(CrawlError):
    """The request itself is unusable; nothing was fetched."""


class InvalidUrlError(InputError):
    def __init__(self, input: str, reason: str) -> None:
        self.input = input
        self.reason = reason
        super().__init__(f"Invalid URL: {input}: {reason}")


class UnrecognizedHostError(InputError):
    def __init__(self, host: str) -> None:
        self.host = host
        super().__init__(
            f"Could not detect site from URL host '{host}'. "
            "Pass site=Site.ROYALROAD or site=Site.SCRIBBLEHUB to override."
        )


class NotIndexUrlError(InputError):
    """A chapter URL (or other non-index page) was given instead of the story page."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class ResumeMismatchError(InputError):
    def __init__(self, resume_url: str, requested_url: str) -> None:
        self.resume_url = resume_url
        self.requested_url = requested_url
        super().__init__(
            f"Resume file is for {resume_url}, not {requested_url}. "
            "Use the same URL as the run that wrote it."
        )


class InvalidOptionsError(InputError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Transport / HTTP status
# ---------------------------------------------------------------------------

class NetworkError(CrawlError):
    def __init__(self, url: str, cause: Exception) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Network error: could not reach {url}: {cause}")


class HttpStatusError(CrawlError):
    def __init__(self, status: int, url: str, context: str | None = None) -> None:
        self.status = status
        self.url = url
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"HTTP {status} when fetching{where}: {url}")


# ---------------------------------------------------------------------------
# Structural parse failures (fatal)
# ---------------------------------------------------------------------------

class StoryPageParseError(CrawlError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Could not parse story page: {message}")


class TocParseError(CrawlError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Could not parse chapter list on story page: {reason}")


class EmptyTocError(CrawlError):
    def __init__(self) -> None:
        super().__init__(
            "Story page has no chapters (possibly deleted or access restricted)."
        )


# ---------------------------------------------------------------------------
# Per-chapter failures
# ---------------------------------------------------------------------------

class ChapterError(CrawlError):
    """A single chapter could not be turned into content."""

    def __init__(self, index: int, url: str, message: str) -> None:
        self.index = index
        self.url = url
        super().__init__(message)


class ChapterParseError(ChapterError):
    def __init__(self, index: int, url: str) -> None:
        super().__init__(
            index, url, f"Could not parse chapter {index}: missing content container at {url}."
        )


class EmptyChapterError(ChapterError):
    def __init__(self, index: int, url: str) -> None:
        super().__init__(index, url, f"Chapter {index} has no content at {url}.")


class LockedChaptersError(CrawlError):
    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Fiction has {count} locked (premium) chapter(s). Use the skip or "
            "placeholder locked-chapter policy to include only free chapters."
        )


# ---------------------------------------------------------------------------
# Crawl outcome
# ---------------------------------------------------------------------------

class NoChaptersRetrievedError(CrawlError):
    def __init__(self) -> None:
        super().__init__("No chapters could be retrieved (all locked, missing, or failed).")


class CrawlCancelledError(CrawlError):
    def __init__(self) -> None:
        super().__init__("Crawl cancelled.")
