"""Page-parsing helpers shared by both site adapters."""

from __future__ import annotations

import html
import json
from dataclasses import dataclass
from typing import Any, Iterator

import httpx
from bs4 import BeautifulSoup, Tag

from serialcrawl.scraper.errors import ChapterParseError, HttpStatusError


@dataclass
class BookMetadata:
    """Story-level fields parsed from an index page."""

    title: str
    author: str
    description: str | None = None
    cover_url: str | None = None


@dataclass
class ParsedChapter:
    title: str
    body: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def read_page(response: httpx.Response, url: str, context: str | None = None) -> str:
    """Return the body of a 2xx *response*.

    Raises:
        HttpStatusError: If the status is not 2xx.
    """
    if not response.is_success:
        raise HttpStatusError(response.status_code, url, context)
    return response.text


def make_soup(page: str) -> BeautifulSoup:
    return BeautifulSoup(page, "html.parser")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def strip_title_site_suffix(title: str, suffixes: list[str] | tuple[str, ...]) -> str:
    """Remove one trailing site suffix (e.g. ``" | Scribble Hub"``) from *title*.

    Only the end of the string is considered and at most one suffix is removed,
    so separators that are part of the real title survive.
    """
    stripped = title.strip()
    for suffix in suffixes:
        if stripped.endswith(suffix):
            return stripped[: -len(suffix)].strip()
    return stripped


def strip_html_tags(fragment: str) -> str:
    text = BeautifulSoup(fragment, "html.parser").get_text()
    while "\n\n\n" in text:
        text = text.replace("\n\n\n", "\n\n")
    return text.strip()


def select_text(root: BeautifulSoup | Tag, selector: str) -> str | None:
    """Stripped text of the first match for *selector*, or ``None`` when empty."""
    node = root.select_one(selector)
    if node is None:
        return None
    text = node.get_text().strip()
    return text or None


def select_attr(root: BeautifulSoup | Tag, selector: str, attr: str) -> str | None:
    node = root.select_one(selector)
    if node is None:
        return None
    value = node.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    value = (value or "").strip()
    return value or None


# ---------------------------------------------------------------------------
# Structured metadata (JSON-LD)
# ---------------------------------------------------------------------------

def _ld_objects(payload: Any) -> Iterator[dict[str, Any]]:
    if isinstance(payload, list):
        for item in payload:
            yield from _ld_objects(item)
    elif isinstance(payload, dict):
        yield payload
        if isinstance(payload.get("@graph"), list):
            yield from _ld_objects(payload["@graph"])


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_ld_json_book(soup: BeautifulSoup) -> BookMetadata | None:
    """Return metadata from the first ``@type: Book`` JSON-LD block with a name and author."""
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            payload = json.loads(script.string or script.get_text())
        except ValueError:
            continue
        for obj in _ld_objects(payload):
            if obj.get("@type") != "Book":
                continue
            author = obj.get("author")
            if isinstance(author, list):
                author = author[0] if author else None
            author_name = _non_empty_str(author.get("name")) if isinstance(author, dict) else None
            title = _non_empty_str(obj.get("name"))
            if not title or not author_name:
                continue
            description = _non_empty_str(obj.get("description"))
            if description:
                description = strip_html_tags(description) or None
            image = obj.get("image")
            if isinstance(image, dict):
                image = image.get("url")
            return BookMetadata(
                title=title,
                author=author_name,
                description=description,
                cover_url=_non_empty_str(image),
            )
    return None


# ---------------------------------------------------------------------------
# Chapter pages
# ---------------------------------------------------------------------------

def chapter_title(
    soup: BeautifulSoup,
    heading_selector: str,
    suffixes: tuple[str, ...],
    index: int,
) -> str:
    """Pick a chapter title: site heading, then og:title, then <title>, then "Chapter N"."""
    heading = select_text(soup, heading_selector)
    if heading:
        return heading

    og_title = select_attr(soup, 'meta[property="og:title"]', "content")
    if og_title:
        stripped = strip_title_site_suffix(og_title, suffixes)
        if stripped:
            return stripped

    if soup.title is not None and soup.title.string:
        stripped = strip_title_site_suffix(soup.title.string, suffixes)
        if stripped:
            return stripped

    return f"Chapter {index}"


def paragraph_body(container: Tag) -> str:
    """Concatenate each direct-child ``<p>`` of *container* as escaped ``<p>...</p>``."""
    parts = []
    for p in container.find_all("p", recursive=False):
        parts.append(f"<p>{html.escape(p.get_text().strip(), quote=True)}</p>")
    return "".join(parts)


def parse_chapter_page(
    page: str,
    *,
    index: int,
    url: str,
    heading_selector: str,
    container_selector: str,
    suffixes: tuple[str, ...],
) -> ParsedChapter:
    """Extract the title and paragraph body from a chapter page.

    A present container with no paragraphs yields an empty body.

    Raises:
        ChapterParseError: If the content container is missing.
    """
    soup = make_soup(page)
    title = chapter_title(soup, heading_selector, suffixes, index)
    container = soup.select_one(container_selector)
    if container is None:
        raise ChapterParseError(index, url)
    return ParsedChapter(title=title, body=paragraph_body(container))
