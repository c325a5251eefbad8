"""Table-of-contents discovery primitives.

Two TOC shapes are supported:

- A JSON array assigned to a script global (``window.chapters = [...]``).
  :func:`extract_json_array` finds the matching ``]`` while ignoring brackets
  inside quoted strings, so titles such as ``"Part [1]"`` do not cut the array
  short.
- Paginated HTML lists.  :func:`find_next_page_url` follows pagination and
  :func:`merge_toc_entries` folds the pages into one ordered, de-duplicated list.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup

from serialcrawl.scraper.errors import TocParseError
from serialcrawl.scraper.models import TocEntry


# ---------------------------------------------------------------------------
# Inline script arrays
# ---------------------------------------------------------------------------

def extract_json_array(text: str) -> str | None:
    """Return the slice of *text* from its first ``[`` to the matching ``]``.

    Brackets inside double-quoted strings are ignored (backslash escapes are
    honoured).  Returns ``None`` when there is no ``[`` or it is never closed.
    """
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


def parse_assigned_array(page: str, marker: str) -> list[Any]:
    """Decode the JSON array assigned right after *marker* in *page*.

    Raises:
        TocParseError: If the marker, the array, or valid JSON is missing.
    """
    pos = page.find(marker)
    if pos == -1:
        raise TocParseError(f"{marker.strip()} not found")
    array_text = extract_json_array(page[pos + len(marker) :])
    if array_text is None:
        raise TocParseError(f"could not extract the {marker.strip()} array")
    try:
        data = json.loads(array_text)
    except ValueError as exc:
        raise TocParseError(str(exc)) from exc
    if not isinstance(data, list):
        raise TocParseError(f"{marker.strip()} is not an array")
    return data


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def page_number(url: str, param: str) -> int:
    """Return the integer value of query parameter *param* in *url*, or 1."""
    values = parse_qs(urlsplit(url).query).get(param)
    if values:
        try:
            return int(values[0].strip())
        except ValueError:
            pass
    return 1


def find_next_page_url(
    soup: BeautifulSoup,
    *,
    current_url: str,
    base_url: str,
    container_selector: str,
    next_selector: str,
    param: str,
) -> str | None:
    """Locate the link to the page after *current_url*.

    The link carrying the "next" class is preferred.  The class is not always
    present, so as a fallback every link inside *container_selector* whose
    *param* equals the current page + 1 is accepted.
    """
    next_link = soup.select_one(next_selector)
    if next_link is not None:
        href = (next_link.get("href") or "").strip()
        if href and href != "#":
            return urljoin(base_url, href)

    wanted = page_number(current_url, param) + 1
    container = soup.select_one(container_selector)
    if container is None:
        return None
    for link in container.find_all("a", href=True):
        href = link["href"].strip()
        if not href or href == "#" or f"{param}=" not in href:
            continue
        if page_number(href, param) == wanted:
            return urljoin(base_url, href)
    return None


def merge_toc_entries(entries: list[TocEntry]) -> list[TocEntry]:
    """Sort by declared order, then drop repeated URLs keeping the first one."""
    seen: set[str] = set()
    merged: list[TocEntry] = []
    for entry in sorted(entries, key=lambda e: e.index):
        if entry.url in seen:
            continue
        seen.add(entry.url)
        merged.append(entry)
    return merged
