"""Data models shared by both site adapters and every consumer of a crawl."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from serialcrawl.scraper.errors import InvalidOptionsError


@dataclass
class Chapter:
    """One chapter in TOC order.

    ``body`` is plain text or minimal markup (``<p>...</p>`` only).
    """

    title: str
    index: int
    body: str

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "index": self.index, "body": self.body}


@dataclass
class Book:
    """Canonical document for one story/series.

    ``chapters`` stays sorted by ascending ``index``; indices are unique but may
    have gaps where chapters were skipped.
    """

    title: str
    author: str
    description: str | None = None
    cover_url: str | None = None
    chapters: list[Chapter] = field(default_factory=list)
    source_url: str | None = None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def has_index(self, index: int) -> bool:
        return any(c.index == index for c in self.chapters)

    def add_chapter(self, chapter: Chapter) -> None:
        """Append *chapter* and restore index order."""
        self.chapters.append(chapter)
        self.chapters.sort(key=lambda c: c.index)

    # ------------------------------------------------------------------
    # JSON projection (the resume-file contract)
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "coverUrl": self.cover_url,
            "chapters": [c.to_dict() for c in self.chapters],
        }
        if self.source_url is not None:
            data["sourceUrl"] = self.source_url
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Book:
        """Build a Book from its JSON projection.

        Raises:
            ValueError: If a required field is missing or has the wrong type.
        """
        if not isinstance(raw, dict):
            raise ValueError("book must be a JSON object")
        for key in ("title", "author", "chapters"):
            if key not in raw:
                raise ValueError(f"missing required field {key!r}")
        if not isinstance(raw["chapters"], list):
            raise ValueError("'chapters' must be an array")

        chapters: list[Chapter] = []
        for i, ch in enumerate(raw["chapters"]):
            try:
                chapters.append(
                    Chapter(title=str(ch["title"]), index=int(ch["index"]), body=str(ch["body"]))
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"chapter {i} is malformed: {exc}") from exc
        chapters.sort(key=lambda c: c.index)

        return cls(
            title=str(raw["title"]),
            author=str(raw["author"]),
            description=raw.get("description"),
            cover_url=raw.get("coverUrl"),
            chapters=chapters,
            # Older resume files used the snake_case key.
            source_url=raw.get("sourceUrl", raw.get("source_url")),
        )

    @classmethod
    def from_json(cls, data: str) -> Book:
        return cls.from_dict(json.loads(data))


@dataclass
class TocEntry:
    """One chapter location discovered from a story's table of contents."""

    index: int
    url: str
    title: str
    unlocked: bool = True


# ---------------------------------------------------------------------------
# Policies and options
# ---------------------------------------------------------------------------

class LockedChapterPolicy(str, Enum):
    """What to do with chapters gated behind paid access."""

    SKIP = "skip"
    PLACEHOLDER = "placeholder"
    FAIL = "fail"


class EmptyChapterPolicy(str, Enum):
    """What to do with chapters whose content container is missing or empty."""

    SKIP = "skip"
    PLACEHOLDER = "placeholder"
    FAIL = "fail"


ProgressCallback = Callable[[int, int], None]
CheckpointCallback = Callable[[Book], None]


@dataclass
class CrawlOptions:
    """Per-crawl knobs.  Every field is optional.

    Attributes:
        chapter_range: Inclusive ``(first, last)`` 1-based index range.
        resume_book: Book from a prior partial run; its indices are not re-fetched.
        locked_policy: Handling of locked (premium) chapters.
        empty_policy: Handling of chapters with no parseable content.
        toc_only: Discover chapters but never fetch bodies.
        progress: Called as ``progress(completed, total)`` after each appended chapter.
        checkpoint: Called with the full Book after each appended chapter.
        should_cancel: Polled before each chapter; returning ``True`` aborts.
    """

    chapter_range: tuple[int, int] | None = None
    resume_book: Book | None = None
    locked_policy: LockedChapterPolicy = LockedChapterPolicy.SKIP
    empty_policy: EmptyChapterPolicy = EmptyChapterPolicy.SKIP
    toc_only: bool = False
    progress: ProgressCallback | None = None
    checkpoint: CheckpointCallback | None = None
    should_cancel: Callable[[], bool] | None = None

    def __post_init__(self) -> None:
        if self.chapter_range is not None:
            first, last = self.chapter_range
            if first < 1:
                raise InvalidOptionsError(f"chapter range must start at 1 or later, got {first}")
            if first > last:
                raise InvalidOptionsError(
                    f"chapter range start ({first}) is after its end ({last})"
                )

    def in_range(self, index: int) -> bool:
        if self.chapter_range is None:
            return True
        first, last = self.chapter_range
        return first <= index <= last
