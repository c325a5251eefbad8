"""Resume-file persistence.

A resume file is the JSON projection of a :class:`Book`.  The crawler hands
every checkpoint a full snapshot, so :class:`CheckpointWriter` overwrites the
file each time through a temp file and an atomic rename.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from serialcrawl.scraper.errors import InvalidOptionsError
from serialcrawl.scraper.models import Book

logger = logging.getLogger(__name__)


def load_resume(path: str | Path) -> Book | None:
    """Load a resume snapshot.  Returns ``None`` if *path* does not exist.

    Raises:
        InvalidOptionsError: If the file cannot be read or is not a valid Book.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise InvalidOptionsError(f"Cannot read resume file {path}: {exc}") from exc
    try:
        return Book.from_json(text)
    except ValueError as exc:
        raise InvalidOptionsError(f"Invalid resume file {path}: {exc}") from exc


def save_book(book: Book, path: str | Path) -> None:
    """Atomically write *book* to *path*."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(book.to_dict(), fh, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CheckpointWriter:
    """Checkpoint callback that keeps *path* in sync with the crawl.

    Write failures are logged and the crawl continues.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.writes = 0

    def __call__(self, book: Book) -> None:
        try:
            save_book(book, self.path)
        except OSError as exc:
            logger.warning("Could not write resume file %s: %s", self.path, exc)
            return
        self.writes += 1
