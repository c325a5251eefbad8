"""Shared fixtures.

- ``time.sleep`` is patched for every test so politeness delays and retry
  backoff cost nothing; tests that care about the delays inspect the mock.
- ``client`` is a :class:`PoliteClient` with a short retry schedule.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import MagicMock, patch

import pytest

from serialcrawl.scraper.client import PoliteClient


@pytest.fixture(autouse=True)
def sleep_mock() -> Generator[MagicMock, None, None]:
    with patch("time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture()
def client() -> Generator[PoliteClient, None, None]:
    polite = PoliteClient(
        delay=0,
        retry_count=3,
        retry_backoff=[1, 2],
        rate_limit_backoff=[30, 60],
    )
    yield polite
    polite.close()
