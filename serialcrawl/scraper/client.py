"""Polite HTTP client: one request at a time, a minimum delay between
requests, and status-aware retries for transient failures.

Uses a single ``httpx.Client`` for the crawl so the cookie jar (needed for
site session cookies) lives exactly as long as the client.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from serialcrawl.config import settings
from serialcrawl.scraper.errors import InvalidUrlError, NetworkError

logger = logging.getLogger(__name__)


@dataclass
class RequestClock:
    """Tracks the last request time for one client and enforces the delay."""

    delay: float
    last_request: float | None = None

    def wait(self) -> None:
        """Sleep until ``delay`` seconds have passed since the last request."""
        if self.last_request is None:
            return
        elapsed = time.monotonic() - self.last_request
        if elapsed < self.delay:
            time.sleep(self.delay - elapsed)

    def mark(self) -> None:
        self.last_request = time.monotonic()


def _default_backoff(retry_count: int) -> list[float]:
    """Exponential 1, 2, 4, ... (capped at 16) for ``retry_count - 1`` steps."""
    return [float(1 << min(i, 4)) for i in range(max(retry_count - 1, 1))]


def backoff_for(schedule: list[float], attempt: int) -> float:
    """Return the delay after failed *attempt* (0-based); the last value repeats."""
    if not schedule:
        return 1.0
    return schedule[min(attempt, len(schedule) - 1)]


def _is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


class PoliteClient:
    """Blocking HTTP client that enforces a delay between requests.

    Keyword arguments override :data:`serialcrawl.config.settings`.  Use it as a
    context manager, or call :meth:`close` when the crawl is done.
    """

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        delay: float | None = None,
        timeout: float | None = None,
        retry_count: int | None = None,
        retry_backoff: list[float] | None = None,
        rate_limit_backoff: list[float] | None = None,
        max_redirects: int | None = None,
    ) -> None:
        self.retry_count = max(1, retry_count if retry_count is not None else settings.retry_count)
        backoff = retry_backoff if retry_backoff is not None else settings.retry_backoff
        self.retry_backoff = list(backoff) or _default_backoff(self.retry_count)
        self.rate_limit_backoff = list(
            rate_limit_backoff if rate_limit_backoff is not None else settings.rate_limit_backoff
        )
        self._clock = RequestClock(delay=delay if delay is not None else settings.request_delay)
        self._http = httpx.Client(
            headers={"User-Agent": user_agent or settings.user_agent},
            timeout=timeout if timeout is not None else settings.request_timeout,
            follow_redirects=True,
            max_redirects=max_redirects if max_redirects is not None else settings.max_redirects,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> PoliteClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http.cookies

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def get(self, url: str) -> httpx.Response:
        """GET *url* once.  The caller checks the status code.

        Raises:
            InvalidUrlError: If httpx cannot build a request for *url*.
            NetworkError: On any transport failure.
        """
        self._clock.wait()
        try:
            return self._http.get(url)
        except httpx.InvalidURL as exc:
            raise InvalidUrlError(url, str(exc)) from exc
        except httpx.RequestError as exc:
            raise NetworkError(url, exc) from exc
        finally:
            self._clock.mark()

    def post_form(self, url: str, fields: dict[str, str]) -> httpx.Response:
        """POST url-encoded *fields* to *url* once, with the same politeness delay."""
        self._clock.wait()
        try:
            return self._http.post(url, data=fields)
        except httpx.InvalidURL as exc:
            raise InvalidUrlError(url, str(exc)) from exc
        except httpx.RequestError as exc:
            raise NetworkError(url, exc) from exc
        finally:
            self._clock.mark()

    def get_with_retry(self, url: str) -> httpx.Response:
        """GET *url*, retrying transport errors, HTTP 5xx and HTTP 429.

        Other 4xx responses are returned immediately.  When attempts run out on
        a retryable status the final response is returned; on a transport error
        the final error is raised.

        Raises:
            InvalidUrlError: If httpx cannot build a request for *url*.
            NetworkError: On a non-retryable transport failure or once every
                attempt failed at the transport level.
        """
        attempt = 0
        while True:
            is_last = attempt >= self.retry_count - 1
            self._clock.wait()
            try:
                response = self._http.get(url)
            except httpx.InvalidURL as exc:
                self._clock.mark()
                raise InvalidUrlError(url, str(exc)) from exc
            except httpx.UnsupportedProtocol as exc:
                self._clock.mark()
                raise NetworkError(url, exc) from exc
            except httpx.TransportError as exc:
                self._clock.mark()
                if is_last:
                    raise NetworkError(url, exc) from exc
                delay = backoff_for(self.retry_backoff, attempt)
                logger.info(
                    "Attempt %d/%d for %s failed (%s); retrying in %.0fs",
                    attempt + 1, self.retry_count, url, exc, delay,
                )
                time.sleep(delay)
                attempt += 1
                continue
            except httpx.RequestError as exc:
                self._clock.mark()
                raise NetworkError(url, exc) from exc

            self._clock.mark()
            status = response.status_code
            if _is_retryable_status(status) and not is_last:
                schedule = self.rate_limit_backoff if status == 429 else self.retry_backoff
                delay = backoff_for(schedule, attempt)
                logger.info(
                    "HTTP %d from %s (attempt %d/%d); retrying in %.0fs",
                    status, url, attempt + 1, self.retry_count, delay,
                )
                time.sleep(delay)
                attempt += 1
                continue
            return response
