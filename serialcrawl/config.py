"""Centralised settings for the serialcrawl crawler.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


def _float_list(raw: str) -> list[float]:
    """Parse a comma-separated list of seconds, e.g. ``"1,2,4,8"``."""
    return [float(part) for part in raw.split(",") if part.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # HTTP client
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get("SERIALCRAWL_USER_AGENT", DEFAULT_USER_AGENT)
    )
    request_delay: float = field(
        default_factory=lambda: float(os.environ.get("SERIALCRAWL_REQUEST_DELAY", "2.0"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SERIALCRAWL_REQUEST_TIMEOUT", "30.0"))
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("SERIALCRAWL_MAX_REDIRECTS", "10"))
    )

    # ------------------------------------------------------------------
    # Retry / backoff
    # ------------------------------------------------------------------
    retry_count: int = field(
        default_factory=lambda: int(os.environ.get("SERIALCRAWL_RETRY_COUNT", "5"))
    )
    retry_backoff: list[float] = field(
        default_factory=lambda: _float_list(
            os.environ.get("SERIALCRAWL_RETRY_BACKOFF", "1,2,4,8")
        )
    )
    rate_limit_backoff: list[float] = field(
        default_factory=lambda: _float_list(
            os.environ.get("SERIALCRAWL_RATE_LIMIT_BACKOFF", "30,60,90,120")
        )
    )


# Module-level singleton, import this everywhere:
#   from serialcrawl.config import settings
settings = Settings()
