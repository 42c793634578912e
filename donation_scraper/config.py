"""Runtime configuration for the forum donation scraper."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

DEFAULT_FORUM_URL = "https://forum.zooshans.by/viewtopic.php?f=15&t=54158"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
DEFAULT_OUTPUT_DIR = Path(tempfile.gettempdir()) / "donation_reports"


@dataclass(frozen=True, slots=True)
class ScraperConfig:
    """Every recognised option with its default.

    ``timeout``, ``retry_backoff``, ``request_delay`` and ``cache_ttl`` are in
    seconds. ``max_pages`` of ``None`` scrapes every page the forum reports.
    """

    base_url: str = DEFAULT_FORUM_URL
    timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 0.5
    request_delay: float = 0.5
    cache_ttl: float = 30 * 60
    max_pages: Optional[int] = None
    parallel_fetch: bool = False
    concurrency: int = 4
    user_agent: str = DEFAULT_USER_AGENT
    output_dir: Path = field(default=DEFAULT_OUTPUT_DIR)
    cleanup_after_minutes: float = 60

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise ValueError("base_url must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff must be >= 0")
        if self.request_delay < 0:
            raise ValueError("request_delay must be >= 0")
        if self.cache_ttl < 0:
            raise ValueError("cache_ttl must be >= 0")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be >= 1 when set")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.cleanup_after_minutes < 0:
            raise ValueError("cleanup_after_minutes must be >= 0")

    @classmethod
    def from_env(cls, **overrides: object) -> "ScraperConfig":
        """Build a config from environment variables, then apply *overrides*."""

        defaults = cls()
        max_pages = _env_int("MAX_PAGES", 0)
        config = cls(
            base_url=os.getenv("FORUM_URL", defaults.base_url).strip() or defaults.base_url,
            timeout=_env_float("FETCH_TIMEOUT", defaults.timeout),
            max_retries=_env_int("FETCH_MAX_RETRIES", defaults.max_retries),
            retry_backoff=_env_float("FETCH_RETRY_BACKOFF", defaults.retry_backoff),
            request_delay=_env_float("REQUEST_DELAY", defaults.request_delay),
            cache_ttl=_env_float("CACHE_TTL", defaults.cache_ttl),
            max_pages=max_pages if max_pages > 0 else None,
            parallel_fetch=_env_bool("PARALLEL_FETCH", defaults.parallel_fetch),
            concurrency=_env_int("FETCH_CONCURRENCY", defaults.concurrency),
            user_agent=os.getenv("SCRAPER_USER_AGENT", defaults.user_agent),
            output_dir=Path(os.getenv("REPORT_DIR") or defaults.output_dir),
            cleanup_after_minutes=_env_float("CLEANUP_AFTER_MINUTES", defaults.cleanup_after_minutes),
        )
        if overrides:
            config = replace(config, **overrides)
        return config


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
