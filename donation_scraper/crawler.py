"""HTTP fetching of forum topic pages with bounded retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_incrementing

from .config import ScraperConfig
from .pagination import build_page_url

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT_HEADER = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"

# Transient transport failures: timeouts, connection resets, DNS hiccups and
# servers hanging up mid-response.
RETRIABLE_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)

SleepFunc = Callable[[float], Awaitable[None]]


class FetchError(RuntimeError):
    """Raised when a topic page cannot be retrieved."""

    def __init__(self, page_number: int, url: str, cause: BaseException | str, *, code: str | None = None) -> None:
        self.page_number = page_number
        self.url = url
        self.cause = cause
        self.code = code or (type(cause).__name__ if isinstance(cause, BaseException) else "fetch_failed")
        detail = str(cause) or self.code
        super().__init__(f"Не удалось загрузить страницу форума (страница {page_number}). {detail}")


class ForumClient:
    """Fetches topic pages of one forum thread over a keep-alive connection."""

    def __init__(
        self,
        config: ScraperConfig,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._config = config
        self._base_url = base_url or config.base_url
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": config.user_agent,
                "Accept": DEFAULT_ACCEPT_HEADER,
                "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.8",
            },
            timeout=httpx.Timeout(config.timeout),
            http2=transport is None,
            follow_redirects=True,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ForumClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_page(self, page_number: int) -> str:
        """Return the markup of *page_number*, retrying transient failures.

        Raises :class:`FetchError` for HTTP error statuses, non-transient
        transport errors, or once ``max_retries`` attempts have failed.
        """

        url = build_page_url(self._base_url, page_number)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.max_retries),
            wait=wait_incrementing(start=self._config.retry_backoff, increment=self._config.retry_backoff),
            retry=retry_if_exception_type(RETRIABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    logger.debug("GET %s (page %d, attempt %d)", url, page_number, attempt.retry_state.attempt_number)
                    response = await self._client.get(url)
                    response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(page_number, url, exc, code=f"http_{exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(page_number, url, exc) from exc

        text = response.text
        logger.info("Fetched page %d (%d bytes)", page_number, len(text))

        if self._config.request_delay > 0:
            await self._sleep(self._config.request_delay)
        return text


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Attempt %d failed (%s); retrying in %.1fs",
        retry_state.attempt_number,
        exc,
        wait,
    )
