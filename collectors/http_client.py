"""Async page fetcher with a bounded timeout and optional transport retries."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


@dataclass
class FetchResult:
    """Outcome of fetching one page."""

    url: str
    success: bool
    status_code: int = 0
    content: bytes = b""
    content_type: str | None = None
    encoding: str | None = None
    elapsed_ms: float = 0.0
    error: str | None = None


class HttpClient:
    """Fetches listing pages for the html adapters.

    ``max_retries`` is a total attempt budget, so 1 means no retry. Only
    timeouts and network errors consume it; an HTTP error status is a
    final answer.

    Usage:
        async with HttpClient(timeout=10) as client:
            result = await client.fetch(url)
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_retries: int = 1,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.attempts = max(1, max_retries)
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpClient:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None

    async def fetch(self, url: str) -> FetchResult:
        """GET ``url``. Failures are reported in the result, never raised."""
        if self._client is None:
            raise RuntimeError("HttpClient must be used as an async context manager")

        started = time.monotonic()
        try:
            response = await self._get(url)
        except Exception as e:
            return FetchResult(
                url=url,
                success=False,
                elapsed_ms=(time.monotonic() - started) * 1000,
                error=f"{type(e).__name__}: {e}",
            )

        ok = response.is_success
        return FetchResult(
            url=url,
            success=ok,
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type"),
            encoding=response.charset_encoding,
            elapsed_ms=(time.monotonic() - started) * 1000,
            error=None if ok else f"HTTP {response.status_code}",
        )

    async def _get(self, url: str) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._client.get(url)  # type: ignore[union-attr]
