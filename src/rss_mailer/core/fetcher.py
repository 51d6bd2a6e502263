"""
HTTP fetcher with error handling and retry logic.

Fetches raw feed bytes asynchronously. Failures are reported by raising
``FetchError``; the caller records them, they never abort a check cycle.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional
from urllib.parse import unquote, urlparse

import httpx

from rss_mailer.config import get_config
from rss_mailer.logger import get_logger

logger = get_logger(__name__)

Fetch = Callable[[str], Awaitable[bytes]]


class FetchError(Exception):
    """Transport level failure.

    ``code`` is the HTTP status when the server answered, None otherwise.
    """

    def __init__(self, code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"<FetchError(code={self.code}, message={self.message!r})>"


@dataclass
class FetchStats:
    """Statistics for fetch operations."""

    total_fetches: int = 0
    successful_fetches: int = 0
    failed_fetches: int = 0
    total_bytes: int = 0
    errors_by_code: dict = field(default_factory=dict)

    def add_success(self, size: int) -> None:
        self.total_fetches += 1
        self.successful_fetches += 1
        self.total_bytes += size

    def add_failure(self, error: FetchError) -> None:
        self.total_fetches += 1
        self.failed_fetches += 1
        key = str(error.code) if error.code is not None else "network"
        self.errors_by_code[key] = self.errors_by_code.get(key, 0) + 1

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_fetches == 0:
            return 0.0
        return self.successful_fetches / self.total_fetches


class HttpFetcher:
    """Asynchronous HTTP fetcher with retry logic and a concurrency cap."""

    def __init__(
        self,
        timeout_seconds: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize fetcher.

        Args:
            timeout_seconds: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            retry_delay_seconds: Base delay between attempts
            max_concurrency: Maximum number of concurrent requests
            user_agent: User-Agent header for HTTP requests
            transport: Optional httpx transport (used by tests)
        """
        config = get_config().fetcher

        self.timeout_seconds = timeout_seconds or config.timeout_seconds
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.retry_delay_seconds = (
            config.retry_delay_seconds if retry_delay_seconds is None else retry_delay_seconds
        )
        self.max_concurrency = max_concurrency or config.max_concurrency
        self.user_agent = user_agent or config.user_agent
        self.follow_redirects = config.follow_redirects
        self.max_redirects = config.max_redirects
        self.max_content_length = config.max_content_length
        self.transport = transport

        self.stats = FetchStats()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    async def __call__(self, url: str) -> bytes:
        return await self.fetch(url)

    async def fetch(self, url: str) -> bytes:
        """Fetch a URL.

        Args:
            url: URL to fetch, ``http(s)://`` or ``file://``

        Returns:
            Response body

        Raises:
            FetchError: When every attempt failed
        """
        try:
            if urlparse(url).scheme == "file":
                content = self._read_file(url)
            else:
                async with self._get_semaphore():
                    content = await self._fetch_with_retries(url)
        except FetchError as e:
            self.stats.add_failure(e)
            raise

        self.stats.add_success(len(content))
        return content

    def _get_semaphore(self) -> asyncio.Semaphore:
        # A semaphore is bound to the event loop it is first used in
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    def _read_file(self, url: str) -> bytes:
        path = Path(unquote(urlparse(url).path))
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise FetchError(404, f"File not found: {path}") from e
        except OSError as e:
            raise FetchError(None, f"Cannot read {path}: {e}") from e

    async def _fetch_with_retries(self, url: str) -> bytes:
        last_error: Optional[FetchError] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self._fetch_http(url)
                if len(response.content) > self.max_content_length:
                    raise FetchError(None, f"Response too large ({len(response.content)} bytes)")
                return response.content

            except httpx.TimeoutException as e:
                last_error = FetchError(None, f"Timeout: {e}")
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1}/{self.max_retries + 1})")

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = FetchError(status, f"HTTP {status}")

                # Don't retry client errors (4xx)
                if 400 <= status < 500:
                    logger.warning(f"Client error fetching {url}: HTTP {status}")
                    break

                logger.warning(f"HTTP {status} fetching {url} (attempt {attempt + 1})")

            except httpx.RequestError as e:
                last_error = FetchError(None, f"Request error: {e}")
                logger.warning(f"Network error fetching {url} (attempt {attempt + 1}): {e}")

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay_seconds * (attempt + 1))

        raise last_error or FetchError(None, "Unknown error")

    async def _fetch_http(self, url: str) -> httpx.Response:
        """Fetch URL with HTTP client.

        Raises:
            httpx.TimeoutException: On timeout
            httpx.HTTPStatusError: On HTTP error
            httpx.RequestError: On network error
        """
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
            headers={"User-Agent": self.user_agent},
            transport=self.transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response


def create_fetcher(**kwargs) -> HttpFetcher:
    """Create a configured HttpFetcher instance."""
    return HttpFetcher(**kwargs)
