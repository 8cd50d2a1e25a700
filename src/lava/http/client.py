"""aiohttp-backed client used by the fetch strategy and the video title lookup."""

from __future__ import annotations

import asyncio
import logging
import random
from types import TracebackType
from typing import Optional

import aiohttp
from charset_normalizer import from_bytes as detect_encoding

from .protocols import HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36 (lava)"
)

ACCEPT_HEADER = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"

CHUNK_SIZE = 8192


def declared_charset(content_type: str) -> Optional[str]:
    """The ``charset`` parameter of a Content-Type header, if any."""
    for param in content_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'")
    return None


class AsyncHttpClient:
    """
    One aiohttp session for the lifetime of a batch.

    Transient failures (connection errors, timeouts, 429 and 5xx) are
    retried with exponential backoff. Bodies larger than the size limit
    are rejected while streaming.

    Example:
        async with AsyncHttpClient(max_retries=1) as client:
            response = await client.get("https://example.com/post")
            html = client.decode_content(response)
    """

    RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

    RETRYABLE_EXCEPTIONS = (
        aiohttp.ClientError,
        asyncio.TimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
        max_content_size: int = 20 * 1024 * 1024,
        user_agent: str | None = None,
        default_timeout: float = 30.0,
    ) -> None:
        """
        Args:
            max_retries: Extra attempts after the first one
            retry_base_delay: Backoff base in seconds (doubled per attempt)
            max_content_size: Largest accepted body in bytes
            user_agent: User-Agent header (a desktop browser string by default)
            default_timeout: Total timeout per attempt in seconds
        """
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._max_content_size = max_content_size
        self._default_timeout = default_timeout
        self._user_agent = user_agent or DEFAULT_USER_AGENT
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> AsyncHttpClient:
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self._user_agent, "Accept": ACCEPT_HEADER},
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _backoff(self, attempt: int) -> float:
        return self._retry_base_delay * (2**attempt) + random.uniform(0, 1)

    async def _read_body(self, response: aiohttp.ClientResponse) -> bytes:
        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > self._max_content_size:
            raise ValueError(f"Content too large: {declared} bytes")

        body = bytearray()
        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > self._max_content_size:
                raise ValueError(f"Content size limit exceeded: >{self._max_content_size} bytes")
        return bytes(body)

    async def _attempt(
        self,
        url: str,
        timeout: float,
        headers: dict[str, str] | None,
        retry_on_status: bool,
    ) -> HttpResponse | None:
        """One request. Returns None when the status asks for a retry."""
        assert self._session is not None
        async with self._session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers=headers,
            allow_redirects=True,
        ) as response:
            if retry_on_status and response.status in self.RETRYABLE_STATUS_CODES:
                logger.warning(f"Got {response.status} for {url}")
                return None

            return HttpResponse(
                status_code=response.status,
                content=await self._read_body(response),
                content_type=response.headers.get("Content-Type", ""),
                headers=dict(response.headers),
                url=str(response.url),
            )

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        GET a URL, following redirects.

        Non-2xx responses are returned, not raised; callers check ``ok``.

        Raises:
            aiohttp.ClientError: Network failure after the last retry
            ValueError: Body exceeds the size limit
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await self._attempt(url, timeout or self._default_timeout, headers, not is_last)
                if response is not None:
                    return response
            except self.RETRYABLE_EXCEPTIONS as e:
                if is_last:
                    logger.error(f"HTTP fetch error for {url} after {attempts} attempts: {e}")
                    raise
                logger.warning(f"Error fetching {url}: {e}")

            delay = self._backoff(attempt)
            logger.debug(f"Retrying {url} in {delay:.1f}s (attempt {attempt + 2}/{attempts})")
            await asyncio.sleep(delay)

        raise RuntimeError(f"Unexpected error fetching {url}")

    def _decode_content(self, content: bytes, content_type: str) -> str:
        """
        Decode a body: declared charset, then detection, then lossy UTF-8.
        """
        encoding = declared_charset(content_type) if content_type else None
        if encoding:
            try:
                return content.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Failed to decode with declared encoding: {encoding}")

        best_match = detect_encoding(content).best()
        if best_match is not None:
            return str(best_match)

        return content.decode("utf-8", errors="replace")

    def decode_content(self, response: HttpResponse) -> str:
        return self._decode_content(response.content, response.content_type)
