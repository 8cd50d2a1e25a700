"""Protocol definitions for HTTP client abstraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class HttpResponse:
    """
    Immutable HTTP response returned by HttpClient.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        content: Raw response content as bytes
        content_type: Content-Type header value
        headers: All response headers
        url: Final URL after any redirects
    """

    status_code: int
    content: bytes
    content_type: str
    headers: dict[str, str]
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient(Protocol):
    """
    Protocol for HTTP clients.

    Lets tests swap in mocks and keeps the page fetcher and the
    video title lookup independent of aiohttp.
    """

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Perform an HTTP GET request.

        Raises:
            Exception on network errors (after retries exhausted)
        """
        ...

    def decode_content(self, response: HttpResponse) -> str:
        """Decode response content to string."""
        ...
