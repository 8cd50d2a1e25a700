"""Direct HTTP retrieval of raw HTML, without script execution."""

import logging

from ..exceptions import NotHtmlDocumentError, RenderError
from ..http.protocols import HttpClient
from .protocols import RenderedPage, is_html_content_type

logger = logging.getLogger(__name__)


class HttpPageFetcher:
    """
    Fetch strategy: one GET request, response body used as-is.

    The originally requested URL is the base for relative references;
    redirects are whatever the HTTP client follows on its own.

    Example:
        async with AsyncHttpClient() as client:
            fetcher = HttpPageFetcher(client)
            page = await fetcher.fetch_rendered_document("https://example.com/post")
    """

    def __init__(self, http_client: HttpClient, timeout: float = 30.0) -> None:
        self._client = http_client
        self._timeout = timeout

    async def fetch_rendered_document(self, url: str) -> RenderedPage:
        response = await self._client.get(url, timeout=self._timeout)

        if not response.ok:
            raise RenderError(url, f"HTTP {response.status_code}")

        if not is_html_content_type(response.content_type):
            raise NotHtmlDocumentError(url, response.content_type)

        html = self._client.decode_content(response)
        logger.debug(f"Fetched {url}: {len(response.content)} bytes")
        return RenderedPage(html=html, final_url=url)
