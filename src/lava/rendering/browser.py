"""Browser rendering via Playwright."""

from __future__ import annotations

import contextlib
import logging
from types import TracebackType
from typing import TYPE_CHECKING

from ..exceptions import NotHtmlDocumentError, RenderError, RendererUnavailableError
from .protocols import RenderedPage, is_html_content_type

logger = logging.getLogger(__name__)

# Check for Playwright availability
PLAYWRIGHT_AVAILABLE = False
try:
    from playwright.async_api import async_playwright

    PLAYWRIGHT_AVAILABLE = True
except ImportError:
    pass

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Playwright

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserRenderer:
    """
    Render strategy: a headless Chromium shared across one batch.

    The browser is launched by start() and torn down by close(); each
    render opens its own tab and closes it before returning. Navigation
    waits for DOM readiness only, not for every resource to load.

    Example:
        async with BrowserRenderer(timeout=30.0) as renderer:
            page = await renderer.fetch_rendered_document("https://example.com")
            print(page.final_url, len(page.html))

    Requires: pip install lava[js] && playwright install chromium
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headless: bool = True,
        user_agent: str | None = None,
    ) -> None:
        """
        Initialize the renderer.

        Args:
            timeout: Navigation timeout (seconds)
            headless: Run browser in headless mode
            user_agent: Custom user agent string
        """
        self._timeout_ms = timeout * 1000
        self._headless = headless
        self._user_agent = user_agent

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @property
    def is_started(self) -> bool:
        return self._context is not None

    async def start(self) -> None:
        """Launch the browser. Failing to launch is fatal for the batch."""
        if self.is_started:
            return
        if not PLAYWRIGHT_AVAILABLE:
            raise RendererUnavailableError(
                "Playwright is required for the render strategy. Install with: pip install lava[js]"
            )

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=LAUNCH_ARGS,
            )
            context_options: dict[str, object] = {"ignore_https_errors": True}
            if self._user_agent:
                context_options["user_agent"] = self._user_agent
            self._context = await self._browser.new_context(**context_options)  # type: ignore[arg-type]
            self._context.set_default_timeout(self._timeout_ms)
        except Exception as e:
            await self.close()
            raise RendererUnavailableError(f"Could not launch browser: {e}") from e

        logger.info("Browser launched")

    async def close(self) -> None:
        """Shut the browser down. Safe to call more than once."""
        if self._context:
            with contextlib.suppress(Exception):
                await self._context.close()
            self._context = None

        if self._browser:
            with contextlib.suppress(Exception):
                await self._browser.close()
            self._browser = None

        if self._playwright:
            with contextlib.suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
            logger.info("Browser shut down")

    async def __aenter__(self) -> BrowserRenderer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def fetch_rendered_document(self, url: str) -> RenderedPage:
        """
        Navigate to a URL and capture the rendered DOM.

        Raises:
            NotHtmlDocumentError: If the response is not an HTML document
            RenderError: If navigation produced no response
        """
        if self._context is None:
            raise RuntimeError("Browser not started. Call start() or use 'async with'.")

        page = await self._context.new_page()
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
            if response is None:
                raise RenderError(url, "Navigation returned no response")

            content_type = await response.header_value("content-type") or ""
            if not is_html_content_type(content_type):
                raise NotHtmlDocumentError(url, content_type)

            html = await page.content()
            final_url = page.url or url
            logger.debug(f"Rendered {url} -> {final_url}: {len(html)} chars")
            return RenderedPage(html=html, final_url=final_url)
        finally:
            with contextlib.suppress(Exception):
                await page.close()
