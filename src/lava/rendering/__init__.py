"""Page retrieval strategies."""

from .browser import PLAYWRIGHT_AVAILABLE, BrowserRenderer
from .fetch import HttpPageFetcher
from .protocols import PageRenderer, RenderedPage, is_html_content_type

__all__ = [
    "PLAYWRIGHT_AVAILABLE",
    "BrowserRenderer",
    "HttpPageFetcher",
    "PageRenderer",
    "RenderedPage",
    "is_html_content_type",
]
