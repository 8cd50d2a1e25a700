"""Isolating the article body of a page."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .metadata import collapse_whitespace

logger = logging.getLogger(__name__)

# Candidate article containers, most specific first
CONTENT_SELECTORS = [
    "article",
    "main",
    '[role="main"]',
    '[itemprop="articleBody"]',
    ".post-content",
    ".entry-content",
    ".article-content",
    ".article-body",
    ".content",
    "#content",
    "#main-content",
]

# Page chrome dropped from the chosen container
REMOVE_SELECTORS = [
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    ".nav",
    ".navbar",
    ".sidebar",
    ".footer",
    ".header",
    ".menu",
    ".advertisement",
    ".ads",
    ".social-share",
    ".share",
    ".comments",
    ".related-posts",
    ".newsletter",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    '[aria-hidden="true"]',
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
    "button",
]

KEEP_ATTRIBUTES = frozenset({"href", "src", "alt", "title"})

# A container with less text than this is probably a teaser, not the article
MIN_CONTENT_CHARS = 100

_ABSOLUTE_HREF_PREFIXES = ("#", "http://", "https://", "mailto:", "tel:")


class MainContentExtractor:
    """
    Picks the article container of a page and strips it down.

    The first container selector holding enough text wins, with ``<body>``
    as the last resort. Link targets become absolute; image sources stay
    as authored because the document builder resolves them.

    Example:
        fragment = MainContentExtractor().extract(html, "https://blog.example.com/post")
    """

    def __init__(
        self,
        content_selectors: Optional[list[str]] = None,
        remove_selectors: Optional[list[str]] = None,
    ):
        """
        Args:
            content_selectors: Replaces the container selectors
            remove_selectors: Added to the chrome selectors
        """
        self._containers = content_selectors or CONTENT_SELECTORS
        self._chrome = REMOVE_SELECTORS + (remove_selectors or [])

    def _pick_container(self, soup: BeautifulSoup) -> Optional[Tag]:
        for selector in self._containers:
            candidate = soup.select_one(selector)
            if candidate is not None and len(candidate.get_text(strip=True)) > MIN_CONTENT_CHARS:
                return candidate

        body = soup.find("body")
        return body if isinstance(body, Tag) else None

    def _prune(self, fragment: BeautifulSoup, base_url: str, title: Optional[str]) -> None:
        for selector in self._chrome:
            for node in fragment.select(selector):
                node.decompose()

        for node in fragment.find_all(True):
            node.attrs = {name: value for name, value in node.attrs.items() if name in KEEP_ATTRIBUTES}

        for anchor in fragment.find_all("a", href=True):
            if not anchor["href"].startswith(_ABSOLUTE_HREF_PREFIXES):
                anchor["href"] = urljoin(base_url, anchor["href"])

        # The document adds its own H1
        heading = fragment.find("h1")
        if title and isinstance(heading, Tag):
            if collapse_whitespace(heading.get_text(" ")) == collapse_whitespace(title):
                heading.decompose()

    def extract(self, html: str, url: str, title: Optional[str] = None) -> str:
        """
        Return the cleaned article fragment as HTML.

        Args:
            html: Page markup
            url: Base URL for link targets
            title: Page title; a first ``<h1>`` equal to it is dropped

        Returns:
            HTML fragment, or an empty string when the page has no body
        """
        container = self._pick_container(BeautifulSoup(html, "html.parser"))
        if container is None:
            logger.warning(f"Could not find main content for {url}")
            return ""

        fragment = BeautifulSoup(str(container), "html.parser")
        self._prune(fragment, url, title)

        text = str(fragment).replace("\r\n", "\n").replace("\r", "\n")
        return re.sub(r"\n{3,}", "\n\n", text).strip()
