"""HTML to Markdown conversion."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

import html2text
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# [text](url) links, not images. The text may itself be an image, as in
# [![alt](src)](href); only the outer href is captured.
_LINK_RE = re.compile(r"(?<![!\]])\[((?:!\[[^\]]*\]\([^)]*\)|[^\]])+)\]\(([^)\s]+)\)")


class HtmlToMarkdown:
    """
    Converts HTML content to clean Markdown.

    Uses html2text without line wrapping. Link targets are made absolute;
    image references are left for the document builder.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert(html_string, "https://blog.example.com/post")
    """

    def __init__(
        self,
        body_width: int = 0,
        ignore_images: bool = False,
        ignore_tables: bool = False,
    ):
        """
        Initialize the Markdown converter.

        Args:
            body_width: Max line width (0 = no wrapping)
            ignore_images: Skip image conversion
            ignore_tables: Skip table conversion
        """
        self._body_width = body_width
        self._ignore_images = ignore_images
        self._ignore_tables = ignore_tables

    def _make_converter(self) -> html2text.HTML2Text:
        # No baseurl: html2text would otherwise absolutize image sources too
        converter = html2text.HTML2Text(baseurl="", bodywidth=self._body_width)
        converter.inline_links = True
        converter.wrap_links = False
        converter.protect_links = False
        converter.ignore_images = self._ignore_images
        converter.ignore_tables = self._ignore_tables
        converter.unicode_snob = True
        converter.escape_snob = True
        converter.mark_code = True
        converter.default_image_alt = ""
        converter.single_line_break = False
        return converter

    def _clean_output(self, markdown: str) -> str:
        # html2text wraps code in [code]...[/code] when mark_code is set
        markdown = re.sub(r"\[code\]\s*\n?", "```\n", markdown)
        markdown = re.sub(r"\n?\s*\[/code\]", "\n```", markdown)

        markdown = re.sub(r"\n{3,}", "\n\n", markdown)
        markdown = "\n".join(line.rstrip() for line in markdown.split("\n"))
        return markdown.strip()

    def _fix_relative_links(self, markdown: str, base_url: str) -> str:
        def replace_link(match: re.Match[str]) -> str:
            text = match.group(1)
            url = match.group(2)

            if url.startswith(("#", "http://", "https://", "mailto:", "tel:")):
                result: str = match.group(0)
                return result

            return f"[{text}]({urljoin(base_url, url)})"

        return _LINK_RE.sub(replace_link, markdown)

    def convert(self, html: str, url: str) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML content string
            url: Source URL for resolving relative links

        Returns:
            Markdown string (no trailing newline)
        """
        try:
            markdown = self._make_converter().handle(html)
            markdown = self._clean_output(markdown)
            return self._fix_relative_links(markdown, url)

        except Exception as e:
            logger.error(f"Failed to convert HTML to Markdown: {e}")
            # Plain text as fallback
            soup = BeautifulSoup(html, "html.parser")
            text: str = soup.get_text(separator="\n")
            return text.strip()
