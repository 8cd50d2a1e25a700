"""Article extraction: main content as Markdown plus page metadata."""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from ..models.results import ExtractionResult
from .content import MainContentExtractor
from .markdown import HtmlToMarkdown
from .metadata import PageMetadataExtractor
from .protocols import MarkdownConverter

logger = logging.getLogger(__name__)


class ArticleExtractor:
    """
    Default content extractor.

    Combines metadata extraction, main-content isolation and Markdown
    conversion. Image references in the returned content keep the form
    they had in the page.

    Example:
        extractor = ArticleExtractor()
        result = extractor.extract(html, "https://blog.example.com/post")
        if result:
            print(result.title, result.content[:80])
    """

    def __init__(
        self,
        content_extractor: Optional[MainContentExtractor] = None,
        converter: Optional[MarkdownConverter] = None,
        metadata_extractor: Optional[PageMetadataExtractor] = None,
    ):
        self._content = content_extractor or MainContentExtractor()
        self._converter = converter or HtmlToMarkdown()
        self._metadata = metadata_extractor or PageMetadataExtractor()

    def extract(self, html: str, url: str) -> Optional[ExtractionResult]:
        if not html or not html.strip():
            return None

        soup = BeautifulSoup(html, "html.parser")
        metadata = self._metadata.extract(soup, url)

        content_html = self._content.extract(html, url, title=metadata["title"])
        if not content_html:
            return None

        content = self._converter.convert(content_html, url)
        if not content.strip():
            logger.debug(f"No body content extracted from {url}")
            return None

        return ExtractionResult(content=content, **metadata)
