"""Content extraction for lava (HTML to Markdown, page metadata)."""

from .content import MainContentExtractor
from .extractor import ArticleExtractor
from .markdown import HtmlToMarkdown
from .metadata import PageMetadataExtractor
from .protocols import ContentExtractor, MarkdownConverter

__all__ = [
    # Protocols
    "ContentExtractor",
    "MarkdownConverter",
    # Implementations
    "ArticleExtractor",
    "MainContentExtractor",
    "HtmlToMarkdown",
    "PageMetadataExtractor",
]
