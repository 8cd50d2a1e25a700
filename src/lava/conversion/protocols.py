"""Protocol definitions for content extraction."""

from typing import Optional, Protocol

from ..models.results import ExtractionResult


class ContentExtractor(Protocol):
    """
    Protocol for turning a page into article content plus metadata.

    Implementations must be pure: no I/O, no shared state between calls.
    """

    def extract(self, html: str, url: str) -> Optional[ExtractionResult]:
        """
        Extract the article from a page.

        Args:
            html: Page markup
            url: Final page URL (for relative link resolution)

        Returns:
            ExtractionResult, or None when no body content was found
        """
        ...


class MarkdownConverter(Protocol):
    """Protocol for converting cleaned HTML to Markdown."""

    def convert(self, html: str, url: str) -> str: ...
