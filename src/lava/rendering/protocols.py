"""Protocol definitions for page renderers."""

from dataclasses import dataclass
from typing import Protocol

HTML_CONTENT_TYPES = frozenset({"text/html", "application/xhtml+xml"})


def is_html_content_type(content_type: str) -> bool:
    """
    Check if a Content-Type header declares an HTML document.

    A missing header is accepted; servers omitting it almost always
    serve HTML.
    """
    if not content_type:
        return True
    base_type = content_type.lower().split(";")[0].strip()
    return base_type in HTML_CONTENT_TYPES


@dataclass(frozen=True)
class RenderedPage:
    """
    A retrieved HTML document.

    Attributes:
        html: Document markup
        final_url: URL relative references resolve against
    """

    html: str
    final_url: str


class PageRenderer(Protocol):
    """
    Protocol for page retrieval strategies.

    Implementations raise NotHtmlDocumentError when the resource is not
    HTML and RenderError (or any other exception) when retrieval fails.
    """

    async def fetch_rendered_document(self, url: str) -> RenderedPage:
        """
        Retrieve the HTML for a URL.

        Args:
            url: The URL to retrieve

        Returns:
            RenderedPage with markup and the base URL to resolve against
        """
        ...
