"""Exception hierarchy for lava."""


class LavaError(Exception):
    """Base class for all lava errors."""


class ConfigError(LavaError):
    """Raised when required configuration is missing or invalid."""


class RenderError(LavaError):
    """
    Raised when a page could not be retrieved.

    Covers navigation timeouts, browser crashes, anti-bot challenges
    and unsuccessful HTTP responses.
    """

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class NotHtmlDocumentError(RenderError):
    """Raised when the target resource is not an HTML document."""

    def __init__(self, url: str, content_type: str) -> None:
        super().__init__(url, f"Not an HTML document: {content_type or 'unknown content type'}")
        self.content_type = content_type


class ExtractionError(LavaError):
    """Raised when a page was retrieved but yielded no body content."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Failed to extract article content ({url})")
        self.url = url


class RendererUnavailableError(LavaError):
    """Raised when the browser renderer cannot be started at all."""


class PipelineBusyError(LavaError):
    """Raised when a batch is started while another batch is still running."""
