"""Value types flowing through the link pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .config import ReturnFormat
from .events import BatchStats

FrontmatterValue = Union[str, list[str]]


class Classification(str, Enum):
    """Routing tag assigned to one input line. Exactly one applies."""

    ALREADY_PROCESSED = "already-processed"
    NON_URL = "non-url"
    BLOCKED_DOMAIN = "blocked-domain"
    NON_DOCUMENT_EXTENSION = "non-document-extension"
    VIDEO_SINGLE = "video-single"
    ELIGIBLE = "eligible"

    @property
    def proceeds(self) -> bool:
        """Whether lines with this tag go on to extraction."""
        return self in (Classification.VIDEO_SINGLE, Classification.ELIGIBLE)


class VideoKind(str, Enum):
    """What a video-platform link points at."""

    SINGLE = "single"
    COLLECTION = "collection"


@dataclass(frozen=True)
class LinkTask:
    """
    A classified input line.

    Attributes:
        index: Position of the line within the batch
        line: The raw line as given
        classification: Routing tag
        url: Canonical task URL (None when no URL could be resolved)
        video_id: Video identifier for video-single links
    """

    index: int
    line: str
    classification: Classification
    url: Optional[str] = None
    video_id: Optional[str] = None


@dataclass
class ExtractionResult:
    """
    Output of a content extractor.

    A result only exists when body content was found; extractors signal
    failure by returning None instead.
    """

    content: str
    title: Optional[str] = None
    author: Optional[str] = None
    published: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    favicon: Optional[str] = None
    domain: Optional[str] = None


@dataclass
class ClipDocument:
    """
    A built document ready to be persisted or returned.

    Attributes:
        title: Document title (also the H1 heading)
        frontmatter: Ordered frontmatter fields as built
        body: Markdown body without frontmatter or heading
        markdown: Full persisted text
    """

    title: str
    frontmatter: dict[str, FrontmatterValue]
    body: str
    markdown: str

    def structured_frontmatter(self) -> dict[str, FrontmatterValue]:
        """Frontmatter for structured responses: empty strings and lists are omitted."""
        return {key: value for key, value in self.frontmatter.items() if value not in ("", [])}


@dataclass
class ClipRecord:
    """Structured per-link result."""

    url: str
    frontmatter: dict[str, FrontmatterValue]
    body: str

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "frontmatter": dict(self.frontmatter), "body": self.body}


@dataclass
class BatchResult:
    """
    Aggregate result of one batch.

    ``updated_lines`` always has one entry per input line, in input order.
    In markdown mode ``markdown`` does too (empty string for lines that
    produced no document); in structured mode ``records`` holds one entry
    per produced document, in input order.
    """

    return_format: ReturnFormat
    updated_lines: list[str] = field(default_factory=list)
    markdown: list[str] = field(default_factory=list)
    records: list[ClipRecord] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)

    def payload(self) -> Union[list[str], list[dict[str, Any]]]:
        """The per-link results in the requested shape."""
        if self.return_format == ReturnFormat.MARKDOWN:
            return list(self.markdown)
        return [record.to_dict() for record in self.records]
