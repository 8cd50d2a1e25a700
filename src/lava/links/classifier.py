"""Classification of raw link lines into pipeline tasks."""

import logging
import re
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

from ..models.config import DEFAULT_BLOCKED_DOMAINS
from ..models.results import Classification, LinkTask, VideoKind

logger = logging.getLogger(__name__)

PROCESSED_PREFIX = "- [x]"

NON_DOCUMENT_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv", ".flv",
    ".zip", ".rar", ".tar", ".gz", ".7z",
    ".txt", ".csv", ".xml", ".json",
    ".exe", ".dmg", ".pkg", ".deb", ".rpm",
)  # fmt: skip

VIDEO_SHORT_HOSTS = frozenset({"youtu.be", "www.youtu.be"})
VIDEO_ID_PATH_PREFIXES = frozenset({"embed", "shorts", "live"})
VIDEO_COLLECTION_PATH_PREFIXES = frozenset({"channel", "c", "user"})

_DECORATION_RE = re.compile(r"^[-*+\s\[\]xX]+")
_MARKDOWN_TARGET_RE = re.compile(r"\((https?://[^\s)]+)\)", re.IGNORECASE)
_BARE_URL_RE = re.compile(r"(https?://[^\s\]]+)", re.IGNORECASE)
_HTTP_LINK_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)
_VIDEO_ID_RE = re.compile(r"^[\w-]+$")


def sanitize_link(line: str) -> str:
    """
    Reduce a raw line to the URL it refers to.

    Leading list and checkbox decoration is dropped. A markdown link target
    ``[text](url)`` wins over bare URLs; otherwise the first bare http(s)
    token is used. Lines without any URL come back trimmed.
    """
    trimmed = _DECORATION_RE.sub("", line).strip()

    markdown_target = _MARKDOWN_TARGET_RE.search(trimmed)
    if markdown_target:
        return markdown_target.group(1)

    bare = _BARE_URL_RE.search(trimmed)
    if bare:
        return bare.group(1)

    return trimmed


def is_processed(line: str) -> bool:
    """Check if a line already carries the processed marker."""
    return line.strip().lower().startswith(PROCESSED_PREFIX)


def mark_processed(url: str) -> str:
    """Build the processed marker line for a task URL."""
    return f"{PROCESSED_PREFIX} {url}"


def is_valid_http_link(link: str) -> bool:
    """Check if a string is an absolute http(s) URL."""
    return bool(_HTTP_LINK_RE.match(link))


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_blocked_domain(url: str, blocked_domains: Optional[list[str]] = None) -> bool:
    """Check if the URL's host is a blocked domain or one of its subdomains."""
    host = _hostname(url)
    if not host:
        return False
    domains = DEFAULT_BLOCKED_DOMAINS if blocked_domains is None else blocked_domains
    return any(host == blocked or host.endswith(f".{blocked}") for blocked in domains)


def has_non_document_extension(url: str) -> bool:
    """Check if the URL path ends in a binary, media, archive or data extension."""
    path = url.split("?", 1)[0].split("#", 1)[0].lower()
    return path.endswith(NON_DOCUMENT_EXTENSIONS)


def _is_video_host(host: str) -> bool:
    return host == "youtube.com" or host.endswith(".youtube.com")


def get_video_id(url: str) -> Optional[str]:
    """
    Extract a video id from a single-video link.

    Recognises ``watch?v=<id>``, ``youtu.be/<id>`` and the ``/embed/``,
    ``/shorts/`` and ``/live/`` path forms.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    host = (parsed.hostname or "").lower()
    parts = [part for part in parsed.path.split("/") if part]
    video_id: Optional[str] = None

    if host in VIDEO_SHORT_HOSTS:
        video_id = parts[0] if parts else None
    elif _is_video_host(host):
        values = parse_qs(parsed.query).get("v")
        if values and values[0]:
            video_id = values[0]
        elif len(parts) >= 2 and parts[0] in VIDEO_ID_PATH_PREFIXES:
            video_id = parts[1]

    if video_id and _VIDEO_ID_RE.match(video_id):
        return video_id
    return None


def video_kind(url: str) -> Optional[VideoKind]:
    """Tell single-video links from channel/handle links. None for other URLs."""
    if get_video_id(url):
        return VideoKind.SINGLE

    host = _hostname(url)
    if not _is_video_host(host):
        return None

    parts = [part for part in urlparse(url).path.split("/") if part]
    if parts and (parts[0] in VIDEO_COLLECTION_PATH_PREFIXES or parts[0].startswith("@")):
        return VideoKind.COLLECTION
    return None


def canonical_video_url(video_id: str) -> str:
    """The watch-page form every single-video link is rewritten to."""
    return f"https://www.youtube.com/watch?v={video_id}"


Rule = Callable[[str, str], bool]


class LinkClassifier:
    """
    Assigns exactly one Classification to each raw line.

    Rules are evaluated top to bottom and the first match wins; a line
    matching no rule is eligible.

    Example:
        classifier = LinkClassifier(blocked_domains=["docs.google.com"])
        classifier.classify("- [ ] https://youtu.be/abc123")
        # Classification.VIDEO_SINGLE
        classifier.canonical_task("- [ ] https://youtu.be/abc123")
        # 'https://www.youtube.com/watch?v=abc123'
    """

    def __init__(self, blocked_domains: Optional[list[str]] = None) -> None:
        domains = DEFAULT_BLOCKED_DOMAINS if blocked_domains is None else blocked_domains
        self._blocked_domains = [d.lower() for d in domains]
        self._rules: list[tuple[Rule, Classification]] = [
            (lambda line, url: is_processed(line), Classification.ALREADY_PROCESSED),
            (lambda line, url: not is_valid_http_link(url), Classification.NON_URL),
            (lambda line, url: video_kind(url) == VideoKind.SINGLE, Classification.VIDEO_SINGLE),
            (lambda line, url: is_blocked_domain(url, self._blocked_domains), Classification.BLOCKED_DOMAIN),
            (lambda line, url: has_non_document_extension(url), Classification.NON_DOCUMENT_EXTENSION),
        ]

    @property
    def blocked_domains(self) -> list[str]:
        return list(self._blocked_domains)

    def classify(self, line: str) -> Classification:
        url = sanitize_link(line)
        for matches, tag in self._rules:
            if matches(line, url):
                return tag
        return Classification.ELIGIBLE

    def canonical_task(self, line: str) -> Optional[str]:
        """
        The canonical task URL for a line, or None if it holds no valid URL.

        Single-video links always come back in watch form.
        """
        url = sanitize_link(line)
        if not is_valid_http_link(url):
            return None
        video_id = get_video_id(url)
        return canonical_video_url(video_id) if video_id else url

    def task_for(self, index: int, line: str) -> LinkTask:
        """Classify a line and resolve its task URL in one step."""
        classification = self.classify(line)
        if classification in (Classification.ALREADY_PROCESSED, Classification.NON_URL):
            return LinkTask(index=index, line=line, classification=classification)

        url = sanitize_link(line)
        video_id = get_video_id(url) if classification == Classification.VIDEO_SINGLE else None
        if video_id:
            url = canonical_video_url(video_id)
        elif video_kind(url) == VideoKind.COLLECTION:
            logger.debug(f"Treating video collection link as a regular page: {url}")

        return LinkTask(
            index=index,
            line=line,
            classification=classification,
            url=url,
            video_id=video_id,
        )
