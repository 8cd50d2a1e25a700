"""Document assembly: frontmatter, heading, body."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import date
from urllib.parse import urljoin, urlparse, urlunparse

from ..models.results import ClipDocument, ExtractionResult, FrontmatterValue

logger = logging.getLogger(__name__)

# Presentation contract: keys are always rendered in this order
FRONTMATTER_ORDER = (
    "title",
    "source",
    "author",
    "published",
    "clipped",
    "tags",
    "description",
    "image",
    "favicon",
    "url",
)

DEFAULT_TITLE = "Untitled"
STUB_TITLE = "Untitled Link"
STUB_MESSAGE = "Content could not be extracted automatically."
VIDEO_DEFAULT_TITLE = "YouTube Video"
VIDEO_SOURCE = "https://youtube.com"
CLIPPINGS_TAG = "clippings"
VIDEO_TAG = "youtube"
DEFAULT_TAGS = (CLIPPINGS_TAG,)

_RELATIVE_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\((?!https?://)([^)]*)\)", re.IGNORECASE)


def _quote(value: str) -> str:
    escaped = value.replace('"', '\\"')
    return f'"{escaped}"'


def today() -> str:
    return date.today().isoformat()


def build_frontmatter(fields: dict[str, FrontmatterValue]) -> str:
    """
    Render frontmatter lines in the fixed key order.

    Only keys present in ``fields`` are rendered. Strings are double-quoted
    with inner quotes escaped; lists become block sequences.

    Args:
        fields: Frontmatter values by key

    Returns:
        Frontmatter body without the ``---`` delimiters

    Example:
        >>> print(build_frontmatter({"tags": ["clippings"], "title": 'Say "hi"'}))
        title: "Say \\"hi\\""
        tags:
          - clippings
    """
    lines: list[str] = []
    for key in FRONTMATTER_ORDER:
        if key not in fields:
            continue
        value = fields[key]
        if isinstance(value, list):
            lines.append(f"{key}:")
            lines.extend(f"  - {item}" for item in value)
        else:
            lines.append(f"{key}: {_quote(str(value))}")
    return "\n".join(lines)


def build_document(fields: dict[str, FrontmatterValue], body: str) -> ClipDocument:
    """Assemble frontmatter, an H1 with the title, and the body."""
    title = " ".join(str(fields.get("title") or "").split()) or DEFAULT_TITLE
    if "title" in fields:
        fields = {**fields, "title": title}
    markdown = f"---\n{build_frontmatter(fields)}\n---\n\n# {title}\n\n{body.strip()}\n"
    return ClipDocument(title=title, frontmatter=dict(fields), body=body, markdown=markdown)


def _directory_base(base_url: str) -> str:
    """Append a slash to the base path when its last segment looks like a directory."""
    parsed = urlparse(base_url)
    path = parsed.path or "/"
    last_segment = path.rsplit("/", 1)[-1]
    if last_segment and "." not in last_segment:
        path = f"{path}/"
    return urlunparse(parsed._replace(path=path, params="", query="", fragment=""))


def fix_image_paths(content: str, base_url: str) -> str:
    """
    Rewrite relative Markdown image references to absolute URLs.

    If the base URL's last path segment has no dot, it is treated as a
    directory, so ``img/pic.png`` under ``/blog/post`` resolves to
    ``/blog/post/img/pic.png``. A base ending in a file name resolves
    normally (``/blog/post.html`` gives ``/blog/img/pic.png``).
    """
    base = _directory_base(base_url)

    def replace(match: re.Match[str]) -> str:
        alt, target = match.group(1), match.group(2).strip()
        if not target:
            return match.group(0)

        # Keep an optional title: ![alt](path "title")
        path, sep, title = target.partition(" ")
        try:
            resolved = urljoin(base, path)
        except ValueError:
            return match.group(0)
        return f"![{alt}]({resolved}{sep}{title})"

    return _RELATIVE_IMAGE_RE.sub(replace, content)


def build_article(
    extraction: ExtractionResult,
    url: str,
    clipped: str | None = None,
    tags: Sequence[str] = DEFAULT_TAGS,
) -> ClipDocument:
    """
    Build the document for an extracted article.

    Every field is present; missing optional values are empty strings.

    Args:
        extraction: Extractor output
        url: Final page URL, also the base for image references
        clipped: Clip date override (defaults to today)
        tags: Frontmatter tags
    """
    fields: dict[str, FrontmatterValue] = {
        "title": extraction.title or DEFAULT_TITLE,
        "source": f"https://{extraction.domain}" if extraction.domain else url,
        "author": extraction.author or "",
        "published": extraction.published or "",
        "clipped": clipped or today(),
        "tags": list(tags),
        "description": extraction.description or "",
        "image": extraction.image or "",
        "favicon": extraction.favicon or "",
        "url": url,
    }
    return build_document(fields, fix_image_paths(extraction.content, url))


def video_thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


def build_video_embed(
    title: str | None,
    canonical_url: str,
    video_id: str,
    clipped: str | None = None,
    tags: Sequence[str] = DEFAULT_TAGS,
) -> ClipDocument:
    """
    Build the document for a single video.

    The body is a thumbnail image linking to the watch page; no player markup.
    The video tag is appended to ``tags`` when missing.
    """
    safe_title = title or VIDEO_DEFAULT_TITLE
    thumbnail = video_thumbnail_url(video_id)
    fields: dict[str, FrontmatterValue] = {
        "title": safe_title,
        "source": VIDEO_SOURCE,
        "url": canonical_url,
        "clipped": clipped or today(),
        "tags": [*tags, VIDEO_TAG] if VIDEO_TAG not in tags else list(tags),
        "image": thumbnail,
    }
    alt = " ".join(safe_title.split()).replace("[", "(").replace("]", ")")
    return build_document(fields, f"[![{alt}]({thumbnail})]({canonical_url})")


def build_stub(url: str, clipped: str | None = None) -> ClipDocument:
    """Build the placeholder document for a link nothing could be extracted from."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None

    fields: dict[str, FrontmatterValue] = {
        "title": STUB_TITLE,
        "source": f"https://{host}" if host else url,
        "url": url,
        "clipped": clipped or today(),
    }
    return build_document(fields, f"{STUB_MESSAGE}\n\nLink: {url}")
