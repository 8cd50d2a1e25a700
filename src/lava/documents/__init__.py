"""Document building for lava (frontmatter, article, video, stub)."""

from .builder import (
    FRONTMATTER_ORDER,
    STUB_MESSAGE,
    STUB_TITLE,
    build_article,
    build_document,
    build_frontmatter,
    build_stub,
    build_video_embed,
    fix_image_paths,
)
from .naming import document_filename, sanitize_filename

__all__ = [
    "FRONTMATTER_ORDER",
    "STUB_MESSAGE",
    "STUB_TITLE",
    "build_article",
    "build_document",
    "build_frontmatter",
    "build_stub",
    "build_video_embed",
    "document_filename",
    "fix_image_paths",
    "sanitize_filename",
]
