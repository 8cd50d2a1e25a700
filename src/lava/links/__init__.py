"""Link classification and discovery."""

from .classifier import (
    LinkClassifier,
    canonical_video_url,
    get_video_id,
    has_non_document_extension,
    is_blocked_domain,
    is_processed,
    is_valid_http_link,
    mark_processed,
    sanitize_link,
    video_kind,
)
from .markdown import FoundLink, extract_links

__all__ = [
    "FoundLink",
    "LinkClassifier",
    "canonical_video_url",
    "extract_links",
    "get_video_id",
    "has_non_document_extension",
    "is_blocked_domain",
    "is_processed",
    "is_valid_http_link",
    "mark_processed",
    "sanitize_link",
    "video_kind",
]
