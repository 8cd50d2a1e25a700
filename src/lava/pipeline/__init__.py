"""Link processing pipeline."""

from .base import (
    EventEmitter,
    ItemCallback,
    LinkContext,
    LinkPipeline,
    ManagedRenderer,
    RendererFactory,
    TitleLookup,
)
from .video import fetch_video_title, oembed_url

__all__ = [
    "EventEmitter",
    "ItemCallback",
    "LinkContext",
    "LinkPipeline",
    "ManagedRenderer",
    "RendererFactory",
    "TitleLookup",
    "fetch_video_title",
    "oembed_url",
]
