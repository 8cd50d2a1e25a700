"""
lava - Clip web pages into Markdown documents with frontmatter.

Usage:
    from lava import LavaConfig, LinkPipeline

    config = LavaConfig(clipping_dir=Path("./vault/Clippings"))
    pipeline = LinkPipeline(config)

    result = await pipeline.process_links(
        ["- [ ] https://example.com/post"],
        return_format="markdown",
    )
    print(result.updated_lines)
"""

__version__ = "1.0.0"

from .exceptions import (
    ConfigError,
    ExtractionError,
    LavaError,
    NotHtmlDocumentError,
    PipelineBusyError,
    RenderError,
    RendererUnavailableError,
)
from .links import LinkClassifier
from .models.config import LavaConfig, NetworkConfig, ReturnFormat, ServerConfig, Strategy, WatchConfig
from .models.events import BatchStats, ClipEvent, EventType
from .models.results import BatchResult, Classification, ClipDocument, ClipRecord, ExtractionResult
from .pipeline import LinkPipeline
from .watcher import LinksFileWatcher, MarkdownPoller

__all__ = [
    "__version__",
    # Core
    "LinkPipeline",
    "LinkClassifier",
    "LinksFileWatcher",
    "MarkdownPoller",
    # Config
    "LavaConfig",
    "NetworkConfig",
    "ServerConfig",
    "WatchConfig",
    "Strategy",
    "ReturnFormat",
    # Events
    "EventType",
    "ClipEvent",
    "BatchStats",
    # Results
    "BatchResult",
    "Classification",
    "ClipDocument",
    "ClipRecord",
    "ExtractionResult",
    # Errors
    "LavaError",
    "ConfigError",
    "RenderError",
    "NotHtmlDocumentError",
    "ExtractionError",
    "RendererUnavailableError",
    "PipelineBusyError",
]
