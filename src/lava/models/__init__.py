"""Lava configuration, event and result models."""

from .config import (
    DEFAULT_BLOCKED_DOMAINS,
    LavaConfig,
    NetworkConfig,
    ReturnFormat,
    ServerConfig,
    Strategy,
    WatchConfig,
)
from .events import BatchStats, ClipEvent, EventType
from .results import (
    BatchResult,
    Classification,
    ClipDocument,
    ClipRecord,
    ExtractionResult,
    LinkTask,
    VideoKind,
)

__all__ = [
    # Config
    "DEFAULT_BLOCKED_DOMAINS",
    "LavaConfig",
    "NetworkConfig",
    "ReturnFormat",
    "ServerConfig",
    "Strategy",
    "WatchConfig",
    # Events
    "BatchStats",
    "ClipEvent",
    "EventType",
    # Results
    "BatchResult",
    "Classification",
    "ClipDocument",
    "ClipRecord",
    "ExtractionResult",
    "LinkTask",
    "VideoKind",
]
