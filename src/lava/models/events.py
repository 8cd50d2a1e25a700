"""Event types emitted while a batch of links is processed."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted during a batch."""

    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"

    LINK_SKIPPED = "link_skipped"
    LINK_STARTED = "link_started"
    RENDER_FAILED = "render_failed"
    FALLBACK_STARTED = "fallback_started"
    LINK_CLIPPED = "link_clipped"
    STUB_CREATED = "stub_created"
    LINK_FAILED = "link_failed"
    DOCUMENT_SAVED = "document_saved"


@dataclass
class ClipEvent:
    """
    Event emitted while a batch runs.

    Example:
        def on_event(event: ClipEvent) -> None:
            if event.type == EventType.LINK_FAILED:
                print(f"Error: {event.url} - {event.error}")

        await pipeline.process_links(lines, emit=on_event)
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    index: Optional[int] = None
    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    output_path: Optional[Path] = None
    total: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type in (EventType.LINK_FAILED, EventType.RENDER_FAILED)


@dataclass
class BatchStats:
    """Cumulative statistics for one batch."""

    total: int = 0
    skipped: int = 0
    clipped: int = 0
    stubbed: int = 0
    failed: int = 0
    saved: int = 0
    duration_seconds: float = 0.0

    @property
    def processed(self) -> int:
        """Lines that ended up marked as processed."""
        return self.clipped + self.stubbed

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "total": self.total,
            "skipped": self.skipped,
            "clipped": self.clipped,
            "stubbed": self.stubbed,
            "failed": self.failed,
            "saved": self.saved,
            "duration_seconds": round(self.duration_seconds, 2),
        }
