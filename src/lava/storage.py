"""Persistence sinks for clipped documents."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentSink(Protocol):
    """Destination for built documents."""

    async def write(self, filename: str, content: str) -> Optional[Path]:
        """
        Persist one document.

        Args:
            filename: File name including extension (no directories)
            content: Full document text

        Returns:
            Path written, or None if the sink does not write files
        """
        ...


class DiskSink:
    """
    Writes documents as UTF-8 files into one directory.

    The directory is created on first write. An existing file with the
    same name is overwritten.

    Example:
        sink = DiskSink(Path("./vault/Clippings"))
        path = await sink.write("My_Article.md", document.markdown)
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    def _validate_output_path(self, filename: str) -> Path:
        """
        Resolve the target path and make sure it stays inside the directory.

        Raises:
            ValueError: If the filename escapes the output directory
        """
        base = self._directory.resolve()
        resolved = (base / filename).resolve()
        try:
            resolved.relative_to(base)
        except ValueError as err:
            raise ValueError(f"Output path {resolved} is outside {base}") from err
        return resolved

    async def write(self, filename: str, content: str) -> Optional[Path]:
        path = self._validate_output_path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write in a worker thread to keep the event loop free
        await asyncio.to_thread(path.write_text, content, encoding="utf-8")

        logger.info(f"Saved: {path}")
        return path


class NullSink:
    """Sink used when persistence is disabled."""

    async def write(self, filename: str, content: str) -> Optional[Path]:
        logger.info(f"Would save to: {filename}")
        return None
