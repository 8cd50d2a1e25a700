"""Watch and poll modes: feeding links from files into the pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .exceptions import ConfigError
from .links.classifier import is_processed, is_valid_http_link, sanitize_link
from .links.markdown import extract_links
from .models.config import ReturnFormat, WatchConfig
from .pipeline.base import LinkPipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingLine:
    """An unprocessed line of the links file."""

    index: int  # position in the file
    raw: str
    url: str


def split_lines(content: str) -> tuple[list[str], list[str]]:
    """
    Split file content into lines and the terminator of each line.

    The last line's terminator is empty. Joining each line with its
    terminator reproduces the content, so CRLF files stay CRLF.
    """
    pieces = content.split("\n")
    lines: list[str] = []
    endings: list[str] = []
    for piece in pieces[:-1]:
        if piece.endswith("\r"):
            lines.append(piece[:-1])
            endings.append("\r\n")
        else:
            lines.append(piece)
            endings.append("\n")
    lines.append(pieces[-1])
    endings.append("")
    return lines, endings


def join_lines(lines: list[str], endings: list[str]) -> str:
    return "".join(line + ending for line, ending in zip(lines, endings))


def _read_raw(path: Path) -> str:
    # newline="" keeps \r\n as written
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


def _write_raw(path: Path, content: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(content)


def pending_lines(lines: list[str]) -> list[PendingLine]:
    """Lines that hold a URL and are not yet marked processed."""
    pending = []
    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or is_processed(line):
            continue
        url = sanitize_link(line)
        if not is_valid_http_link(url):
            continue
        pending.append(PendingLine(index=index, raw=raw, url=url))
    return pending


class _FileMonitor:
    """Shared loop control for the file-driven modes."""

    def __init__(self, pipeline: LinkPipeline, path: Path, settings: Optional[WatchConfig] = None) -> None:
        self._pipeline = pipeline
        self._path = path
        self._settings = settings or pipeline.config.watch
        self._stop = asyncio.Event()
        self._processing = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_processing(self) -> bool:
        return self._processing

    def stop(self) -> None:
        self._stop.set()

    def _check_exists(self) -> None:
        if not self._path.exists():
            raise ConfigError(f'File "{self._path}" not found.')

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True once stop() was called."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _read_lines(self) -> tuple[list[str], list[str]]:
        content = await asyncio.to_thread(_read_raw, self._path)
        return split_lines(content)


class LinksFileWatcher(_FileMonitor):
    """
    Watch mode: process new lines of a links file and check them off.

    Each processed line is rewritten in place as a processed marker right
    after its link completes. Changes seen within the debounce window
    after our own write are ignored, and a cycle requested while another
    is still running is dropped.

    Example:
        watcher = LinksFileWatcher(pipeline, config.links_path)
        await watcher.run()  # until watcher.stop()
    """

    def __init__(
        self,
        pipeline: LinkPipeline,
        path: Path,
        settings: Optional[WatchConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(pipeline, path, settings)
        self._clock = clock
        self._last_write: Optional[float] = None
        self._last_mtime: Optional[float] = None

    def _mtime(self) -> Optional[float]:
        try:
            return self._path.stat().st_mtime
        except OSError:
            return None

    def within_debounce(self) -> bool:
        """Whether we wrote the file ourselves moments ago."""
        if self._last_write is None:
            return False
        return self._clock() - self._last_write < self._settings.debounce_seconds

    async def process_file(self) -> int:
        """
        Run one cycle over the links file.

        Returns:
            Number of lines checked off in this cycle
        """
        if self._processing:
            logger.debug("Already processing, skipping duplicate cycle")
            return 0

        self._processing = True
        try:
            lines, endings = await self._read_lines()
            pending = pending_lines(lines)
            if not pending:
                return 0

            total = len(pending)
            logger.info(f"Processing {total} new link(s)...")
            checked = 0

            async def on_item(idx: int, updated: str) -> None:
                nonlocal checked
                if not is_processed(updated):
                    return
                item = pending[idx]
                lines[item.index] = updated
                self._last_write = self._clock()
                await asyncio.to_thread(_write_raw, self._path, join_lines(lines, endings))
                self._last_mtime = self._mtime()
                checked += 1
                logger.info(f"Checked off [{idx + 1}/{total}]: {item.url}")

            await self._pipeline.process_links(
                [item.raw for item in pending],
                return_format=ReturnFormat.MARKDOWN,
                on_item=on_item,
            )
            return checked

        except Exception as e:
            logger.error(f"Failed batch processing: {e}")
            return 0
        finally:
            self._processing = False

    async def run(self) -> None:
        """Initial pass, then watch for changes until stop() is called."""
        self._check_exists()
        logger.info(f"Watching {self._path} for new links (strategy: {self._pipeline.config.strategy.value})")

        self._last_mtime = self._mtime()
        await self.process_file()

        while not await self._sleep(self._settings.check_interval):
            mtime = self._mtime()
            if mtime is None or mtime == self._last_mtime:
                continue
            self._last_mtime = mtime

            if self.within_debounce():
                continue

            logger.info(f"File {self._path} has been changed.")
            await self.process_file()


class MarkdownPoller(_FileMonitor):
    """
    Poll mode: scan a Markdown note for links on a fixed interval.

    Links anywhere in the note are picked up (markdown link targets and
    bare URLs). The note is never modified; handled links are remembered
    in memory for the lifetime of the poller.

    Example:
        poller = MarkdownPoller(pipeline, Path("Reading list.md"))
        await poller.run()
    """

    def __init__(self, pipeline: LinkPipeline, path: Path, settings: Optional[WatchConfig] = None) -> None:
        super().__init__(pipeline, path, settings)
        self._seen: set[str] = set()

    @property
    def seen(self) -> set[str]:
        return set(self._seen)

    async def scan(self) -> int:
        """
        Process links not handled in an earlier scan.

        Returns:
            Number of links processed in this scan
        """
        if self._processing:
            logger.debug("Already processing, skipping duplicate cycle")
            return 0

        self._processing = True
        try:
            content = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
            found = extract_links(content, self._pipeline.config.blocked_domains)

            pending = []
            queued: set[str] = set()
            for link in found:
                if link.url in self._seen or link.url in queued:
                    continue
                queued.add(link.url)
                pending.append(link)

            if not pending:
                return 0

            total = len(pending)
            logger.info(f"Processing {total} new link(s) from {self._path}...")

            raws = [link.raw for link in pending]
            tasks = self._pipeline.classify(raws)
            result = await self._pipeline.process_links(raws, return_format=ReturnFormat.MARKDOWN)

            processed = 0
            for link, task, updated in zip(pending, tasks, result.updated_lines):
                # Failed links stay eligible for the next scan
                if is_processed(updated):
                    processed += 1
                    logger.info(f"Processed: {link.url}")
                    self._seen.add(link.url)
                elif not task.classification.proceeds:
                    self._seen.add(link.url)
            return processed

        except Exception as e:
            logger.error(f"Failed batch processing: {e}")
            return 0
        finally:
            self._processing = False

    async def run(self) -> None:
        """Scan now, then every poll interval until stop() is called."""
        self._check_exists()
        logger.info(
            f"Polling {self._path} for new links every {self._settings.poll_interval:g} seconds "
            f"(strategy: {self._pipeline.config.strategy.value})"
        )

        await self.scan()
        while not await self._sleep(self._settings.poll_interval):
            await self.scan()
