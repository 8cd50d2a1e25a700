"""Batch orchestration: classify, dispatch, fall back, collect."""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

from ..conversion.extractor import ArticleExtractor
from ..conversion.protocols import ContentExtractor
from ..documents.builder import build_article, build_stub, build_video_embed
from ..documents.naming import document_filename
from ..exceptions import ExtractionError, NotHtmlDocumentError, PipelineBusyError
from ..http.client import AsyncHttpClient
from ..http.protocols import HttpClient
from ..links.classifier import LinkClassifier, mark_processed
from ..models.config import LavaConfig, ReturnFormat, Strategy
from ..models.events import BatchStats, ClipEvent, EventType
from ..models.results import BatchResult, Classification, ClipDocument, ClipRecord, LinkTask
from ..rendering.browser import BrowserRenderer
from ..rendering.fetch import HttpPageFetcher
from ..rendering.protocols import PageRenderer
from ..storage import DiskSink, DocumentSink, NullSink
from .video import fetch_video_title

logger = logging.getLogger(__name__)

# Type aliases for the batch observers
EventEmitter = Callable[[ClipEvent], None]
ItemCallback = Callable[[int, str], Union[None, Awaitable[None]]]
TitleLookup = Callable[[str], Awaitable[Optional[str]]]


class ManagedRenderer(PageRenderer, Protocol):
    """A page renderer with an explicit lifecycle (the shared browser handle)."""

    async def start(self) -> None: ...

    async def close(self) -> None: ...


RendererFactory = Callable[[], ManagedRenderer]


@dataclass
class LinkContext:
    """
    State for one link as it moves through the pipeline.

    Attributes:
        task: The classified input line
        updated_line: Line to write back (marker line once processed)
        document: Built document, if one was produced
        stubbed: Whether the document is a placeholder
        output_path: Where the document was written, if it was
        skip_reason: Why the link was skipped without error
        error: Error message if processing failed
    """

    task: LinkTask
    updated_line: str
    document: Optional[ClipDocument] = None
    stubbed: bool = False
    output_path: Optional[Path] = None
    skip_reason: Optional[str] = None
    error: Optional[str] = None


@dataclass
class _Batch:
    """Collaborators and counters for one running batch."""

    strategy: Strategy
    fetcher: PageRenderer
    renderer: Optional[ManagedRenderer]
    sink: DocumentSink
    title_lookup: TitleLookup
    stats: BatchStats
    emit: Optional[EventEmitter]

    def send(self, event: ClipEvent) -> None:
        if self.emit:
            self.emit(event)


class LinkPipeline:
    """
    Processes batches of link lines into clipped documents.

    Lines are classified up front, then processed one at a time in input
    order. The browser used by the render strategy is launched only when
    the batch holds at least one page to render and is torn down before
    process_links() returns, whatever happens. A render failure is
    retried once through the fetch strategy; if that fails too a stub
    document is written so the link is not retried forever.

    One pipeline runs one batch at a time. Starting a second batch while
    one is in flight raises PipelineBusyError.

    Example:
        pipeline = LinkPipeline(LavaConfig(clipping_dir=Path("./Clippings")))
        result = await pipeline.process_links(
            ["- [ ] https://example.com/post", "- [x] https://done.example.com"],
            return_format="structured",
        )
        for line in result.updated_lines:
            print(line)
    """

    def __init__(
        self,
        config: LavaConfig,
        *,
        extractor: Optional[ContentExtractor] = None,
        fetcher: Optional[PageRenderer] = None,
        renderer_factory: Optional[RendererFactory] = None,
        title_lookup: Optional[TitleLookup] = None,
        http_client: Optional[HttpClient] = None,
        sink: Optional[DocumentSink] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            config: Process-wide defaults
            extractor: Content extractor (defaults to ArticleExtractor)
            fetcher: Fetch strategy (defaults to HttpPageFetcher per batch)
            renderer_factory: Builds the render strategy (defaults to BrowserRenderer)
            title_lookup: Video title lookup (defaults to oEmbed)
            http_client: HTTP client to use instead of a per-batch AsyncHttpClient
            sink: Persistence sink used when saving (defaults to DiskSink)
        """
        self._config = config
        self._classifier = LinkClassifier(config.blocked_domains)
        self._extractor: ContentExtractor = extractor or ArticleExtractor()
        self._fetcher = fetcher
        self._renderer_factory = renderer_factory
        self._title_lookup = title_lookup
        self._http_client = http_client
        self._sink = sink
        self._running = False

    @property
    def config(self) -> LavaConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    def classify(self, lines: Sequence[str]) -> list[LinkTask]:
        """Classify every line of a batch."""
        return [self._classifier.task_for(index, line) for index, line in enumerate(lines)]

    def _default_renderer(self) -> ManagedRenderer:
        network = self._config.network
        return BrowserRenderer(
            timeout=network.render_timeout,
            headless=network.headless,
            user_agent=network.user_agent,
        )

    def _make_sink(self, save_to_disk: bool) -> DocumentSink:
        if not save_to_disk:
            return NullSink()
        if self._sink is not None:
            return self._sink
        return DiskSink(self._config.clipping_path)

    async def _open_http_client(self, stack: AsyncExitStack) -> HttpClient:
        network = self._config.network
        client = AsyncHttpClient(
            max_retries=network.max_retries,
            user_agent=network.user_agent,
            default_timeout=network.fetch_timeout,
        )
        return await stack.enter_async_context(client)

    async def _open_batch(
        self,
        stack: AsyncExitStack,
        tasks: list[LinkTask],
        strategy: Strategy,
        sink: DocumentSink,
        stats: BatchStats,
        emit: Optional[EventEmitter],
    ) -> _Batch:
        fetcher = self._fetcher
        title_lookup = self._title_lookup
        if fetcher is None or title_lookup is None:
            http_client = self._http_client or await self._open_http_client(stack)
            fetcher = fetcher or HttpPageFetcher(http_client, timeout=self._config.network.fetch_timeout)
            title_lookup = title_lookup or partial(fetch_video_title, http_client)

        renderer: Optional[ManagedRenderer] = None
        has_pages = any(task.classification == Classification.ELIGIBLE for task in tasks)
        if strategy == Strategy.RENDER and has_pages:
            renderer = (self._renderer_factory or self._default_renderer)()
            # Registered before start() so a half-launched browser is torn down too
            stack.push_async_callback(renderer.close)
            await renderer.start()

        return _Batch(
            strategy=strategy,
            fetcher=fetcher,
            renderer=renderer,
            sink=sink,
            title_lookup=title_lookup,
            stats=stats,
            emit=emit,
        )

    async def process_links(
        self,
        lines: Sequence[str],
        *,
        return_format: Union[ReturnFormat, str, None] = None,
        strategy: Union[Strategy, str, None] = None,
        save_to_disk: Optional[bool] = None,
        on_item: Optional[ItemCallback] = None,
        emit: Optional[EventEmitter] = None,
    ) -> BatchResult:
        """
        Process one batch of raw link lines.

        Args:
            lines: Raw input lines, in order
            return_format: Result shape (defaults to config)
            strategy: Page retrieval strategy (defaults to config)
            save_to_disk: Persist documents (defaults to config)
            on_item: Called with (index, updated line) after each link that
                went to extraction; may be a coroutine function
            emit: Optional observer for ClipEvents

        Returns:
            BatchResult with one updated line per input line

        Raises:
            PipelineBusyError: If another batch is running on this pipeline
            RendererUnavailableError: If the browser could not be launched
            ConfigError: If saving is requested without a clipping directory
        """
        if self._running:
            raise PipelineBusyError("A batch is already being processed")

        fmt = self._config.return_format if return_format is None else ReturnFormat.parse(return_format)
        chosen = self._config.strategy if strategy is None else Strategy.parse(strategy)
        save = self._config.save_to_disk if save_to_disk is None else save_to_disk
        sink = self._make_sink(save)

        tasks = self.classify(lines)
        result = BatchResult(
            return_format=fmt,
            updated_lines=list(lines),
            markdown=[""] * len(lines) if fmt == ReturnFormat.MARKDOWN else [],
        )
        stats = result.stats
        stats.total = len(lines)

        self._running = True
        started = time.monotonic()
        try:
            async with AsyncExitStack() as stack:
                batch = await self._open_batch(stack, tasks, chosen, sink, stats, emit)
                batch.send(ClipEvent(type=EventType.BATCH_STARTED, total=len(lines)))
                logger.info(f"Processing {len(lines)} line(s) with the {chosen.value} strategy")

                for task in tasks:
                    if not task.classification.proceeds:
                        self._skip(task, batch)
                        continue

                    ctx = await self._process_task(task, batch)
                    result.updated_lines[task.index] = ctx.updated_line

                    if ctx.document is not None:
                        if fmt == ReturnFormat.MARKDOWN:
                            result.markdown[task.index] = ctx.document.markdown
                        else:
                            result.records.append(
                                ClipRecord(
                                    url=task.url or "",
                                    frontmatter=ctx.document.structured_frontmatter(),
                                    body=ctx.document.body,
                                )
                            )

                    if on_item is not None:
                        await self._notify(on_item, task.index, ctx.updated_line)
        finally:
            self._running = False
            stats.duration_seconds = time.monotonic() - started

        if emit:
            emit(
                ClipEvent(
                    type=EventType.BATCH_COMPLETED,
                    total=stats.total,
                    message=f"{stats.processed} processed, {stats.failed} failed, {stats.skipped} skipped",
                )
            )
        logger.info(
            f"Batch done: {stats.clipped} clipped, {stats.stubbed} stubbed, "
            f"{stats.failed} failed, {stats.skipped} skipped in {stats.duration_seconds:.1f}s"
        )
        return result

    def _skip(self, task: LinkTask, batch: _Batch) -> None:
        batch.stats.skipped += 1
        logger.debug(f"Skipping! {task.classification.value}: {task.line.strip()}")
        batch.send(
            ClipEvent(
                type=EventType.LINK_SKIPPED,
                index=task.index,
                url=task.url,
                message=task.classification.value,
            )
        )

    async def _notify(self, on_item: ItemCallback, index: int, line: str) -> None:
        try:
            outcome = on_item(index, line)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Item callback failed for line {index}: {e}")

    async def _process_task(self, task: LinkTask, batch: _Batch) -> LinkContext:
        """Run one eligible or video task. Never raises."""
        ctx = LinkContext(task=task, updated_line=task.line)
        url = task.url or ""

        batch.send(ClipEvent(type=EventType.LINK_STARTED, index=task.index, url=url))
        logger.info(f"Processing link ({batch.strategy.value}): {url}")

        try:
            if task.classification == Classification.VIDEO_SINGLE:
                ctx.document = await self._clip_video(task, batch)
            else:
                ctx.document, ctx.stubbed = await self._clip_page(task, batch)
            ctx.output_path = await batch.sink.write(document_filename(ctx.document.title), ctx.document.markdown)

        except NotHtmlDocumentError as e:
            ctx.document = None
            ctx.skip_reason = str(e)
            batch.stats.skipped += 1
            logger.info(f"Skipping! {e}")
            batch.send(ClipEvent(type=EventType.LINK_SKIPPED, index=task.index, url=url, message=str(e)))
            return ctx

        except Exception as e:
            ctx.document = None
            ctx.error = str(e)
            batch.stats.failed += 1
            logger.error(f"Failed to process link: {url}. Error: {e}")
            batch.send(ClipEvent(type=EventType.LINK_FAILED, index=task.index, url=url, error=str(e)))
            return ctx

        ctx.updated_line = mark_processed(url)
        if ctx.stubbed:
            batch.stats.stubbed += 1
        else:
            batch.stats.clipped += 1
            batch.send(
                ClipEvent(
                    type=EventType.LINK_CLIPPED,
                    index=task.index,
                    url=url,
                    message=ctx.document.title,
                )
            )

        if ctx.output_path is not None:
            batch.stats.saved += 1
            batch.send(
                ClipEvent(
                    type=EventType.DOCUMENT_SAVED,
                    index=task.index,
                    url=url,
                    output_path=ctx.output_path,
                )
            )
        return ctx

    async def _clip_video(self, task: LinkTask, batch: _Batch) -> ClipDocument:
        url = task.url or ""
        try:
            title = await batch.title_lookup(url)
        except Exception as e:
            logger.debug(f"Title lookup failed for {url}: {e}")
            title = None
        return build_video_embed(title, url, task.video_id or "", tags=self._config.default_tags)

    async def _clip_page(self, task: LinkTask, batch: _Batch) -> tuple[ClipDocument, bool]:
        """Returns the document and whether it is a stub."""
        url = task.url or ""

        if batch.strategy == Strategy.FETCH or batch.renderer is None:
            return await self._extract(batch.fetcher, url), False

        try:
            return await self._extract(batch.renderer, url), False
        except NotHtmlDocumentError:
            raise
        except Exception as e:
            logger.warning(f"Render failed for {url}: {e}. Falling back to fetch")
            batch.send(ClipEvent(type=EventType.RENDER_FAILED, index=task.index, url=url, error=str(e)))

        batch.send(ClipEvent(type=EventType.FALLBACK_STARTED, index=task.index, url=url))
        return await self._fetch_or_stub(task, batch)

    async def _fetch_or_stub(self, task: LinkTask, batch: _Batch) -> tuple[ClipDocument, bool]:
        url = task.url or ""
        try:
            return await self._extract(batch.fetcher, url), False
        except NotHtmlDocumentError:
            raise
        except Exception as e:
            logger.warning(f"Fetch fallback failed for {url}: {e}. Writing stub")
            batch.send(ClipEvent(type=EventType.STUB_CREATED, index=task.index, url=url, error=str(e)))
            return build_stub(url), True

    async def _extract(self, renderer: PageRenderer, url: str) -> ClipDocument:
        page = await renderer.fetch_rendered_document(url)
        extraction = self._extractor.extract(page.html, page.final_url)
        if extraction is None:
            raise ExtractionError(url)
        return build_article(extraction, page.final_url, tags=self._config.default_tags)
