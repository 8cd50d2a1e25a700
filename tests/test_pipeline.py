"""Tests for the link pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from lava.documents import STUB_MESSAGE, STUB_TITLE
from lava.exceptions import (
    ConfigError,
    NotHtmlDocumentError,
    PipelineBusyError,
    RenderError,
    RendererUnavailableError,
)
from lava.http.protocols import HttpResponse
from lava.models.config import LavaConfig, ReturnFormat
from lava.models.events import EventType
from lava.pipeline.base import LinkPipeline

POST_URL = "https://example.com/post-1"
OTHER_URL = "https://example.com/post-2"


class TestBatchShape:
    """Tests for result length, ordering and skips."""

    @pytest.mark.asyncio
    async def test_one_updated_line_per_input_line(self, make_pipeline, renderer):
        """Test that output length and order follow the input."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        lines = [
            "just a note",
            f"- [ ] {POST_URL}",
            "- [x] https://example.com/done",
            "https://docs.google.com/document/d/abc",
            "https://example.com/paper.pdf",
        ]

        pipeline = make_pipeline(save_to_disk=False)
        result = await pipeline.process_links(lines, return_format="md")

        assert result.updated_lines == [
            "just a note",
            f"- [x] {POST_URL}",
            "- [x] https://example.com/done",
            "https://docs.google.com/document/d/abc",
            "https://example.com/paper.pdf",
        ]
        assert len(result.markdown) == len(lines)
        assert result.markdown[0] == ""
        assert result.markdown[1].startswith("---\n")
        assert result.markdown[2:] == ["", "", ""]
        assert result.stats.skipped == 4
        assert result.stats.clipped == 1

    @pytest.mark.asyncio
    async def test_skipped_lines_never_reach_a_renderer(self, make_pipeline, renderer, fetcher):
        """Test that already-processed and excluded lines do no work."""
        lines = [
            f"- [x] {POST_URL}",
            "https://sheets.google.com/spreadsheets/d/1",
            "https://example.com/photo.png?size=large",
        ]

        result = await make_pipeline(save_to_disk=False).process_links(lines)

        assert result.updated_lines == lines
        assert renderer.calls == []
        assert fetcher.calls == []
        assert renderer.start_count == 0

    @pytest.mark.asyncio
    async def test_structured_records_only_for_documents(self, make_pipeline, renderer):
        """Test that structured mode omits skipped lines and empty fields."""
        renderer.pages[POST_URL] = "Post One\nBody one"

        pipeline = make_pipeline(save_to_disk=False)
        result = await pipeline.process_links(["not a link", POST_URL], return_format="json")

        assert result.return_format == ReturnFormat.STRUCTURED
        assert result.markdown == []
        payload = result.payload()
        assert len(payload) == 1
        record = payload[0]
        assert record["url"] == POST_URL
        assert record["body"] == "Body one"
        assert record["frontmatter"]["title"] == "Post One"
        assert record["frontmatter"]["source"] == "https://example.com"
        assert record["frontmatter"]["tags"] == ["clippings"]
        assert "author" not in record["frontmatter"]
        assert "description" not in record["frontmatter"]

    @pytest.mark.asyncio
    async def test_defaults_come_from_config(self, make_pipeline, renderer):
        """Test that omitted options use the configured defaults."""
        renderer.pages[POST_URL] = "Post One\nBody one"

        pipeline = make_pipeline(save_to_disk=False, return_format="markdown")
        result = await pipeline.process_links([POST_URL])

        assert result.return_format == ReturnFormat.MARKDOWN
        assert renderer.calls == [POST_URL]


class TestRendererLifecycle:
    """Tests for the shared browser handle."""

    @pytest.mark.asyncio
    async def test_started_once_and_closed_after_batch(self, make_pipeline, renderer):
        """Test that one renderer serves every page of a batch."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        renderer.pages[OTHER_URL] = "Post Two\nBody two"

        await make_pipeline(save_to_disk=False).process_links([POST_URL, OTHER_URL])

        assert renderer.start_count == 1
        assert renderer.close_count == 1
        assert renderer.calls == [POST_URL, OTHER_URL]

    @pytest.mark.asyncio
    async def test_not_created_without_pages(self, make_pipeline, renderer, title_lookup):
        """Test that batches of videos and skips never launch a browser."""
        lines = ["https://youtu.be/abc123", "- [x] https://example.com/a", "hello"]

        await make_pipeline(save_to_disk=False).process_links(lines)

        assert renderer.start_count == 0
        assert renderer.close_count == 0
        title_lookup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_created_for_fetch_strategy(self, make_pipeline, renderer, fetcher):
        """Test that the fetch strategy bypasses the browser."""
        fetcher.pages[POST_URL] = "Post One\nBody one"

        result = await make_pipeline(save_to_disk=False).process_links([POST_URL], strategy="fetch")

        assert renderer.start_count == 0
        assert fetcher.calls == [POST_URL]
        assert result.updated_lines == [f"- [x] {POST_URL}"]

    @pytest.mark.asyncio
    async def test_launch_failure_is_fatal_and_cleaned_up(self, make_pipeline, renderer):
        """Test that a browser that cannot start fails the whole batch."""
        renderer.start_error = RendererUnavailableError("Could not launch browser")
        pipeline = make_pipeline(save_to_disk=False)

        with pytest.raises(RendererUnavailableError):
            await pipeline.process_links([POST_URL])

        assert renderer.close_count == 1
        assert pipeline.is_running is False

    @pytest.mark.asyncio
    async def test_closed_when_every_task_fails(self, make_pipeline, renderer, fetcher):
        """Test that teardown happens even after failures."""
        renderer.errors[POST_URL] = RuntimeError("crash")
        fetcher.errors[POST_URL] = RuntimeError("crash again")

        await make_pipeline(save_to_disk=False).process_links([POST_URL])

        assert renderer.close_count == 1


class TestFallback:
    """Tests for render-to-fetch fallback and stubs."""

    @pytest.mark.asyncio
    async def test_render_error_falls_back_to_fetch(self, make_pipeline, renderer, fetcher):
        """Test that a render failure is retried once through fetch."""
        renderer.errors[POST_URL] = RenderError(POST_URL, "Timeout 30000ms exceeded")
        fetcher.pages[POST_URL] = "Fetched Title\nFetched body"

        result = await make_pipeline(save_to_disk=False).process_links([POST_URL], return_format="md")

        assert fetcher.calls == [POST_URL]
        assert result.updated_lines == [f"- [x] {POST_URL}"]
        assert "# Fetched Title" in result.markdown[0]
        assert result.stats.clipped == 1
        assert result.stats.stubbed == 0

    @pytest.mark.asyncio
    async def test_empty_extraction_falls_back_to_fetch(self, make_pipeline, renderer, fetcher):
        """Test that an empty body counts as a render failure."""
        renderer.pages[POST_URL] = "Title only\n"
        fetcher.pages[POST_URL] = "Fetched Title\nFetched body"

        result = await make_pipeline(save_to_disk=False).process_links([POST_URL])

        assert fetcher.calls == [POST_URL]
        assert result.payload()[0]["frontmatter"]["title"] == "Fetched Title"

    @pytest.mark.asyncio
    async def test_double_failure_produces_stub(self, make_pipeline, renderer, fetcher, tmp_path):
        """Test that a stub is written and the line marked when both strategies fail."""
        renderer.errors[POST_URL] = RenderError(POST_URL, "net::ERR_BLOCKED")
        fetcher.errors[POST_URL] = RenderError(POST_URL, "HTTP 403")

        result = await make_pipeline().process_links([POST_URL], return_format="md")

        assert renderer.calls == [POST_URL]
        assert fetcher.calls == [POST_URL]
        assert result.updated_lines == [f"- [x] {POST_URL}"]
        assert result.stats.stubbed == 1

        document = result.markdown[0]
        assert STUB_MESSAGE in document
        assert POST_URL in document
        assert f'title: "{STUB_TITLE}"' in document
        assert (tmp_path / "Untitled_Link.md").exists()

    @pytest.mark.asyncio
    async def test_non_html_render_is_skipped_without_fallback(self, make_pipeline, renderer, fetcher):
        """Test that a non-HTML response is a skip, not a failure."""
        renderer.errors[POST_URL] = NotHtmlDocumentError(POST_URL, "application/pdf")

        result = await make_pipeline(save_to_disk=False).process_links([POST_URL], return_format="md")

        assert fetcher.calls == []
        assert result.updated_lines == [POST_URL]
        assert result.markdown == [""]
        assert result.stats.skipped == 1
        assert result.stats.failed == 0

    @pytest.mark.asyncio
    async def test_non_html_fallback_is_skipped_without_stub(self, make_pipeline, renderer, fetcher):
        """Test that the fallback also treats non-HTML as a skip."""
        renderer.errors[POST_URL] = RenderError(POST_URL, "crash")
        fetcher.errors[POST_URL] = NotHtmlDocumentError(POST_URL, "image/png")

        result = await make_pipeline(save_to_disk=False).process_links([POST_URL])

        assert result.updated_lines == [POST_URL]
        assert result.records == []
        assert result.stats.stubbed == 0

    @pytest.mark.asyncio
    async def test_fetch_only_failure_leaves_line_unmarked(self, make_pipeline, fetcher, tmp_path):
        """Test that the fetch strategy alone never produces a stub."""
        fetcher.errors[POST_URL] = RenderError(POST_URL, "HTTP 500")

        result = await make_pipeline().process_links([POST_URL], strategy="fetch", return_format="md")

        assert result.updated_lines == [POST_URL]
        assert result.markdown == [""]
        assert result.stats.failed == 1
        assert result.stats.stubbed == 0
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_fallback_events(self, make_pipeline, renderer, fetcher):
        """Test the event sequence of a fallback that ends in a stub."""
        renderer.errors[POST_URL] = RenderError(POST_URL, "crash")
        fetcher.errors[POST_URL] = RenderError(POST_URL, "HTTP 403")
        events = []

        await make_pipeline(save_to_disk=False).process_links([POST_URL], emit=events.append)

        types = [event.type for event in events]
        assert types[0] == EventType.BATCH_STARTED
        assert types[-1] == EventType.BATCH_COMPLETED
        assert types.index(EventType.RENDER_FAILED) < types.index(EventType.FALLBACK_STARTED)
        assert EventType.STUB_CREATED in types
        assert EventType.LINK_FAILED not in types


class TestVideoLinks:
    """Tests for single-video links."""

    @pytest.mark.asyncio
    async def test_short_link_marked_with_watch_url(self, make_pipeline, title_lookup, renderer):
        """Test that the marker always carries the canonical watch URL."""
        result = await make_pipeline(save_to_disk=False).process_links(
            ["- [ ] https://youtu.be/abc123"], return_format="md"
        )

        canonical = "https://www.youtube.com/watch?v=abc123"
        assert result.updated_lines == [f"- [x] {canonical}"]
        title_lookup.assert_awaited_once_with(canonical)
        assert "# Never Gonna Give You Up" in result.markdown[0]
        assert f"]({canonical})" in result.markdown[0]
        assert renderer.calls == []

    @pytest.mark.asyncio
    async def test_title_lookup_failure_uses_placeholder(self, make_pipeline, title_lookup):
        """Test that a failing title lookup never blocks the video."""
        title_lookup.side_effect = RuntimeError("oEmbed down")

        result = await make_pipeline(save_to_disk=False).process_links(
            ["https://www.youtube.com/shorts/abc123"], return_format="json"
        )

        record = result.payload()[0]
        assert record["frontmatter"]["title"] == "YouTube Video"
        assert record["frontmatter"]["tags"] == ["clippings", "youtube"]
        assert record["url"] == "https://www.youtube.com/watch?v=abc123"

    @pytest.mark.asyncio
    async def test_channel_link_is_rendered_as_page(self, make_pipeline, renderer):
        """Test that collection links go through normal extraction."""
        url = "https://www.youtube.com/@somechannel"
        renderer.pages[url] = "Some Channel\nChannel about page"

        result = await make_pipeline(save_to_disk=False).process_links([url])

        assert renderer.calls == [url]
        assert result.updated_lines == [f"- [x] {url}"]


class TestPersistence:
    """Tests for writing documents."""

    @pytest.mark.asyncio
    async def test_document_saved_under_sanitized_title(self, make_pipeline, renderer, tmp_path):
        """Test that documents are named after their title."""
        renderer.pages[POST_URL] = "Rust vs. Go: a take\nBody one"

        result = await make_pipeline().process_links([POST_URL])

        path = tmp_path / "Rust_vs._Go-_a_take.md"
        assert path.exists()
        text = path.read_text(encoding="utf-8")
        assert text.startswith('---\ntitle: "Rust vs. Go: a take"\n')
        assert 'author: ""' in text
        assert result.stats.saved == 1

    @pytest.mark.asyncio
    async def test_save_disabled_writes_nothing(self, make_pipeline, renderer, tmp_path):
        """Test that save_to_disk=False keeps the directory untouched."""
        renderer.pages[POST_URL] = "Post One\nBody one"

        result = await make_pipeline().process_links([POST_URL], save_to_disk=False)

        assert list(tmp_path.iterdir()) == []
        assert result.updated_lines == [f"- [x] {POST_URL}"]
        assert result.stats.saved == 0

    @pytest.mark.asyncio
    async def test_write_failure_is_isolated_to_its_task(self, make_pipeline, renderer):
        """Test that one failed write does not abort the batch."""
        renderer.pages[POST_URL] = "Broken\nBody one"
        renderer.pages[OTHER_URL] = "Fine\nBody two"

        sink = MagicMock()

        async def write(filename, content):
            if filename == "Broken.md":
                raise OSError("No space left on device")
            return None

        sink.write = AsyncMock(side_effect=write)

        result = await make_pipeline(sink=sink).process_links([POST_URL, OTHER_URL], return_format="json")

        assert result.updated_lines == [POST_URL, f"- [x] {OTHER_URL}"]
        assert [record["url"] for record in result.payload()] == [OTHER_URL]
        assert result.stats.failed == 1
        assert result.stats.clipped == 1

    @pytest.mark.asyncio
    async def test_save_without_directory_is_a_config_error(self, renderer):
        """Test that saving requires a clipping directory."""
        pipeline = LinkPipeline(LavaConfig(), renderer_factory=lambda: renderer)

        with pytest.raises(ConfigError):
            await pipeline.process_links([POST_URL], save_to_disk=True)

        assert renderer.start_count == 0


class TestCallbacksAndState:
    """Tests for the per-item callback, idempotence and re-entrancy."""

    @pytest.mark.asyncio
    async def test_item_callback_for_extracted_lines_only(self, make_pipeline, renderer, fetcher):
        """Test that on_item fires once per dispatched line, in order."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        fetcher.errors[OTHER_URL] = RenderError(OTHER_URL, "HTTP 404")
        renderer.errors[OTHER_URL] = RenderError(OTHER_URL, "crash")
        seen = []

        await make_pipeline(save_to_disk=False).process_links(
            ["note", POST_URL, "- [x] https://example.com/x", OTHER_URL],
            on_item=lambda index, line: seen.append((index, line)),
        )

        assert seen == [
            (1, f"- [x] {POST_URL}"),
            (3, f"- [x] {OTHER_URL}"),
        ]

    @pytest.mark.asyncio
    async def test_async_item_callback_is_awaited(self, make_pipeline, renderer):
        """Test that coroutine callbacks are supported."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        callback = AsyncMock()

        await make_pipeline(save_to_disk=False).process_links([POST_URL], on_item=callback)

        callback.assert_awaited_once_with(0, f"- [x] {POST_URL}")

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, make_pipeline, renderer):
        """Test idempotence over an already processed batch."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        pipeline = make_pipeline(save_to_disk=False)

        first = await pipeline.process_links([POST_URL, "https://youtu.be/abc123"])
        second = await pipeline.process_links(first.updated_lines)

        assert second.updated_lines == first.updated_lines
        assert second.records == []
        assert renderer.start_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_batch_rejected(self, make_pipeline, renderer):
        """Test that a pipeline runs one batch at a time."""
        renderer.pages[POST_URL] = "Post One\nBody one"
        gate = asyncio.Event()
        fetch_page = renderer.fetch_rendered_document

        async def slow_fetch(url):
            await gate.wait()
            return await fetch_page(url)

        renderer.fetch_rendered_document = slow_fetch
        pipeline = make_pipeline(save_to_disk=False)

        first = asyncio.create_task(pipeline.process_links([POST_URL]))
        for _ in range(5):
            await asyncio.sleep(0)
        assert pipeline.is_running

        with pytest.raises(PipelineBusyError):
            await pipeline.process_links([OTHER_URL])

        gate.set()
        result = await first
        assert result.updated_lines == [f"- [x] {POST_URL}"]
        assert pipeline.is_running is False


class TestConfiguredTags:
    """Tests for the configured frontmatter tags."""

    @pytest.mark.asyncio
    async def test_article_and_video_use_configured_tags(self, make_pipeline, renderer):
        renderer.pages[POST_URL] = "Post One\nBody one"

        pipeline = make_pipeline(save_to_disk=False, default_tags=["reading"])
        result = await pipeline.process_links([POST_URL, "https://youtu.be/abc123"], return_format="json")

        article, video = result.payload()
        assert article["frontmatter"]["tags"] == ["reading"]
        assert video["frontmatter"]["tags"] == ["reading", "youtube"]


class TestHttpClientWiring:
    """Tests for how a batch gets its HTTP client."""

    @pytest.mark.asyncio
    async def test_injected_client_serves_fetch_strategy(self):
        html = b"<html><head><title>Post One</title></head><body><p>Body one</p></body></html>"
        client = MagicMock()
        client.get = AsyncMock(
            return_value=HttpResponse(
                status_code=200,
                content=html,
                content_type="text/html",
                headers={"Content-Type": "text/html"},
                url=POST_URL,
            )
        )
        client.decode_content = MagicMock(side_effect=lambda response: response.content.decode("utf-8"))
        pipeline = LinkPipeline(LavaConfig(strategy="fetch", save_to_disk=False), http_client=client)

        with patch("lava.pipeline.base.AsyncHttpClient") as client_class:
            result = await pipeline.process_links([POST_URL], return_format="json")

        client_class.assert_not_called()
        assert result.payload()[0]["frontmatter"]["title"] == "Post One"
        client.get.assert_awaited_once_with(POST_URL, timeout=30.0)

    @pytest.mark.asyncio
    async def test_no_client_opened_when_everything_is_injected(self, make_pipeline, renderer):
        renderer.pages[POST_URL] = "Post One\nBody one"

        with patch("lava.pipeline.base.AsyncHttpClient") as client_class:
            await make_pipeline(save_to_disk=False).process_links([POST_URL])

        client_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_client_opened_and_closed(self, fetcher):
        """Test that a missing collaborator gets a per-batch client."""
        fetcher.pages[POST_URL] = "<html><body><p>Body one</p></body></html>"
        config = LavaConfig(strategy="fetch", save_to_disk=False)
        pipeline = LinkPipeline(config, fetcher=fetcher)

        with patch("lava.pipeline.base.AsyncHttpClient") as client_class:
            await pipeline.process_links([POST_URL])

        client_class.assert_called_once_with(
            max_retries=config.network.max_retries,
            user_agent=config.network.user_agent,
            default_timeout=config.network.fetch_timeout,
        )
        client_class.return_value.__aenter__.assert_awaited_once()
        client_class.return_value.__aexit__.assert_awaited_once()
