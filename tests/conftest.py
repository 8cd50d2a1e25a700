"""Shared fakes for pipeline, watcher and server tests.

Nothing here touches the network or launches a browser.
"""

from typing import Optional
from unittest.mock import AsyncMock

import pytest
from lava.exceptions import RenderError
from lava.models.config import LavaConfig
from lava.models.results import ExtractionResult
from lava.pipeline.base import LinkPipeline
from lava.rendering.protocols import RenderedPage


class FakePageSource:
    """
    Stands in for both retrieval strategies.

    ``pages`` maps URL to "html"; ``errors`` maps URL to the exception to
    raise. Unknown URLs fail like a 404.
    """

    def __init__(self) -> None:
        self.pages: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.redirects: dict[str, str] = {}
        self.calls: list[str] = []
        self.start_count = 0
        self.close_count = 0
        self.start_error: Optional[Exception] = None

    async def start(self) -> None:
        self.start_count += 1
        if self.start_error is not None:
            raise self.start_error

    async def close(self) -> None:
        self.close_count += 1

    async def fetch_rendered_document(self, url: str) -> RenderedPage:
        self.calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url in self.pages:
            return RenderedPage(html=self.pages[url], final_url=self.redirects.get(url, url))
        raise RenderError(url, "HTTP 404")


class FakeExtractor:
    """
    Treats the page "html" as ``title\\nbody``.

    A page with an empty body counts as an extraction failure.
    """

    def extract(self, html: str, url: str) -> Optional[ExtractionResult]:
        title, _, body = html.partition("\n")
        if not body.strip():
            return None
        return ExtractionResult(content=body, title=title or None, domain="example.com")


@pytest.fixture
def renderer():
    return FakePageSource()


@pytest.fixture
def fetcher():
    return FakePageSource()


@pytest.fixture
def title_lookup():
    return AsyncMock(return_value="Never Gonna Give You Up")


@pytest.fixture
def make_pipeline(tmp_path, renderer, fetcher, title_lookup):
    """Build a LinkPipeline wired to the fakes, saving into tmp_path."""

    def factory(sink=None, **config_kwargs) -> LinkPipeline:
        config_kwargs.setdefault("clipping_dir", tmp_path)
        config = LavaConfig(**config_kwargs)
        return LinkPipeline(
            config,
            extractor=FakeExtractor(),
            fetcher=fetcher,
            renderer_factory=lambda: renderer,
            title_lookup=title_lookup,
            sink=sink,
        )

    return factory
