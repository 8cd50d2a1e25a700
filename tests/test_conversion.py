"""Tests for article extraction."""

import pytest
from bs4 import BeautifulSoup
from lava.conversion import ArticleExtractor, HtmlToMarkdown, MainContentExtractor, PageMetadataExtractor
from lava.conversion.metadata import normalize_date, site_domain
from lava.documents import build_article

ARTICLE_HTML = """
<html>
<head>
  <title>Fallback Title</title>
  <meta property="og:title" content="Understanding Event Loops">
  <meta name="author" content="Ada Lovelace">
  <meta property="article:published_time" content="2024-03-05T10:00:00Z">
  <meta name="description" content="A walk through cooperative scheduling.">
  <meta property="og:image" content="/images/cover.jpg">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/blog">Blog</a></nav>
  <article>
    <h1>Understanding Event Loops</h1>
    <p>An event loop runs one callback at a time and waits for I/O between them,
       which keeps a single thread busy without ever blocking on the network.</p>
    <p>See <a href="/docs/asyncio">the asyncio docs</a> for details.</p>
    <img src="img/loop.png" alt="Loop diagram">
    <script>trackPageView();</script>
  </article>
  <footer>Copyright 2024</footer>
</body>
</html>
"""


class TestArticleExtractor:
    """Tests for the default content extractor."""

    @pytest.fixture
    def result(self):
        return ArticleExtractor().extract(ARTICLE_HTML, "https://www.example.com/blog/event-loops")

    def test_metadata(self, result):
        assert result is not None
        assert result.title == "Understanding Event Loops"
        assert result.author == "Ada Lovelace"
        assert result.published == "2024-03-05"
        assert result.description == "A walk through cooperative scheduling."
        assert result.image == "https://www.example.com/images/cover.jpg"
        assert result.favicon == "https://www.example.com/favicon.ico"
        assert result.domain == "example.com"

    def test_content(self, result):
        assert "An event loop runs one callback at a time" in result.content
        assert "[the asyncio docs](https://www.example.com/docs/asyncio)" in result.content

    def test_chrome_and_scripts_removed(self, result):
        assert "Copyright 2024" not in result.content
        assert "trackPageView" not in result.content
        assert "[Blog]" not in result.content

    def test_title_heading_not_repeated(self, result):
        assert "# Understanding Event Loops" not in result.content

    def test_image_paths_left_relative(self, result):
        assert "![Loop diagram](img/loop.png)" in result.content

    @pytest.mark.parametrize(
        "html",
        [
            "",
            "   ",
            "<html><head><title>Empty</title></head><body></body></html>",
            "<html><body><nav>Only navigation</nav></body></html>",
        ],
    )
    def test_empty_body_is_failure(self, html):
        assert ArticleExtractor().extract(html, "https://example.com/") is None


class TestPageMetadataExtractor:
    """Tests for metadata sources and fallbacks."""

    def _extract(self, html, url="https://example.com/post"):
        return PageMetadataExtractor().extract(BeautifulSoup(html, "html.parser"), url)

    def test_title_fallbacks(self):
        assert self._extract("<title> Page </title><h1>Heading</h1>")["title"] == "Page"
        assert self._extract("<h1>Heading <em>here</em></h1>")["title"] == "Heading here"
        assert self._extract("<p>nothing</p>")["title"] is None

    def test_json_ld(self):
        html = """
        <script type="application/ld+json">
        {"@context": "https://schema.org", "@graph": [
          {"@type": "NewsArticle", "author": [{"name": "Grace Hopper"}, {"name": "Alan Kay"}],
           "datePublished": "2023-11-02T08:00:00+01:00"}
        ]}
        </script>
        """
        metadata = self._extract(html)
        assert metadata["author"] == "Grace Hopper, Alan Kay"
        assert metadata["published"] == "2023-11-02"

    def test_broken_json_ld_ignored(self):
        metadata = self._extract('<script type="application/ld+json">{not json</script>')
        assert metadata["author"] is None

    def test_time_element_and_icon_link(self):
        html = '<link rel="shortcut icon" href="/static/icon.png"><time datetime="2022-01-09">Jan 9</time>'
        metadata = self._extract(html)
        assert metadata["published"] == "2022-01-09"
        assert metadata["favicon"] == "https://example.com/static/icon.png"
    def test_multiline_values_collapsed(self):
        html = (
            "<title>\n  Understanding Event Loops\n  | Example Blog\n</title>"
            '<meta name="description" content="A walk through\n   cooperative scheduling.">'
        )
        metadata = self._extract(html)
        assert metadata["title"] == "Understanding Event Loops | Example Blog"
        assert metadata["description"] == "A walk through cooperative scheduling."


    def test_helpers(self):
        assert normalize_date("2024-03-05T10:00:00Z") == "2024-03-05"
        assert normalize_date("March 5, 2024") == "March 5, 2024"
        assert normalize_date("") is None
        assert site_domain("https://www.example.com/a") == "example.com"
        assert site_domain("https://blog.example.com/a") == "blog.example.com"


class TestMainContentExtractor:
    """Tests for content isolation."""

    def test_prefers_article_with_enough_text(self):
        body = "word " * 40
        html = f"<body><div>Sidebar junk</div><article><p>{body}</p></article></body>"

        content = MainContentExtractor().extract(html, "https://example.com/")

        assert "Sidebar junk" not in content
        assert "word" in content

    def test_falls_back_to_body(self):
        html = "<body><p>Short page.</p></body>"
        assert "Short page." in MainContentExtractor().extract(html, "https://example.com/")


class TestHtmlToMarkdown:
    """Tests for Markdown conversion."""

    def test_relative_links_resolved_images_kept(self):
        html = '<p><a href="../about">About</a> <img src="pic.png" alt="Pic"></p>'

        markdown = HtmlToMarkdown().convert(html, "https://example.com/blog/post")

        assert "[About](https://example.com/about)" in markdown
        assert "![Pic](pic.png)" in markdown

    def test_code_blocks_fenced(self):
        markdown = HtmlToMarkdown().convert("<pre><code>print(1)</code></pre>", "https://example.com/")
        assert "```" in markdown
        assert "print(1)" in markdown

    def test_linked_image_keeps_relative_source(self):
        html = '<p><a href="/full"><img src="img/pic.png" alt="Pic"></a></p>'

        markdown = HtmlToMarkdown().convert(html, "https://example.com/blog/post")

        assert markdown == "[![Pic](img/pic.png)](https://example.com/full)"


class TestLinkedImages:
    """Tests for images wrapped in links, end to end."""

    def test_directory_heuristic_applies_inside_links(self):
        html = '<html><body><p><a href="/full"><img src="img/pic.png" alt="Pic"></a></p></body></html>'
        url = "https://example.com/blog/post"

        document = build_article(ArticleExtractor().extract(html, url), url)

        assert document.body == "[![Pic](https://example.com/blog/post/img/pic.png)](https://example.com/full)"
