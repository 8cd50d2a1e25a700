"""Page metadata extraction (title, byline, dates, images)."""

import json
import logging
import re
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def collapse_whitespace(value: str) -> str:
    """Single spaces for any run of whitespace, newlines included."""
    return " ".join(value.split())


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if isinstance(tag, Tag) and tag.get("content"):
        value = collapse_whitespace(str(tag["content"]))
        return value or None
    return None


def normalize_date(value: Optional[str]) -> Optional[str]:
    """Reduce ISO timestamps to their date part; other values pass through."""
    if not value:
        return None
    value = value.strip()
    match = _ISO_DATE_RE.match(value)
    return match.group(1) if match else value or None


def site_domain(url: str) -> Optional[str]:
    """Host of a URL without a leading ``www.``."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


class PageMetadataExtractor:
    """
    Extracts document metadata from a parsed page.

    Sources are tried in order: Open Graph and article meta tags, then
    standard meta tags, then JSON-LD, then the markup itself.
    """

    def _jsonld_objects(self, soup: BeautifulSoup) -> list[dict[str, Any]]:
        objects: list[dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except (json.JSONDecodeError, TypeError):
                continue
            items = data if isinstance(data, list) else [data]
            for item in items:
                if not isinstance(item, dict):
                    continue
                objects.append(item)
                graph = item.get("@graph")
                if isinstance(graph, list):
                    objects.extend(obj for obj in graph if isinstance(obj, dict))
        return objects

    def _jsonld_author(self, objects: list[dict[str, Any]]) -> Optional[str]:
        for obj in objects:
            author = obj.get("author")
            if isinstance(author, list):
                names = [a.get("name") if isinstance(a, dict) else a for a in author]
                joined = ", ".join(collapse_whitespace(str(n)) for n in names if n)
                if joined:
                    return joined
            elif isinstance(author, dict) and author.get("name"):
                return collapse_whitespace(str(author["name"])) or None
            elif isinstance(author, str) and author.strip():
                return collapse_whitespace(author)
        return None

    def _jsonld_published(self, objects: list[dict[str, Any]]) -> Optional[str]:
        for obj in objects:
            value = obj.get("datePublished")
            if isinstance(value, str) and value.strip():
                return value
        return None

    def extract_title(self, soup: BeautifulSoup) -> Optional[str]:
        og_title = _meta_content(soup, property="og:title")
        if og_title:
            return og_title

        title_tag = soup.find("title")
        if isinstance(title_tag, Tag) and title_tag.string and title_tag.string.strip():
            return collapse_whitespace(title_tag.string)

        h1 = soup.find("h1")
        if isinstance(h1, Tag):
            return collapse_whitespace(h1.get_text(" ")) or None

        return None

    def extract_author(self, soup: BeautifulSoup, objects: list[dict[str, Any]]) -> Optional[str]:
        author = _meta_content(soup, name="author") or _meta_content(soup, property="article:author")
        if author:
            return author
        return self._jsonld_author(objects)

    def extract_published(self, soup: BeautifulSoup, objects: list[dict[str, Any]]) -> Optional[str]:
        published = (
            _meta_content(soup, property="article:published_time")
            or _meta_content(soup, name="date")
            or self._jsonld_published(objects)
        )
        if not published:
            time_tag = soup.find("time", attrs={"datetime": True})
            if isinstance(time_tag, Tag):
                published = str(time_tag["datetime"])
        return normalize_date(published)

    def extract_description(self, soup: BeautifulSoup) -> Optional[str]:
        return _meta_content(soup, property="og:description") or _meta_content(soup, name="description")

    def extract_image(self, soup: BeautifulSoup, url: str) -> Optional[str]:
        image = _meta_content(soup, property="og:image") or _meta_content(soup, name="twitter:image")
        return urljoin(url, image) if image else None

    def extract_favicon(self, soup: BeautifulSoup, url: str) -> Optional[str]:
        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            rels = [r.lower() for r in (rel if isinstance(rel, list) else [rel])]
            if "icon" in rels:
                return urljoin(url, str(link["href"]))
        return urljoin(url, "/favicon.ico") if site_domain(url) else None

    def extract(self, soup: BeautifulSoup, url: str) -> dict[str, Optional[str]]:
        """
        Extract all metadata fields.

        Args:
            soup: Parsed page
            url: Final page URL (for resolving image and icon links)

        Returns:
            Dict with title, author, published, description, image,
            favicon and domain keys; missing values are None
        """
        objects = self._jsonld_objects(soup)
        metadata = {
            "title": self.extract_title(soup),
            "author": self.extract_author(soup, objects),
            "published": self.extract_published(soup, objects),
            "description": self.extract_description(soup),
            "image": self.extract_image(soup, url),
            "favicon": self.extract_favicon(soup, url),
            "domain": site_domain(url),
        }
        logger.debug(f"Extracted metadata for {url}: title={metadata['title']!r}")
        return metadata
