"""Scanning Markdown notes for links."""

import re
from dataclasses import dataclass
from typing import Optional

from .classifier import is_blocked_domain, is_valid_http_link

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\((https?://[^\s)]+)\)")
_BARE_URL_RE = re.compile(r"(https?://[^\s]+)")


@dataclass(frozen=True)
class FoundLink:
    """A link found in a Markdown document."""

    raw: str
    url: str
    line: int  # 1-based


def extract_links(content: str, blocked_domains: Optional[list[str]] = None) -> list[FoundLink]:
    """
    Find every markdown link target and bare URL in a document.

    A URL already found as a markdown link target is not reported again
    as a bare URL on the same line.
    """
    links: list[FoundLink] = []

    for number, line in enumerate(content.split("\n"), start=1):
        seen: set[str] = set()

        for match in _MARKDOWN_LINK_RE.finditer(line):
            url = match.group(2)
            if is_valid_http_link(url) and not is_blocked_domain(url, blocked_domains):
                links.append(FoundLink(raw=match.group(0), url=url, line=number))
                seen.add(url)

        # Bare URLs, minus the ones captured above (including "url)" tails)
        for match in _BARE_URL_RE.finditer(line):
            url = match.group(1)
            if url in seen or url.rstrip(")") in seen:
                continue
            if is_valid_http_link(url) and not is_blocked_domain(url, blocked_domains):
                links.append(FoundLink(raw=url, url=url, line=number))
                seen.add(url)

    return links
