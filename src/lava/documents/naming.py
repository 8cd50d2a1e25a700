"""Cross-platform safe filenames for clipped documents."""

import re

MAX_FILENAME_LENGTH = 200
DEFAULT_FILENAME = "Untitled"

_DASH_LIKE_RE = re.compile(r"[—–−]")
_RESERVED_RE = re.compile(r'[:/\\?%*"|<>]')
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E]")


def sanitize_filename(name: str) -> str:
    """
    Turn a document title into a filename stem.

    Dash-like characters and reserved path characters become ``-``,
    anything outside printable ASCII is dropped, spaces become ``_``.
    The result never starts with a dot and is at most 200 characters.

    Args:
        name: Document title

    Returns:
        Filename stem without extension; ``Untitled`` if nothing is left

    Example:
        >>> sanitize_filename("Rust vs. Go: a 2024 take")
        'Rust_vs._Go-_a_2024_take'
    """
    result = _DASH_LIKE_RE.sub("-", name)
    result = _RESERVED_RE.sub("-", result)
    result = _NON_PRINTABLE_RE.sub("", result)
    result = re.sub(r"\s+", "_", result)
    result = re.sub(r"-+", "-", result)
    result = re.sub(r"_+", "_", result)
    result = result.strip().strip("-_ ")
    result = result.lstrip(".")
    result = result[:MAX_FILENAME_LENGTH].strip()
    return result or DEFAULT_FILENAME


def document_filename(title: str) -> str:
    """Filename (with ``.md``) for a document title."""
    return f"{sanitize_filename(title)}.md"
