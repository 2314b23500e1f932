#!/usr/bin/env python3
"""Page header block parsing, shared by the book assembler and the TOC generator.

Every page in the source tree starts with a small jbake-style header:

    type=page
    status=published
    title=Getting Started
    prev=title.html
    next=ch2.html
    ~~~~~~

The block ends at the first line starting with ``~`` (or at end of input).
``next=`` / ``prev=`` values are written with the published ``.html``
extension; they are mapped back to the source extension here so callers
can use them directly as file names.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEADER_TERMINATOR = "~"
HEADER_KEYS = ("title", "next", "prev")
DEFAULT_PAGE_EXT = ".adoc"
DEFAULT_LINK_EXT = ".html"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class PageHeader:
    """Parsed header block of one page."""
    title: Optional[str] = None
    next: Optional[str] = None
    prev: Optional[str] = None


@dataclass
class Page:
    """A page read from the source directory, split into header and body."""
    name: str
    header: PageHeader
    body: list[str]
    body_start: int  # number of lines consumed by the header block

    def body_lineno(self, index: int) -> int:
        """1-based line number in the source file of ``body[index]``."""
        return self.body_start + index + 1


# ---------------------------------------------------------------------------
# Extension mapping
# ---------------------------------------------------------------------------

def to_page_name(value: str, page_ext: str = DEFAULT_PAGE_EXT,
                 link_ext: str = DEFAULT_LINK_EXT) -> str:
    """Map a published link target (``ch1.html``) to its source page (``ch1.adoc``)."""
    if value.endswith(link_ext):
        return value[: -len(link_ext)] + page_ext
    return value


def to_link_name(name: str, page_ext: str = DEFAULT_PAGE_EXT,
                 link_ext: str = DEFAULT_LINK_EXT) -> str:
    """Map a source page name (``ch1.adoc``) to its published name (``ch1.html``)."""
    if name.endswith(page_ext):
        return name[: -len(page_ext)] + link_ext
    return name


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_header(
    lines: list[str],
    page_ext: str = DEFAULT_PAGE_EXT,
    link_ext: str = DEFAULT_LINK_EXT,
) -> tuple[PageHeader, int]:
    """Parse the header block at the top of ``lines``.

    Recognises ``key=value`` lines for ``title``, ``next`` and ``prev``; the
    last occurrence of a key wins. Empty values are treated as absent.

    Returns (header, cursor) where ``cursor`` is the index of the first line
    after the terminator, or ``len(lines)`` if no terminator was found.
    """
    header = PageHeader()
    for i, line in enumerate(lines):
        if line.startswith(HEADER_TERMINATOR):
            return header, i + 1
        key, sep, value = line.partition("=")
        if not sep or key not in HEADER_KEYS:
            continue
        value = value or None
        if value is not None and key in ("next", "prev"):
            value = to_page_name(value, page_ext, link_ext)
        setattr(header, key, value)
    return header, len(lines)


def read_lines(path: Path) -> list[str]:
    """Read a text file as a list of lines without line terminators."""
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()


def load_page(
    source_dir: Path,
    name: str,
    page_ext: str = DEFAULT_PAGE_EXT,
    link_ext: str = DEFAULT_LINK_EXT,
) -> Page:
    """Read ``source_dir/name`` and split it into header and body.

    Raises OSError if the file cannot be read; callers decide how to
    recover.
    """
    lines = read_lines(Path(source_dir) / name)
    header, cursor = parse_header(lines, page_ext, link_ext)
    return Page(name=name, header=header, body=lines[cursor:], body_start=cursor)


def read_title(path: Path) -> Optional[str]:
    """Return the ``title=`` header value of the page at ``path``, if any."""
    header, _ = parse_header(read_lines(path))
    return header.title
