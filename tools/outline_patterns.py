#!/usr/bin/env python3
"""Line classification helpers for section-outline extraction.

Pure predicates over page lines:
  - anchor tags (``[[identifier]]``) and their "big" / "small" / free-form class
  - configured ignore-tag and chapter-title patterns (whole-string matches)
  - section underlines (``----``, ``~~~~``, ``^^^^``) with a length tolerance

Nothing here prints; callers turn a near-miss underline into a diagnostic.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Amount of slop allowed in section-title underlines.
HEADER_SLOP = 5

# A title line must be at least this long to be considered at all.
MIN_TITLE_LENGTH = 3

# "-" underlines shorter than this are treated as text (list rules, etc.).
MIN_DASH_UNDERLINE = 5

# Underline character per outline depth.
UNDERLINE_CHARS = {1: "-", 2: "~", 3: "^"}

DEFAULT_CHAPTER_PATTERNS = (r"[0-9]+\s.*",)

TAG_RE = re.compile(r"\[\[([-a-zA-Z0-9]+)]]")
# Anchor naming a whole section (e.g. GSDEV00001).
BIG_TAG_RE = re.compile(r"[A-Z0-9]+")
# Anchor naming a sub-point inside a section.
SMALL_TAG_RE = re.compile(r"[a-zA-Z0-9]+")

EXACT = "exact"
NEAR = "near"


# ---------------------------------------------------------------------------
# Pattern lists
# ---------------------------------------------------------------------------

def split_patterns(value) -> list[str]:
    """Normalise a pattern list given as a list or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [p.strip() for p in value if p and p.strip()]


def compile_patterns(patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    """Compile regex strings; raises re.error on an invalid pattern."""
    return tuple(re.compile(p) for p in patterns)


def matches_any(text: str, patterns: Iterable[re.Pattern]) -> bool:
    return any(p.fullmatch(text) for p in patterns)


def ignore_tag(tag: str, patterns: Iterable[re.Pattern]) -> bool:
    """Should this anchor tag be ignored?"""
    return matches_any(tag, patterns)


def is_chapter(title: str, patterns: Iterable[re.Pattern]) -> bool:
    """Is the depth-1 section title a chapter title?"""
    return matches_any(title, patterns)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

def is_tag_line(line: str) -> bool:
    return line.startswith("[[") and line.endswith("]]")


def find_tags(line: str) -> list[str]:
    """Return every anchor identifier on a tag line, in order."""
    return TAG_RE.findall(line)


def tag_kind(tag: str) -> str:
    """Classify an anchor identifier as ``big``, ``small`` or ``link``."""
    if BIG_TAG_RE.fullmatch(tag):
        return "big"
    if SMALL_TAG_RE.fullmatch(tag):
        return "small"
    return "link"


# ---------------------------------------------------------------------------
# Underlines
# ---------------------------------------------------------------------------

def underline_match(line: str, hchar: str, length: int,
                    slop: int = HEADER_SLOP) -> Optional[str]:
    """Is ``line`` an underline of ``hchar`` for a title of ``length`` chars?

    Returns ``EXACT`` for a same-length underline, ``NEAR`` when the length
    differs by at most ``slop`` (only for titles longer than ``slop``), and
    None otherwise.
    """
    if not line or line != hchar * len(line):
        return None
    if len(line) == length:
        return EXACT
    if length > slop and abs(len(line) - length) <= slop:
        return NEAR
    return None


def header_line(hchar: str, length: int) -> str:
    """Return an underline of ``length`` copies of ``hchar``."""
    return hchar * length
