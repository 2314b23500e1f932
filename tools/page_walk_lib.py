#!/usr/bin/env python3
"""Shared traversal engine for the book assembler and the TOC generator.

Both tools follow ``next=`` links from a start page, one page at a time:

  - each page is read and its header parsed (tools/page_header.py)
  - the page is handed to a per-tool visitor callback
  - the page's declared ``prev=`` is checked against the page that linked to it
  - a ``next`` link back to an already visited page stops the run

After the walk, the visited set is compared with the source directory
listing to find files the chain never reached.

Diagnostics are printed as they happen (stderr, ``ERROR:`` / ``WARNING:``
prefixes) and recorded on a ``WalkReport``.
"""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional

from page_header import Page, load_page, read_title


class ChainCycleError(RuntimeError):
    """A ``next`` link points back to a page already visited."""


class OutputDirError(OSError):
    """The output directory cannot be created or is not a directory."""


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------

class WalkReport:
    """Diagnostics and traversal results of one run."""

    def __init__(self, debug_enabled: bool = False, stream=None):
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.visited: list[str] = []
        self.unreadable: list[str] = []
        self.missed: list[str] = []
        self.copied: list[str] = []
        self.debug_enabled = debug_enabled
        self._stream = stream

    @property
    def stream(self):
        return self._stream if self._stream is not None else sys.stderr

    def error(self, msg: str):
        self.errors.append(msg)
        print(f"ERROR: {msg}", file=self.stream)

    def warn(self, msg: str):
        self.warnings.append(msg)
        print(f"WARNING: {msg}", file=self.stream)

    def debug(self, msg: str):
        if self.debug_enabled:
            print(f"DEBUG: {msg}", file=self.stream)

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        lines = [f"Pages visited: {len(self.visited)}"]
        if self.copied:
            lines.append(f"Unreached files copied: {len(self.copied)}")
        if self.missed:
            lines.append(f"Unreached pages: {len(self.missed)}")
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for e in self.errors:
                lines.append(f"  ✗ {e}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  ⚠ {w}")
        if not self.errors and not self.warnings:
            lines.append("✓ No problems found")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Setup helpers
# ---------------------------------------------------------------------------

def ensure_output_dir(path: Path) -> Path:
    """Create ``path`` if needed; raise OutputDirError if it is unusable."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        raise OutputDirError(f"{path} is not a directory") from e
    except OSError as e:
        raise OutputDirError(f"can't create output directory {path}: {e}") from e
    if not path.is_dir():
        raise OutputDirError(f"{path} is not a directory")
    return path


def resolve_title(configured: Optional[str], start_path: Path) -> Optional[str]:
    """Return the configured title, else the start page's ``title=`` header."""
    if configured:
        return configured
    try:
        return read_title(start_path)
    except (OSError, UnicodeDecodeError):
        return None


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def walk_chain(
    source_dir: Path,
    start_page: str,
    visit: Callable[[Page], None],
    report: WalkReport,
    page_ext: str = ".adoc",
    link_ext: str = ".html",
) -> list[str]:
    """Follow ``next`` links from ``start_page``, calling ``visit`` per page.

    An unreadable page is reported and ends the chain there, since its
    ``next`` link is unknown. A ``next`` link to an already visited page
    raises ChainCycleError.

    Returns the visited page names in traversal order (also recorded on
    ``report.visited``).
    """
    seen: set[str] = set()
    current: Optional[str] = start_page
    origin: Optional[str] = None

    while current is not None:
        if current in seen:
            msg = f"next cycle: {current} revisited from {origin}"
            report.error(msg)
            raise ChainCycleError(msg)
        seen.add(current)
        report.visited.append(current)

        path = Path(source_dir) / current
        try:
            page = load_page(source_dir, current, page_ext, link_ext)
        except (OSError, UnicodeDecodeError):
            report.unreadable.append(current)
            report.warn(f"{path}: can not open")
            break

        check_prev_link(page, origin, report)
        visit(page)

        origin = current
        current = page.header.next

    return list(report.visited)


def check_prev_link(page: Page, origin: Optional[str], report: WalkReport) -> bool:
    """Check that ``page`` declares ``origin`` as its ``prev`` page.

    The start page (no origin) is not checked. Returns True if consistent.
    """
    if origin is None:
        return True
    prev = page.header.prev
    if prev is None:
        report.warn(f"prev missing in {page.name}, should be {origin}")
        return False
    if prev != origin:
        report.error(f"prev wrong in {page.name} - is {prev}, should be {origin}")
        return False
    return True


def find_unreached(
    source_dir: Path,
    visited,
    skip_names=(),
    page_ext: Optional[str] = None,
) -> list[str]:
    """List source directory entries never reached by the walk.

    Directories and ``skip_names`` are left out; with ``page_ext`` only
    names with that extension are considered. Sorted, each name once.
    """
    visited = set(visited)
    skip = set(skip_names)
    names = []
    for name in sorted(set(os.listdir(source_dir))):
        if name in visited or name in skip:
            continue
        if page_ext is not None and not name.endswith(page_ext):
            continue
        if (Path(source_dir) / name).is_dir():
            continue
        names.append(name)
    return names


def process_unreached(
    source_dir: Path,
    output_dir: Path,
    report: WalkReport,
    policy: str = "warn",
    skip_names=(),
    page_ext: str = ".adoc",
) -> list[str]:
    """Handle source files the walk did not reach.

    ``copy``: every unreached file is copied byte-for-byte to ``output_dir``
    (they are usually include fragments or shared assets). A file that
    can not be copied is reported and skipped.
    ``warn``: unreached page files are reported as MISSED.

    Returns the names handled.
    """
    if policy == "copy":
        names = find_unreached(source_dir, report.visited, skip_names)
        if Path(source_dir).resolve() == Path(output_dir).resolve():
            # already in place
            return names
        for name in names:
            try:
                shutil.copyfile(Path(source_dir) / name, Path(output_dir) / name)
            except OSError as e:
                report.warn(f"{name}: can not copy: {e}")
                continue
            report.copied.append(name)
            print(f"  copied unreached file: {name}")
    else:
        names = find_unreached(source_dir, report.visited, skip_names, page_ext=page_ext)
        for name in names:
            report.missed.append(name)
            report.warn(f"MISSED: {name}")
    return names
