#!/usr/bin/env python3
"""TOC Generation: build a table-of-contents page for a jbake asciidoc tree.

Follows the ``next=`` links from the title page and scans each page body
for section titles:

  Title           depth 1  -> chapter (matches a chapter pattern) or "* " item
  -----
  Subtitle        depth 2  -> "** " item
  ~~~~~~~~
  Subsubtitle     depth 3  -> "*** " item
  ^^^^^^^^^^^

Each entry links back into its page through the nearest preceding anchor
tag (``[[GSDEV00001]]``, ``[[installing]]``). Underlines whose length is
close to, but not exactly, the title length are accepted with a warning.

Pages never reached by the chain are reported as MISSED.

Usage:
  python tools/generate_toc.py \\
    --source-dir src/main/jbake/content \\
    [--start-page title.adoc] [--title "My Guide"] [--toc-file toc.adoc] \\
    [--chapter-patterns "[0-9]+\\s.*,Appendix\\s.*"] \\
    [--ignore-tag-patterns "sthref[0-9]+"] \\
    [--config docbuild.yaml] [--debug]
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from build_config import BuildConfig, ConfigError, add_config_arguments, config_from_args
from outline_patterns import (
    MIN_DASH_UNDERLINE,
    MIN_TITLE_LENGTH,
    NEAR,
    UNDERLINE_CHARS,
    find_tags,
    header_line,
    ignore_tag,
    is_chapter,
    is_tag_line,
    tag_kind,
    underline_match,
)
from page_header import Page, to_link_name
from page_walk_lib import (
    ChainCycleError,
    OutputDirError,
    WalkReport,
    ensure_output_dir,
    process_unreached,
    resolve_title,
    walk_chain,
)

BULLETS = {1: "*", 2: "**", 3: "***"}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class OutlineEntry:
    """One section title found in a page."""
    depth: int                # 1, 2 or 3
    title: str
    anchor: str               # "" if the section has no usable anchor
    target_file: str          # published page name, e.g. ch1.html
    chapter: bool = False     # depth-1 title matching a chapter pattern
    link_tag: str = ""        # free-form tag re-emitted before a chapter
    lineno: int = 0           # source line of the title, for the debug dump

    @property
    def link(self) -> str:
        return f"link:{self.target_file}#{self.anchor}[{self.title}]"


@dataclass
class AnchorState:
    """Anchor tags seen since the last section title in a page."""
    big: str = ""
    small: str = ""
    link: str = ""
    seen_content: bool = False

    def note_tag(self, tag: str) -> None:
        kind = tag_kind(tag)
        if kind == "big":
            self.big = tag
            self.seen_content = False
        elif kind == "small":
            self.small = tag
            # prefer the anchor closest to the heading
            if self.seen_content:
                self.big = ""
        else:
            self.link = tag
            if not self.big and not self.small:
                self.big = tag

    def anchor(self) -> str:
        return self.big or self.small


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------

def _underline_depth(line: str, last_line: str, page: Page, index: int,
                     config: BuildConfig, report: WalkReport) -> Optional[int]:
    """Depth of the section whose title is ``last_line``, or None."""
    for depth in (1, 2, 3):
        if depth == 1 and len(line) < MIN_DASH_UNDERLINE:
            continue
        match = underline_match(line, UNDERLINE_CHARS[depth], len(last_line),
                                config.header_slop)
        if match is None:
            continue
        if match == NEAR:
            report.warn(f"{page.name}:{page.body_lineno(index)}: header line length mismatch:\n"
                        f"{last_line}\n{line}")
        return depth
    return None


def scan_outline(page: Page, config: BuildConfig, report: WalkReport,
                 chapter_res=None, ignore_res=None) -> list[OutlineEntry]:
    """Extract the section outline of one page body, in source order."""
    chapter_res = config.chapter_res if chapter_res is None else chapter_res
    ignore_res = config.ignore_tag_res if ignore_res is None else ignore_res
    target = to_link_name(page.name, config.page_ext, config.link_ext)

    entries: list[OutlineEntry] = []
    anchors = AnchorState()
    last_line = ""

    for i, line in enumerate(page.body):
        if is_tag_line(line):
            for tag in find_tags(line):
                if not ignore_tag(tag, ignore_res):
                    anchors.note_tag(tag)
        elif len(last_line) < MIN_TITLE_LENGTH:
            pass
        else:
            depth = _underline_depth(line, last_line, page, i, config, report)
            if depth is not None:
                entries.append(OutlineEntry(
                    depth=depth,
                    title=last_line,
                    anchor=anchors.anchor(),
                    target_file=target,
                    chapter=depth == 1 and is_chapter(last_line, chapter_res),
                    link_tag=anchors.link,
                    lineno=page.body_lineno(i) - 1,
                ))
                anchors = AnchorState()
            elif line:
                anchors.seen_content = True
        last_line = line

    return entries


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_toc_header(title: str, start_page: str, config: BuildConfig) -> list[str]:
    """Header block and headings at the top of the TOC page."""
    return [
        "type=page",
        "status=published",
        f"title={title}",
        f"next={to_link_name(start_page, config.page_ext, config.link_ext)}",
        "~~~~~~",
        title,
        header_line("=", len(title)),
        "",
        "[[contents]]",
        "Contents",
        "--------",
        "",
    ]


def render_entry(entry: OutlineEntry) -> list[str]:
    if entry.chapter:
        lines = [""]
        if entry.link_tag:
            lines.append(f"[[{entry.link_tag}]]")
        link = entry.link
        lines.extend([link, header_line("~", len(link)), ""])
        return lines
    return [f"{BULLETS[entry.depth]} {entry.link}"]


def render_outline(entries: list[OutlineEntry]) -> list[str]:
    lines: list[str] = []
    for entry in entries:
        lines.extend(render_entry(entry))
    return lines


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------

def generate_toc(config: BuildConfig, report: WalkReport) -> list[OutlineEntry]:
    """Walk the page chain and write the TOC page. Returns all entries.

    Raises ConfigError if no title can be determined, OutputDirError if the
    output directory is unusable and ChainCycleError on a ``next`` cycle
    (the TOC written so far is kept).
    """
    source_dir = Path(config.source_dir)
    output_dir = ensure_output_dir(config.output_dir)

    title = resolve_title(config.title, source_dir / config.start_page)
    if not title:
        raise ConfigError(f"no title configured and none found in {source_dir / config.start_page}")

    chapter_res = config.chapter_res
    ignore_res = config.ignore_tag_res
    entries: list[OutlineEntry] = []

    with open(output_dir / config.toc_file, "w", encoding="utf-8") as toc:
        for line in render_toc_header(title, config.start_page, config):
            toc.write(line + "\n")

        def visit(page: Page) -> None:
            found = scan_outline(page, config, report, chapter_res, ignore_res)
            report.debug(f"{page.name}: {len(found)} section(s)")
            for entry in found:
                report.debug(f"{page.name}:{entry.lineno}: depth {entry.depth} {entry.title!r}")
            for line in render_outline(found):
                toc.write(line + "\n")
            entries.extend(found)

        walk_chain(source_dir, config.start_page, visit, report,
                   config.page_ext, config.link_ext)

    process_unreached(source_dir, output_dir, report, config.unreached,
                      config.skip_unreached, config.page_ext)
    return entries


def run_toc(config: BuildConfig, report: WalkReport | None = None) -> int:
    """Execute TOC generation. Returns exit code (0=success, 1=fatal)."""
    report = report or WalkReport(debug_enabled=config.debug)
    for line in config.describe():
        report.debug(line)

    print(f"Generating TOC from: {config.source_dir}")
    try:
        entries = generate_toc(config, report)
    except OutputDirError as e:
        report.error(str(e))
        return 1
    except ChainCycleError:
        print(report.summary())
        return 1

    chapters = sum(1 for e in entries if e.chapter)
    print(f"  {len(entries)} entries ({chapters} chapters) in "
          f"{Path(config.output_dir) / config.toc_file}")
    print()
    print(report.summary())
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate a table-of-contents page for a jbake asciidoc tree"
    )
    add_config_arguments(parser)
    parser.add_argument("--toc-file", dest="toc_file", default=None,
                        help="Name of the TOC page (default: toc.adoc)")
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args, "toc")
        return run_toc(config)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
