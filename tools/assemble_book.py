#!/usr/bin/env python3
"""
Book Assembly: build a single asciidoc book from a jbake page tree.

Follows the ``next=`` links from the start page and, for every page:
- writes the page body (header block and redundant page title removed)
  to the output directory under the page's own name
- adds an ``include::<page>[]`` line to the book file, unless the page
  is in the exclude list (excluded pages are still walked for their links)

Files the chain never reaches are copied unchanged to the output directory
(they are usually include fragments, images or attribute files), or only
reported with ``--unreached warn``.

Usage:
    python tools/assemble_book.py \\
        --source-dir src/main/jbake/content \\
        --output-dir target/book \\
        [--start-page title.adoc] [--title "My Guide"] \\
        [--exclude toc.adoc,cpyr.adoc] [--attributes-file book-attributes.conf] \\
        [--config docbuild.yaml] [--debug]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from build_config import BuildConfig, ConfigError, add_config_arguments, config_from_args
from page_header import Page
from page_walk_lib import (
    ChainCycleError,
    OutputDirError,
    WalkReport,
    ensure_output_dir,
    process_unreached,
    resolve_title,
    walk_chain,
)


# ---------------------------------------------------------------------------
# Page title stripping
# ---------------------------------------------------------------------------

def _is_include(line: str) -> bool:
    return line.startswith("include::") and line.endswith("[]")


def _leading_title_length(lines: list[str], i: int) -> int:
    """Number of lines forming a page title at ``lines[i]`` (0, 1 or 2).

    A page title is either a one-line ``= Title`` or a two-line setext
    title underlined with ``=`` characters of the same length.
    """
    line = lines[i]
    if line.startswith("= "):
        return 1
    if i + 1 < len(lines):
        nline = lines[i + 1]
        if nline.startswith("=") and len(nline) == len(line):
            return 2
    return 0


def _title_text(line: str) -> str:
    if line.startswith("= "):
        return line[2:].strip()
    return line.strip()


def strip_page_title(body: list[str]) -> list[str]:
    """Remove the redundant page title from the start of a page body.

    Leading empty lines are dropped and leading ``include::...[]`` lines are
    kept. The first content line is dropped if it is a page title. A title
    right after it is dropped too, but only when it repeats the same text
    (``= Guide`` then ``Guide``/``=====``). Everything else is copied
    unchanged.
    """
    out: list[str] = []
    title = None
    i = 0
    while i < len(body):
        line = body[i]
        if not line:
            i += 1
            continue
        if _is_include(line):
            out.append(line)
            i += 1
            continue
        skip = _leading_title_length(body, i)
        if skip and (title is None or _title_text(line) == title):
            title = _title_text(line)
            i += skip
            continue
        break
    out.extend(body[i:])
    return out


# ---------------------------------------------------------------------------
# Book file
# ---------------------------------------------------------------------------

def read_attributes(path) -> list[str]:
    """Lines of the optional book attributes file ([] if it does not exist)."""
    if path is None or not Path(path).is_file():
        return []
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()


def book_preamble(title: str, attributes: list[str]) -> list[str]:
    return [f"= {title}", *attributes, ""]


def include_lines(page_name: str) -> list[str]:
    return [f"include::{page_name}[]", ""]


def write_lines(path: Path, lines: list[str]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


# ---------------------------------------------------------------------------
# Main pipeline
# ---------------------------------------------------------------------------

def assemble_book(config: BuildConfig, report: WalkReport) -> list[str]:
    """Walk the page chain and write the book and per-page files.

    Returns the list of pages included in the book, in order. Raises
    ConfigError if no title can be determined, OutputDirError if the output
    directory is unusable and ChainCycleError on a ``next`` cycle (the book
    written so far is kept).
    """
    source_dir = Path(config.source_dir)
    output_dir = ensure_output_dir(config.output_dir)

    title = resolve_title(config.title, source_dir / config.start_page)
    if not title:
        raise ConfigError(f"no title configured and none found in {source_dir / config.start_page}")

    included: list[str] = []
    book_path = output_dir / config.book_file

    with open(book_path, "w", encoding="utf-8") as book:
        for line in book_preamble(title, read_attributes(config.attributes_file)):
            book.write(line + "\n")

        def visit(page: Page) -> None:
            if page.name in config.exclude:
                report.debug(f"excluded from book: {page.name}")
                return
            for line in include_lines(page.name):
                book.write(line + "\n")
            included.append(page.name)
            write_lines(output_dir / page.name, strip_page_title(page.body))

        walk_chain(source_dir, config.start_page, visit, report,
                   config.page_ext, config.link_ext)

    process_unreached(source_dir, output_dir, report, config.unreached,
                      config.skip_unreached, config.page_ext)
    return included


def run_book(config: BuildConfig, report: WalkReport | None = None) -> int:
    """Execute book assembly. Returns exit code (0=success, 1=fatal)."""
    report = report or WalkReport(debug_enabled=config.debug)
    for line in config.describe():
        report.debug(line)

    print(f"Assembling book from: {config.source_dir}")
    try:
        included = assemble_book(config, report)
    except OutputDirError as e:
        report.error(str(e))
        return 1
    except ChainCycleError:
        print(report.summary())
        return 1

    print(f"  Included {len(included)} page(s) in {Path(config.output_dir) / config.book_file}")
    print()
    print(report.summary())
    return 0


def add_book_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--book-file", dest="book_file", default=None,
                        help="Name of the book file (default: book.adoc)")
    parser.add_argument("--exclude", default=None,
                        help="Comma-separated pages to leave out of the book (default: toc.adoc)")
    parser.add_argument("--attributes-file", dest="attributes_file", default=None,
                        help="File whose lines follow the book title (default: book-attributes.conf)")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Assemble an asciidoc book from a jbake page tree by following next links"
    )
    add_config_arguments(parser)
    add_book_arguments(parser)
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args, "book")
        return run_book(config)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
