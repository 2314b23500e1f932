#!/usr/bin/env python3
"""Tests for the shared next-link traversal engine (tools/page_walk_lib.py)."""

import io
import os
import sys
from pathlib import Path

import pytest

# Ensure tools/ is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "tools"))

from page_walk_lib import (
    ChainCycleError,
    OutputDirError,
    WalkReport,
    ensure_output_dir,
    find_unreached,
    process_unreached,
    resolve_title,
    walk_chain,
)


# ---------------------------------------------------------------------------
# Test data helpers
# ---------------------------------------------------------------------------

def write_page(directory: Path, name: str, body: str = "", title: str | None = None,
               next: str | None = None, prev: str | None = None) -> Path:
    lines = ["type=page", "status=published"]
    if title is not None:
        lines.append(f"title={title}")
    if next is not None:
        lines.append(f"next={next}")
    if prev is not None:
        lines.append(f"prev={prev}")
    lines.append("~~~~~~")
    path = directory / name
    path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
    return path


def write_chain(directory: Path, names: list[str]) -> None:
    """Write pages linked in order with matching next/prev headers."""
    for i, name in enumerate(names):
        nxt = names[i + 1].replace(".adoc", ".html") if i + 1 < len(names) else None
        prv = names[i - 1].replace(".adoc", ".html") if i > 0 else None
        write_page(directory, name, body=f"= {name}\n", title=name, next=nxt, prev=prv)


@pytest.fixture
def report():
    return WalkReport(stream=io.StringIO())


def _collect(pages):
    def visit(page):
        pages.append(page.name)
    return visit


# ---------------------------------------------------------------------------
# walk_chain
# ---------------------------------------------------------------------------

class TestWalkChain:

    def test_follows_next_links_in_order(self, tmp_path, report):
        write_chain(tmp_path, ["title.adoc", "preface.adoc", "ch1.adoc", "ch2.adoc"])
        seen = []
        order = walk_chain(tmp_path, "title.adoc", _collect(seen), report)
        assert order == ["title.adoc", "preface.adoc", "ch1.adoc", "ch2.adoc"]
        assert seen == order
        assert report.visited == order

    def test_order_ignores_directory_listing(self, tmp_path, report):
        write_chain(tmp_path, ["zeta.adoc", "alpha.adoc", "mid.adoc"])
        order = walk_chain(tmp_path, "zeta.adoc", _collect([]), report)
        assert order == ["zeta.adoc", "alpha.adoc", "mid.adoc"]

    def test_correct_prev_links_no_diagnostics(self, tmp_path, report):
        write_chain(tmp_path, ["a.adoc", "b.adoc", "c.adoc"])
        walk_chain(tmp_path, "a.adoc", _collect([]), report)
        assert report.errors == []
        assert report.warnings == []
        assert report.ok

    def test_prev_mismatch_reported(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", next="b.html")
        write_page(tmp_path, "b.adoc", next="c.html", prev="x.html")
        write_page(tmp_path, "c.adoc", prev="b.html")
        order = walk_chain(tmp_path, "a.adoc", _collect([]), report)
        assert order == ["a.adoc", "b.adoc", "c.adoc"]
        assert report.errors == ["prev wrong in b.adoc - is x.adoc, should be a.adoc"]
        assert "ERROR: prev wrong in b.adoc" in report.stream.getvalue()

    def test_missing_prev_warned(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", next="b.html")
        write_page(tmp_path, "b.adoc")
        walk_chain(tmp_path, "a.adoc", _collect([]), report)
        assert report.errors == []
        assert report.warnings == ["prev missing in b.adoc, should be a.adoc"]

    def test_start_page_prev_not_checked(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", prev="toc.html")
        walk_chain(tmp_path, "a.adoc", _collect([]), report)
        assert report.errors == []
        assert report.warnings == []

    def test_unreadable_page_ends_chain(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", next="gone.html")
        seen = []
        order = walk_chain(tmp_path, "a.adoc", _collect(seen), report)
        assert order == ["a.adoc", "gone.adoc"]
        assert seen == ["a.adoc"]
        assert report.unreadable == ["gone.adoc"]
        assert len(report.warnings) == 1
        assert report.warnings[0].endswith("gone.adoc: can not open")

    def test_cycle_is_fatal(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", next="b.html", prev="b.html")
        write_page(tmp_path, "b.adoc", next="a.html", prev="a.html")
        seen = []
        with pytest.raises(ChainCycleError):
            walk_chain(tmp_path, "a.adoc", _collect(seen), report)
        assert seen == ["a.adoc", "b.adoc"]
        assert report.errors == ["next cycle: a.adoc revisited from b.adoc"]

    def test_self_link_is_cycle(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", next="a.html")
        with pytest.raises(ChainCycleError):
            walk_chain(tmp_path, "a.adoc", _collect([]), report)

    def test_visitor_receives_body(self, tmp_path, report):
        write_page(tmp_path, "a.adoc", body="= A\nline\n", title="A")
        bodies = []
        walk_chain(tmp_path, "a.adoc", lambda p: bodies.append(p.body), report)
        assert bodies == [["= A", "line"]]


# ---------------------------------------------------------------------------
# Unreached files
# ---------------------------------------------------------------------------

class TestUnreached:

    @pytest.fixture
    def tree(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        write_chain(src, ["title.adoc", "ch1.adoc"])
        write_page(src, "orphan2.adoc", body="orphan\n")
        write_page(src, "orphan1.adoc", body="orphan\n")
        write_page(src, "toc.adoc")
        (src / "logo.png").write_bytes(b"\x89PNG\x00\x01binary")
        (src / "img").mkdir()
        return src

    def test_page_files_only(self, tree):
        names = find_unreached(tree, ["title.adoc", "ch1.adoc"], ["toc.adoc"], page_ext=".adoc")
        assert names == ["orphan1.adoc", "orphan2.adoc"]

    def test_all_files(self, tree):
        names = find_unreached(tree, ["title.adoc", "ch1.adoc"], ["toc.adoc"])
        assert names == ["logo.png", "orphan1.adoc", "orphan2.adoc"]

    def test_warn_policy_lists_each_once(self, tree, tmp_path, report):
        walk_chain(tree, "title.adoc", _collect([]), report)
        names = process_unreached(tree, tmp_path / "out", report, "warn", ["toc.adoc"])
        assert names == ["orphan1.adoc", "orphan2.adoc"]
        assert report.missed == ["orphan1.adoc", "orphan2.adoc"]
        assert report.warnings == ["MISSED: orphan1.adoc", "MISSED: orphan2.adoc"]

    def test_copy_policy_copies_bytes(self, tree, tmp_path, report):
        out = ensure_output_dir(tmp_path / "out")
        walk_chain(tree, "title.adoc", _collect([]), report)
        process_unreached(tree, out, report, "copy", ["toc.adoc"])
        assert report.copied == ["logo.png", "orphan1.adoc", "orphan2.adoc"]
        assert (out / "logo.png").read_bytes() == (tree / "logo.png").read_bytes()
        assert (out / "orphan1.adoc").read_text(encoding="utf-8") == \
            (tree / "orphan1.adoc").read_text(encoding="utf-8")
        assert not (out / "toc.adoc").exists()
        assert not (out / "img").exists()
        assert report.warnings == []

    def test_copy_failure_reported_and_skipped(self, tree, tmp_path, report):
        os.symlink(tree / "gone.adoc", tree / "dangling.adoc")
        out = ensure_output_dir(tmp_path / "out")
        walk_chain(tree, "title.adoc", _collect([]), report)
        names = process_unreached(tree, out, report, "copy", ["toc.adoc"])
        assert "dangling.adoc" in names
        assert report.copied == ["logo.png", "orphan1.adoc", "orphan2.adoc"]
        assert len(report.warnings) == 1
        assert report.warnings[0].startswith("dangling.adoc: can not copy:")
        assert not (out / "dangling.adoc").exists()

    def test_copy_into_source_dir_is_noop(self, tree, report):
        walk_chain(tree, "title.adoc", _collect([]), report)
        process_unreached(tree, tree, report, "copy", ["toc.adoc"])
        assert report.copied == []


# ---------------------------------------------------------------------------
# Setup helpers
# ---------------------------------------------------------------------------

class TestSetupHelpers:

    def test_creates_nested_output_dir(self, tmp_path):
        out = ensure_output_dir(tmp_path / "a" / "b")
        assert out.is_dir()

    def test_existing_file_is_fatal(self, tmp_path):
        blocker = tmp_path / "book"
        blocker.write_text("not a dir", encoding="utf-8")
        with pytest.raises(OutputDirError):
            ensure_output_dir(blocker)

    def test_title_from_config(self, tmp_path):
        assert resolve_title("Configured", tmp_path / "missing.adoc") == "Configured"

    def test_title_from_start_page(self, tmp_path):
        path = write_page(tmp_path, "title.adoc", title="From Header")
        assert resolve_title(None, path) == "From Header"

    def test_title_unavailable(self, tmp_path):
        assert resolve_title(None, tmp_path / "missing.adoc") is None


class TestWalkReport:

    def test_summary_lists_problems(self):
        report = WalkReport(stream=io.StringIO())
        report.visited.extend(["a.adoc", "b.adoc"])
        report.error("bad prev")
        report.warn("MISSED: c.adoc")
        summary = report.summary()
        assert "Pages visited: 2" in summary
        assert "ERRORS (1):" in summary
        assert "WARNINGS (1):" in summary
        assert not report.ok

    def test_debug_only_when_enabled(self):
        quiet = WalkReport(stream=io.StringIO())
        quiet.debug("hidden")
        assert quiet.stream.getvalue() == ""
        loud = WalkReport(debug_enabled=True, stream=io.StringIO())
        loud.debug("shown")
        assert loud.stream.getvalue() == "DEBUG: shown\n"
