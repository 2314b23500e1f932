#!/usr/bin/env python3
"""Generate the TOC page and then the book from one YAML config.

The TOC is written first so the book (which normally excludes toc.adoc)
and the site build both see the fresh contents page.

Usage:
  python tools/build_docs.py --config docbuild.yaml [--only toc|book] [--debug]
"""

from __future__ import annotations

import argparse
import sys

from assemble_book import run_book
from build_config import ConfigError, build_config, load_config_file, settings_for_profile
from generate_toc import run_toc

STEPS = (("toc", run_toc), ("book", run_book))


def run_all(data: dict, only: str | None = None, debug: bool = False) -> int:
    """Run each step with its profile settings. Returns the worst exit code."""
    worst = 0
    for profile, runner in STEPS:
        if only and profile != only:
            continue
        print(f"\n=== {profile.upper()} ===")
        overrides = {"debug": True} if debug else None
        config = build_config(profile, settings_for_profile(data, profile), overrides)
        worst = max(worst, runner(config))
    return worst


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate TOC and book from a docbuild config")
    parser.add_argument("--config", required=True, help="YAML config file")
    parser.add_argument("--only", choices=[p for p, _ in STEPS], default=None,
                        help="Run a single step")
    parser.add_argument("--debug", action="store_true", help="Dump resolved configuration")
    args = parser.parse_args(argv)

    try:
        data = load_config_file(args.config)
        return run_all(data, args.only, args.debug)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
