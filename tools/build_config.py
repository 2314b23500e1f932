#!/usr/bin/env python3
"""Run configuration for the book and TOC generators.

A run is configured from three layers, later layers winning:
  1. profile defaults (``book`` or ``toc``)
  2. an optional YAML file (``--config docbuild.yaml``)
  3. command-line flags

The YAML file may hold shared top-level settings plus ``book:`` and ``toc:``
sections:

    source_dir: src/main/jbake/content
    start_page: title.adoc
    toc:
      chapter_patterns: "[0-9]+\\s.*,Appendix\\s.*"
    book:
      output_dir: target/book
      exclude: [toc.adoc, cpyr.adoc]

The result is a frozen ``BuildConfig``; nothing mutates it during a walk.
"""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import jsonschema
import yaml

from outline_patterns import DEFAULT_CHAPTER_PATTERNS, HEADER_SLOP, compile_patterns, split_patterns
from page_header import DEFAULT_LINK_EXT, DEFAULT_PAGE_EXT

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROFILES = ("book", "toc")
UNREACHED_POLICIES = ("copy", "warn")

DEFAULT_SOURCE_DIR = "src/main/jbake/content"
DEFAULT_BOOK_DIR = "build/book"
DEFAULT_ATTRIBUTES_NAME = "book-attributes.conf"

_PATTERN_LIST = {
    "oneOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}},
    ]
}

_SETTINGS_PROPERTIES = {
    "source_dir": {"type": "string"},
    "output_dir": {"type": "string"},
    "start_page": {"type": "string", "minLength": 1},
    "title": {"type": "string"},
    "book_file": {"type": "string", "minLength": 1},
    "toc_file": {"type": "string", "minLength": 1},
    "attributes_file": {"type": ["string", "null"]},
    "exclude": _PATTERN_LIST,
    "chapter_patterns": _PATTERN_LIST,
    "ignore_tag_patterns": _PATTERN_LIST,
    "skip_unreached": _PATTERN_LIST,
    "unreached": {"enum": list(UNREACHED_POLICIES)},
    "page_ext": {"type": "string", "pattern": r"^\."},
    "link_ext": {"type": "string", "pattern": r"^\."},
    "header_slop": {"type": "integer", "minimum": 0},
    "debug": {"type": "boolean"},
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "docbuild configuration",
    "type": "object",
    "properties": {
        **_SETTINGS_PROPERTIES,
        "book": {
            "type": "object",
            "properties": _SETTINGS_PROPERTIES,
            "additionalProperties": False,
        },
        "toc": {
            "type": "object",
            "properties": _SETTINGS_PROPERTIES,
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

# Settings holding lists (YAML list or comma-separated string).
LIST_SETTINGS = ("exclude", "chapter_patterns", "ignore_tag_patterns", "skip_unreached")


class ConfigError(ValueError):
    """Invalid or incomplete run configuration."""


# ---------------------------------------------------------------------------
# Config record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildConfig:
    """Immutable parameters of one generator run."""
    profile: str
    source_dir: Path
    output_dir: Path
    start_page: str
    title: Optional[str]
    book_file: str
    toc_file: str
    attributes_file: Optional[Path]
    exclude: tuple[str, ...]
    chapter_patterns: tuple[str, ...]
    ignore_tag_patterns: tuple[str, ...]
    skip_unreached: tuple[str, ...]
    unreached: str
    page_ext: str = DEFAULT_PAGE_EXT
    link_ext: str = DEFAULT_LINK_EXT
    header_slop: int = HEADER_SLOP
    debug: bool = False

    @property
    def chapter_res(self) -> tuple[re.Pattern, ...]:
        return compile_patterns(self.chapter_patterns)

    @property
    def ignore_tag_res(self) -> tuple[re.Pattern, ...]:
        return compile_patterns(self.ignore_tag_patterns)

    def describe(self) -> list[str]:
        """One ``name value`` line per setting, for the debug dump."""
        return [f"{f.name} {getattr(self, f.name)!r}" for f in fields(self)]


def profile_defaults(profile: str, source_dir: str) -> dict:
    """Default settings of a profile; some depend on the source directory."""
    if profile not in PROFILES:
        raise ConfigError(f"unknown profile '{profile}' (expected one of {PROFILES})")
    shared = {
        "source_dir": source_dir,
        "start_page": "title.adoc",
        "title": None,
        "book_file": "book.adoc",
        "toc_file": "toc.adoc",
        "chapter_patterns": list(DEFAULT_CHAPTER_PATTERNS),
        "ignore_tag_patterns": [],
        "page_ext": DEFAULT_PAGE_EXT,
        "link_ext": DEFAULT_LINK_EXT,
        "header_slop": HEADER_SLOP,
        "debug": False,
    }
    if profile == "book":
        shared.update({
            "output_dir": DEFAULT_BOOK_DIR,
            "attributes_file": str(Path(source_dir) / DEFAULT_ATTRIBUTES_NAME),
            "exclude": ["toc.adoc"],
            "skip_unreached": ["toc.adoc"],
            "unreached": "copy",
        })
    else:
        shared.update({
            "output_dir": source_dir,
            "attributes_file": None,
            "exclude": [],
            "skip_unreached": ["toc.adoc", "cpyr.adoc"],
            "unreached": "warn",
        })
    return shared


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def load_config_file(path: str) -> dict:
    """Load and schema-validate a YAML config file. Returns the raw mapping."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"config file {path} is not valid YAML: {e}") from e

    if data is None:
        return {}
    try:
        jsonschema.validate(data, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "(root)"
        raise ConfigError(f"config file {path}: {where}: {e.message}") from e
    return data


def settings_for_profile(data: dict, profile: str) -> dict:
    """Shared top-level settings overlaid by the profile's own section."""
    settings = {k: v for k, v in data.items() if k not in PROFILES}
    settings.update(data.get(profile) or {})
    return settings


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags shared by the book and TOC tools. Unset flags stay None."""
    parser.add_argument("--config", default=None,
                        help="YAML config file (shared keys plus book:/toc: sections)")
    parser.add_argument("--source-dir", dest="source_dir", default=None,
                        help=f"Directory containing the page files (default: {DEFAULT_SOURCE_DIR})")
    parser.add_argument("--output-dir", dest="output_dir", default=None,
                        help="Directory for generated files")
    parser.add_argument("--start-page", dest="start_page", default=None,
                        help="First page of the next-link chain (default: title.adoc)")
    parser.add_argument("--title", default=None,
                        help="Document title (default: title= header of the start page)")
    parser.add_argument("--chapter-patterns", dest="chapter_patterns", default=None,
                        help="Comma-separated regexes marking chapter titles")
    parser.add_argument("--ignore-tag-patterns", dest="ignore_tag_patterns", default=None,
                        help="Comma-separated regexes of anchor tags to ignore")
    parser.add_argument("--unreached", choices=UNREACHED_POLICIES, default=None,
                        help="What to do with pages never reached by next links")
    parser.add_argument("--header-slop", dest="header_slop", type=int, default=None,
                        help=f"Underline length tolerance (default: {HEADER_SLOP})")
    parser.add_argument("--debug", action="store_true", default=None,
                        help="Dump the resolved configuration")


def build_config(profile: str, file_settings: Optional[dict] = None,
                 overrides: Optional[dict] = None) -> BuildConfig:
    """Merge profile defaults, config-file settings and CLI overrides."""
    file_settings = file_settings or {}
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    source_dir = overrides.get("source_dir") or file_settings.get("source_dir") or DEFAULT_SOURCE_DIR
    merged = profile_defaults(profile, source_dir)
    merged.update(file_settings)
    merged.update(overrides)

    for key in LIST_SETTINGS:
        merged[key] = split_patterns(merged.get(key))

    # The generated files themselves are never "unreached".
    skip = list(merged["skip_unreached"])
    own_file = merged["book_file"] if profile == "book" else merged["toc_file"]
    if own_file not in skip:
        skip.append(own_file)

    for key in ("chapter_patterns", "ignore_tag_patterns"):
        for pattern in merged[key]:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"{key}: invalid regex '{pattern}': {e}") from e

    attributes = merged.get("attributes_file")
    return BuildConfig(
        profile=profile,
        source_dir=Path(merged["source_dir"]),
        output_dir=Path(merged["output_dir"]),
        start_page=merged["start_page"],
        title=merged.get("title") or None,
        book_file=merged["book_file"],
        toc_file=merged["toc_file"],
        attributes_file=Path(attributes) if attributes else None,
        exclude=tuple(merged["exclude"]),
        chapter_patterns=tuple(merged["chapter_patterns"]),
        ignore_tag_patterns=tuple(merged["ignore_tag_patterns"]),
        skip_unreached=tuple(skip),
        unreached=merged["unreached"],
        page_ext=merged["page_ext"],
        link_ext=merged["link_ext"],
        header_slop=int(merged["header_slop"]),
        debug=bool(merged["debug"]),
    )


def config_from_args(args: argparse.Namespace, profile: str) -> BuildConfig:
    """Build the run configuration from parsed command-line arguments."""
    file_settings = {}
    if getattr(args, "config", None):
        file_settings = settings_for_profile(load_config_file(args.config), profile)
    overrides = {name: getattr(args, name, None) for name in _SETTINGS_PROPERTIES}
    return build_config(profile, file_settings, overrides)
