"""Derive the exclusion filter that hides every untracked entry of a root."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from tracksync.fs.filtering import ExclusionFilter
from tracksync.fs.listing import DirEntry, read_dir as default_read_dir
from tracksync.pathset import ROOT_MARKER, TrackedIndex, join_relative

ExclusionSet = dict[str, bool]
ReadDir = Callable[[Path], list[DirEntry] | None]

UNIVERSAL_PATTERNS: tuple[str, ...] = ("**/.git", "**/.DS_Store")
RESERVED_DIR = ".vscode"


def derive_exclusions(
    root: Path,
    tracked_paths: Iterable[str],
    *,
    read_dir: ReadDir = default_read_dir,
    reserved_dir: str | None = RESERVED_DIR,
    universal_patterns: Sequence[str] = UNIVERSAL_PATTERNS,
) -> ExclusionSet:
    """Compute the minimal set of entries to hide so only tracked paths remain.

    Only the root and directories that hold at least one tracked file are
    listed. An entry is kept visible when it is tracked, when it is a
    directory containing tracked files, or when it is the reserved editor
    settings directory at the root. Everything else is hidden under its
    root-relative path. Entries already covered by a universal pattern are
    not repeated.
    """
    index = TrackedIndex.build(tracked_paths)
    universal = ExclusionFilter(universal_patterns)
    exclusions: ExclusionSet = {}

    for directory in sorted(index.directories):
        listing_path = root if directory == ROOT_MARKER else root / directory
        entries = read_dir(listing_path)
        if entries is None:
            continue

        for entry in entries:
            relative = join_relative(directory, entry.name)
            if index.contains(relative):
                continue
            if directory == ROOT_MARKER and entry.name == reserved_dir:
                continue
            if universal.is_hidden(relative):
                continue
            exclusions[relative] = True

    for pattern in universal_patterns:
        exclusions[pattern] = True
    return exclusions


def canonical_exclusions(value: ExclusionSet | None) -> str:
    """Serialize an exclusion set independently of key insertion order."""
    if value is None:
        return ""
    return json.dumps({key: value[key] for key in sorted(value)}, sort_keys=True)


def same_exclusions(left: ExclusionSet | None, right: ExclusionSet | None) -> bool:
    return canonical_exclusions(left) == canonical_exclusions(right)
