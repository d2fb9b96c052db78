"""Pure helpers over root-relative path strings.

Paths handled here always use ``/`` as separator and ``.`` as the root
marker, which is what ``git ls-files`` reports.
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

SEP = "/"
ROOT_MARKER = "."


def normalize(path: str) -> str:
    text = path
    for native in (os.sep, os.altsep):
        if native and native != SEP:
            text = text.replace(native, SEP)
    if not text:
        return ROOT_MARKER
    normalized = posixpath.normpath(text)
    # normpath keeps a leading "//" on POSIX.
    if normalized.startswith("//"):
        normalized = normalized[1:]
    return normalized


def is_prefix_of(candidate: str, other: str) -> bool:
    return other == candidate or other.startswith(candidate + SEP)


def join_relative(directory: str, name: str) -> str:
    if directory == ROOT_MARKER:
        return name
    return f"{directory}{SEP}{name}"


@dataclass(frozen=True, slots=True)
class DirnameChain:
    """Ancestor directories of ``path``, nearest first, excluding the root."""

    path: str

    def __iter__(self) -> Iterator[str]:
        current = posixpath.dirname(normalize(self.path))
        while current not in ("", ROOT_MARKER, SEP):
            yield current
            current = posixpath.dirname(current)


def dirname_chain(path: str) -> DirnameChain:
    return DirnameChain(path)


@dataclass(frozen=True, slots=True)
class TrackedIndex:
    """Snapshot of tracked files and the directories that contain them."""

    files: frozenset[str]
    directories: frozenset[str]

    @classmethod
    def build(cls, tracked_paths: Iterable[str]) -> "TrackedIndex":
        files: set[str] = set()
        directories: set[str] = {ROOT_MARKER}
        for raw in tracked_paths:
            path = normalize(raw)
            if path == ROOT_MARKER:
                continue
            files.add(path)
            for parent in dirname_chain(path):
                if parent in directories:
                    break
                directories.add(parent)
        return cls(files=frozenset(files), directories=frozenset(directories))

    def contains(self, candidate: str) -> bool:
        """Ancestor-or-self membership of a root-relative path."""
        path = normalize(candidate)
        return path in self.files or path in self.directories
