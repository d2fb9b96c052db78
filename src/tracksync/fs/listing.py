"""Single-directory listing used by the exclusion deriver."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class DirEntry:
    name: str
    is_dir: bool


def read_dir(path: Path) -> list[DirEntry] | None:
    """List the direct entries of ``path`` sorted by name.

    Returns ``None`` when the directory vanished, is not a directory or
    cannot be read (permissions, I/O errors, symlink loops).
    """
    try:
        with os.scandir(path) as it:
            entries = [DirEntry(name=item.name, is_dir=_is_dir(item)) for item in it]
    except OSError:
        return None
    return sorted(entries, key=lambda entry: entry.name)


def _is_dir(item: os.DirEntry[str]) -> bool:
    try:
        return item.is_dir(follow_symlinks=False)
    except OSError:
        return False
