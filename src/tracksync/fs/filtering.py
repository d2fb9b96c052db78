"""Match paths against exclusion patterns the way the editor applies them."""

from __future__ import annotations

from collections.abc import Iterable

import pathspec

GLOBSTAR_PREFIX = "**/"


def to_gitignore_line(pattern: str) -> str:
    """Translate an exclusion key into an equivalent gitignore line.

    ``**/name`` globs apply at any depth and are kept as they are. Any other
    key is relative to the root, so it is anchored with a leading slash.
    """
    if pattern.startswith(GLOBSTAR_PREFIX) or pattern.startswith("/"):
        return pattern
    return f"/{pattern}"


class ExclusionFilter:
    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = sorted(set(patterns))
        self._spec = pathspec.GitIgnoreSpec.from_lines(
            to_gitignore_line(pattern) for pattern in self.patterns
        )

    @classmethod
    def from_exclusions(cls, exclusions: dict[str, bool] | None) -> "ExclusionFilter":
        if not exclusions:
            return cls([])
        return cls(key for key, hidden in exclusions.items() if hidden)

    def is_hidden(self, rel_path: str) -> bool:
        rel_text = rel_path.strip("/")
        if not rel_text or rel_text == ".":
            return False
        return self._spec.match_file(rel_text)
