"""Error types raised by tracksync collaborators.

None of these is fatal: the sync controller downgrades each one to
"nothing to show" or "skip this cycle".
"""

from __future__ import annotations

from pathlib import Path


class TrackSyncError(Exception):
    pass


class SourceUnavailable(TrackSyncError):
    """The tracked-file source could not answer for a root."""

    def __init__(self, root: Path, reason: str) -> None:
        self.root = root
        self.reason = reason
        super().__init__(f"tracked files unavailable for {root}: {reason}")


class SinkWriteError(TrackSyncError):
    """The settings document for a scope could not be written."""

    def __init__(self, scope: str, reason: str) -> None:
        self.scope = scope
        self.reason = reason
        super().__init__(f"cannot write settings for {scope}: {reason}")
