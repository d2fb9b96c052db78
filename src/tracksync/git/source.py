"""Tracked-file source backed by the git command line."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from tracksync.errors import SourceUnavailable
from tracksync.runtime_logging import get_runtime_logger

MARKER_NAME = ".git"
GITDIR_PREFIX = "gitdir:"


def resolve_git_dir(root: Path) -> Path | None:
    """Locate the metadata directory of the repository rooted at ``root``.

    ``.git`` is either the directory itself or, for worktrees and
    submodules, a file holding ``gitdir: <path>``.
    """
    marker = root / MARKER_NAME
    if marker.is_dir():
        return marker
    if not marker.is_file():
        return None

    try:
        content = marker.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    for line in content.splitlines():
        line = line.strip()
        if not line.startswith(GITDIR_PREFIX):
            continue
        target = Path(line[len(GITDIR_PREFIX) :].strip()).expanduser()
        if not target.is_absolute():
            target = root / target
        target = Path(os.path.normpath(target))
        return target if target.is_dir() else None
    return None


class GitTrackedSource:
    def __init__(self, git_program: str = "git") -> None:
        self.git_program = git_program
        self.logger = get_runtime_logger()

    async def has_repo(self, root: Path) -> bool:
        return await asyncio.to_thread((root / MARKER_NAME).exists)

    async def git_dir(self, root: Path) -> Path | None:
        return await asyncio.to_thread(resolve_git_dir, root)

    async def list_tracked(self, root: Path) -> list[str]:
        if not await self.has_repo(root):
            self.logger.debug("git.list_tracked.no_repo", root=str(root))
            return []

        output = await self._run(root, "ls-files", "-z")
        paths = [item for item in output.split("\0") if item.strip()]
        self.logger.debug("git.list_tracked.done", root=str(root), count=len(paths))
        return paths

    async def _run(self, root: Path, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.git_program,
                *args,
                cwd=str(root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SourceUnavailable(root, str(exc)) from exc

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            reason = stderr.decode("utf-8", errors="replace").strip()
            raise SourceUnavailable(root, reason or f"git exited with {process.returncode}")
        return stdout.decode("utf-8", errors="surrogateescape")
