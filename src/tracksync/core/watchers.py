"""Per-root watch bindings on the git index and the repository marker."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from tracksync.fs.watch import NullWatchManager, WatchHandle, WatchManager
from tracksync.git.source import MARKER_NAME, GitTrackedSource
from tracksync.runtime_logging import get_runtime_logger

INDEX_NAME = "index"


class WatchKind(str, Enum):
    INDEX = "index"
    MARKER = "marker"


class WatchEvent(str, Enum):
    INDEX_CHANGED = "index_changed"
    REPO_CREATED = "repo_created"
    REPO_DELETED = "repo_deleted"


@dataclass(slots=True)
class RootBinding:
    index: WatchHandle | None = None
    marker: WatchHandle | None = None

    def handle(self, kind: WatchKind) -> WatchHandle | None:
        return self.index if kind is WatchKind.INDEX else self.marker


class WatcherRegistry:
    """Owns at most one index watch and one marker watch per root.

    Watch callbacks arrive on watcher threads; they are handed to the event
    loop that armed the root and checked against the current table there, so
    an event from a disposed handle never reaches ``on_event``.
    """

    def __init__(
        self,
        watch_manager: WatchManager | NullWatchManager,
        source: GitTrackedSource,
        on_event: Callable[[Path, WatchEvent], Any],
    ) -> None:
        self.watch_manager = watch_manager
        self.source = source
        self.on_event = on_event
        self._bindings: dict[Path, RootBinding] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self.logger = get_runtime_logger()

    def roots(self) -> list[Path]:
        return sorted(self._bindings)

    def binding(self, root: Path) -> RootBinding | None:
        return self._bindings.get(root)

    async def arm(self, root: Path) -> None:
        self._loop = asyncio.get_running_loop()
        binding = self._bindings.setdefault(root, RootBinding())

        if binding.marker is None:
            binding.marker = self._subscribe(
                root,
                WatchKind.MARKER,
                root / MARKER_NAME,
                on_create=WatchEvent.REPO_CREATED,
                on_delete=WatchEvent.REPO_DELETED,
            )

        if binding.index is None:
            await self._arm_index(root, binding)

    def disarm(self, root: Path) -> None:
        binding = self._bindings.pop(root, None)
        if binding is None:
            return
        for handle in (binding.index, binding.marker):
            if handle is not None:
                handle.dispose()
        self.logger.info("watchers.disarmed", root=str(root))

    def dispose_all(self) -> None:
        for root in list(self._bindings):
            self.disarm(root)
        for task in list(self._tasks):
            task.cancel()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _arm_index(self, root: Path, binding: RootBinding) -> None:
        git_dir = await self.source.git_dir(root)
        if self._bindings.get(root) is not binding or binding.index is not None:
            # Disarmed or armed by a concurrent call while resolving.
            return
        if git_dir is None:
            self.logger.debug("watchers.index.no_repo", root=str(root))
            return
        binding.index = self._subscribe(
            root,
            WatchKind.INDEX,
            git_dir / INDEX_NAME,
            on_create=WatchEvent.INDEX_CHANGED,
            on_change=WatchEvent.INDEX_CHANGED,
            on_delete=WatchEvent.INDEX_CHANGED,
        )

    def _subscribe(
        self,
        root: Path,
        kind: WatchKind,
        target: Path,
        *,
        on_create: WatchEvent | None = None,
        on_change: WatchEvent | None = None,
        on_delete: WatchEvent | None = None,
    ) -> WatchHandle | None:
        cell: list[WatchHandle] = []

        def relay(event: WatchEvent | None) -> Callable[[], None] | None:
            if event is None:
                return None
            return lambda: self._post(root, kind, event, cell)

        try:
            handle = self.watch_manager.subscribe(
                target,
                on_create=relay(on_create),
                on_change=relay(on_change),
                on_delete=relay(on_delete),
            )
        except OSError as exc:
            self.logger.error("watchers.subscribe.failed", root=str(root), kind=kind.value, error=str(exc))
            return None
        cell.append(handle)
        self.logger.info("watchers.armed", root=str(root), kind=kind.value, target=str(target))
        return handle

    def _post(self, root: Path, kind: WatchKind, event: WatchEvent, cell: list[WatchHandle]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._deliver, root, kind, event, cell[0] if cell else None)

    def _deliver(self, root: Path, kind: WatchKind, event: WatchEvent, handle: WatchHandle | None) -> None:
        binding = self._bindings.get(root)
        if binding is None or handle is None or binding.handle(kind) is not handle:
            self.logger.debug("watchers.event.stale", root=str(root), kind=kind.value, watch_event=event.value)
            return

        self.logger.debug("watchers.event", root=str(root), kind=kind.value, watch_event=event.value)
        if event is WatchEvent.REPO_CREATED:
            self._spawn(self._rearm_then_report(root, binding))
            return
        if event is WatchEvent.REPO_DELETED and binding.index is not None:
            binding.index.dispose()
            binding.index = None
        self.on_event(root, event)

    async def _rearm_then_report(self, root: Path, binding: RootBinding) -> None:
        if binding.index is not None:
            binding.index.dispose()
            binding.index = None
        await self._arm_index(root, binding)
        if self._bindings.get(root) is binding:
            self.on_event(root, WatchEvent.REPO_CREATED)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
