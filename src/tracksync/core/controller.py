"""Keep the published exclusion filter in step with each root's git index.

The controller is either disabled or syncing. While syncing, every root is
derived and published on its own: refreshes for one root never overlap
(extra requests coalesce into a single rerun), refreshes for different roots
run concurrently, and a result computed for a root that was removed or
disabled in the meantime is dropped instead of written.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from tracksync.config.models import SyncSettings
from tracksync.config.workspace import WorkspaceSettingsSink
from tracksync.core.deriver import ExclusionSet, ReadDir, canonical_exclusions, derive_exclusions
from tracksync.core.watchers import WatcherRegistry, WatchEvent
from tracksync.errors import SinkWriteError, SourceUnavailable
from tracksync.fs.listing import read_dir as default_read_dir
from tracksync.fs.watch import NullWatchManager, WatchManager
from tracksync.git.source import GitTrackedSource
from tracksync.notifications import NotificationEvent, Notifier
from tracksync.runtime_logging import get_runtime_logger


class SyncState(str, Enum):
    DISABLED = "disabled"
    SYNCING = "syncing"


@dataclass(slots=True)
class _RootSlot:
    generation: int = 0
    pending: bool = False
    task: asyncio.Task[bool] | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def scope_for(root: Path) -> str:
    return str(root)


class SyncController:
    def __init__(
        self,
        *,
        source: GitTrackedSource,
        sink: WorkspaceSettingsSink,
        watch_manager: WatchManager | NullWatchManager,
        settings: SyncSettings | None = None,
        notifier: Notifier | None = None,
        on_refreshed: Callable[[Path], Any] | None = None,
        read_dir: ReadDir = default_read_dir,
    ) -> None:
        self.source = source
        self.sink = sink
        self.settings = settings or SyncSettings()
        self.notifier = notifier
        self.on_refreshed = on_refreshed
        self.read_dir = read_dir
        self.state = SyncState.DISABLED
        self.registry = WatcherRegistry(watch_manager, source, self._on_watch_event)
        self._roots: dict[Path, _RootSlot] = {}
        self._published: dict[str, str] = {}
        self._retired: set[asyncio.Task[bool]] = set()
        self.logger = get_runtime_logger()

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def published(self, root: Path) -> str | None:
        """Canonical form of the last exclusion set written for ``root``."""
        return self._published.get(scope_for(root))

    async def enable(self, roots: Iterable[Path] | None = None) -> None:
        if roots is not None:
            for root in roots:
                self._roots.setdefault(root, _RootSlot())
        self.state = SyncState.SYNCING
        self.logger.info("sync.enabled", roots=[str(root) for root in self._roots])
        await asyncio.gather(*(self._sync_root(root) for root in list(self._roots)))

    async def disable(self) -> None:
        self.state = SyncState.DISABLED
        self.registry.dispose_all()
        for slot in self._roots.values():
            slot.generation += 1
            slot.pending = False
        self.logger.info("sync.disabled", roots=[str(root) for root in self._roots])
        await asyncio.gather(*(self._clear_root(root) for root in list(self._roots)))

    async def set_roots(self, roots: Iterable[Path]) -> None:
        wanted = list(dict.fromkeys(roots))
        removed = [root for root in self._roots if root not in wanted]
        added = [root for root in wanted if root not in self._roots]
        self.remove_roots(removed)
        await self.add_roots(added)

    async def add_roots(self, roots: Iterable[Path]) -> None:
        added = [root for root in roots if root not in self._roots]
        for root in added:
            self._roots[root] = _RootSlot()
        if not added:
            return
        self.logger.info("sync.roots.added", roots=[str(root) for root in added])
        if self.state is SyncState.SYNCING:
            await asyncio.gather(*(self._sync_root(root) for root in added))

    def remove_roots(self, roots: Iterable[Path]) -> None:
        for root in roots:
            slot = self._roots.pop(root, None)
            if slot is None:
                continue
            slot.generation += 1
            slot.pending = False
            self.registry.disarm(root)
            if slot.task is not None and not slot.task.done():
                self._retired.add(slot.task)
                slot.task.add_done_callback(self._retired.discard)
            self._published.pop(scope_for(root), None)
            self.logger.info("sync.roots.removed", root=str(root))

    def request_refresh(self, root: Path) -> asyncio.Task[bool] | None:
        slot = self._roots.get(root)
        if slot is None or self.state is not SyncState.SYNCING:
            return None
        if slot.task is not None and not slot.task.done():
            slot.pending = True
            self.logger.debug("sync.refresh.coalesced", root=str(root))
            return slot.task
        slot.task = asyncio.ensure_future(self._refresh_loop(root, slot))
        return slot.task

    async def refresh(self, root: Path) -> bool:
        task = self.request_refresh(root)
        if task is None:
            return False
        return await task

    async def wait_idle(self) -> None:
        while True:
            # Let watcher callbacks queued with call_soon_threadsafe run first.
            await asyncio.sleep(0)
            await self.registry.wait_idle()
            tasks = [slot.task for slot in self._roots.values() if slot.task is not None and not slot.task.done()]
            tasks.extend(task for task in self._retired if not task.done())
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        self.state = SyncState.DISABLED
        self.registry.dispose_all()
        for slot in self._roots.values():
            slot.generation += 1
            slot.pending = False
        await self.wait_idle()
        self.logger.info("sync.closed")

    async def _sync_root(self, root: Path) -> None:
        await self.refresh(root)
        if root in self._roots and self.state is SyncState.SYNCING:
            await self.registry.arm(root)

    async def _refresh_loop(self, root: Path, slot: _RootSlot) -> bool:
        wrote = False
        while True:
            slot.pending = False
            wrote = await self._refresh_once(root, slot, slot.generation) or wrote
            if not slot.pending or self._roots.get(root) is not slot:
                return wrote

    async def _refresh_once(self, root: Path, slot: _RootSlot, generation: int) -> bool:
        log = self.logger.bind(root=str(root))
        tracked = await self._fetch_tracked(root)
        exclusions = await asyncio.to_thread(
            derive_exclusions,
            root,
            tracked,
            read_dir=self.read_dir,
            reserved_dir=self.settings.reserved_dir,
            universal_patterns=self.settings.universal_patterns,
        )
        log.debug("sync.derive.done", tracked_count=len(tracked), exclusion_count=len(exclusions))

        async with slot.lock:
            # A removed root may have been re-added with a fresh slot at generation 0.
            if self._roots.get(root) is not slot:
                log.debug("sync.refresh.discarded", reason="root_removed")
                return False
            if slot.generation != generation or self.state is not SyncState.SYNCING:
                log.debug("sync.refresh.discarded", reason="invalidated")
                return False
            wrote = await self._publish(root, exclusions)

        if self.on_refreshed is not None:
            self.on_refreshed(root)
        return wrote

    async def _fetch_tracked(self, root: Path) -> list[str]:
        try:
            return await self.source.list_tracked(root)
        except SourceUnavailable as exc:
            self.logger.warning("sync.source.unavailable", root=str(root), reason=exc.reason)
            return []

    async def _publish(self, root: Path, exclusions: ExclusionSet) -> bool:
        scope = scope_for(root)
        incoming = canonical_exclusions(exclusions)
        current = self._published.get(scope)
        if current is None:
            current = canonical_exclusions(await asyncio.to_thread(self.sink.read, scope))

        if current == incoming:
            self._published[scope] = incoming
            self.logger.debug("sync.publish.skipped", scope=scope)
            return False

        try:
            await asyncio.to_thread(self.sink.write, scope, exclusions)
        except SinkWriteError as exc:
            self._report_sink_failure(exc)
            return False

        self._published[scope] = incoming
        self.logger.info("sync.publish.written", scope=scope, entry_count=len(exclusions))
        return True

    async def _clear_root(self, root: Path) -> bool:
        scope = scope_for(root)
        slot = self._roots.get(root)
        if slot is None:
            return False
        async with slot.lock:
            self._published.pop(scope, None)
            persisted = await asyncio.to_thread(self.sink.read, scope)
            if persisted is None:
                self.logger.debug("sync.clear.skipped", scope=scope)
                return False
            try:
                await asyncio.to_thread(self.sink.write, scope, None)
            except SinkWriteError as exc:
                self._report_sink_failure(exc)
                return False
        self.logger.info("sync.clear.written", scope=scope)
        return True

    def _report_sink_failure(self, exc: SinkWriteError) -> None:
        self.logger.error("sync.sink.write_failed", scope=exc.scope, error=exc.reason)
        if self.notifier is not None:
            self.notifier.send(
                NotificationEvent(
                    title="tracksync",
                    body=f"Could not update settings: {exc.reason}",
                    severity="error",
                )
            )

    def _on_watch_event(self, root: Path, event: WatchEvent) -> None:
        if self.state is not SyncState.SYNCING or root not in self._roots:
            return
        self.logger.debug("sync.watch.triggered", root=str(root), watch_event=event.value)
        self.request_refresh(root)
