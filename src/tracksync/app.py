"""tracksync Textual application shell."""

from __future__ import annotations

from pathlib import Path

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header, Static

from tracksync.config.models import AppSettings
from tracksync.config.store import SettingsStore
from tracksync.config.workspace import WorkspaceSettingsSink
from tracksync.core.controller import SyncController, SyncState
from tracksync.fs.watch import NullWatchManager, WatchManager
from tracksync.git.source import GitTrackedSource
from tracksync.messages import SyncToggled, TrackedSetChanged
from tracksync.notifications import Notifier
from tracksync.runtime_logging import configure_runtime_logging
from tracksync.widgets.tracked_tree import TrackedTreePanel


class TrackSyncApp(App[None]):
    TITLE = "tracksync"
    SUB_TITLE = "git-tracked files only"

    BINDINGS = [
        ("ctrl+t", "toggle_sync", "Toggle Sync"),
        ("r", "refresh", "Refresh"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        layout: vertical;
    }

    #status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def __init__(
        self,
        *,
        roots: list[Path],
        settings_store: SettingsStore | None = None,
        source: GitTrackedSource | None = None,
        sink: WorkspaceSettingsSink | None = None,
        enable_watchers: bool = True,
        watch_manager: WatchManager | NullWatchManager | None = None,
        log_level: str | None = None,
        log_file: str | Path | None = None,
    ) -> None:
        self.roots = [root.expanduser().resolve() for root in roots]
        self.logger = configure_runtime_logging(level=log_level, log_file=log_file)

        self.settings_store = settings_store or SettingsStore()
        self.settings: AppSettings = self.settings_store.load()
        self.source = source or GitTrackedSource()
        self.sink = sink or WorkspaceSettingsSink(
            settings_dir=self.settings.sync.settings_dir,
            key=self.settings.sync.exclude_key,
            prune_empty=self.settings.sync.prune_empty_settings,
        )

        self._watcher_startup_error: str | None = None
        if watch_manager is not None:
            self.watch_manager = watch_manager
        elif enable_watchers and self.settings.watch.enabled:
            try:
                self.watch_manager = WatchManager(debounce_s=self.settings.watch.debounce_s)
            except OSError as exc:
                self._watcher_startup_error = str(exc)
                self.logger.error("app.watch_manager.failed", error=str(exc))
                self.watch_manager = NullWatchManager()
        else:
            self.watch_manager = NullWatchManager()

        self.controller = SyncController(
            source=self.source,
            sink=self.sink,
            watch_manager=self.watch_manager,
            settings=self.settings.sync,
            notifier=Notifier(self.settings.notifications),
            on_refreshed=self._on_root_refreshed,
        )
        self.logger.info(
            "app.initialized",
            roots=[str(root) for root in self.roots],
            sync_enabled=self.settings.sync.enabled,
        )
        super().__init__()

    def compose(self) -> ComposeResult:
        yield Header()
        yield TrackedTreePanel(
            self.roots,
            self.source,
            max_entries=self.settings.tree.max_entries,
            id="tracked",
        )
        yield Static(self._status_text(), id="status")
        yield Footer()

    async def on_mount(self) -> None:
        await self.controller.add_roots(self.roots)
        if self._watcher_startup_error:
            self.notify(self._watcher_startup_message(), severity="warning")
        if self.settings.sync.enabled:
            await self.controller.enable()
        self._update_status()

    def _watcher_startup_message(self) -> str:
        error = self._watcher_startup_error or ""
        if "inotify" in error.lower() or "Errno 24" in error or "Errno 28" in error:
            return "File watching is unavailable (inotify limit reached); refresh manually with 'r'."
        return f"File watching is unavailable: {error}"

    async def action_toggle_sync(self) -> None:
        enabled = self.controller.state is not SyncState.SYNCING
        self.settings = self.settings_store.set_sync_enabled(enabled)
        self.post_message(SyncToggled(enabled=enabled))

    async def on_sync_toggled(self, message: SyncToggled) -> None:
        self.logger.info("app.sync.toggled", enabled=message.enabled)
        if message.enabled:
            await self.controller.enable()
            self.notify("Hiding untracked files")
        else:
            await self.controller.disable()
            self.notify("Showing all files")
        self._update_status()

    async def action_refresh(self) -> None:
        # Pick up a switch flipped from outside, e.g. by ``tracksync toggle``.
        self.settings = self.settings_store.load()
        syncing = self.controller.state is SyncState.SYNCING
        if self.settings.sync.enabled != syncing:
            self.post_message(SyncToggled(enabled=self.settings.sync.enabled))
        elif syncing:
            for root in self.controller.roots:
                self.controller.request_refresh(root)
        self.query_one(TrackedTreePanel).refresh_tree()

    def on_tracked_set_changed(self, message: TrackedSetChanged) -> None:
        self.logger.debug("app.tracked_set_changed", root=str(message.root))
        self.query_one(TrackedTreePanel).refresh_tree()
        self._update_status()

    def _on_root_refreshed(self, root: Path) -> None:
        self.post_message(TrackedSetChanged(root=root))

    def _status_text(self) -> str:
        state = "syncing" if self.controller.state is SyncState.SYNCING else "disabled"
        roots = ", ".join(root.name or str(root) for root in self.roots)
        return f"sync: {state}  roots: {roots}"

    def _update_status(self) -> None:
        self.query_one("#status", Static).update(self._status_text())

    async def on_unmount(self) -> None:
        await self.controller.close()
        self.watch_manager.close()
        self.logger.info("app.exit")
