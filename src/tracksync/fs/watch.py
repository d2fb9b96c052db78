"""Shared watchdog observer with per-entry subscriptions and debouncing.

A subscription targets one file-or-directory entry. The manager watches the
entry's parent directory (non-recursively, one watch per directory shared by
all its subscriptions) and routes events by entry name.
"""

from __future__ import annotations

import itertools
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from tracksync.runtime_logging import get_runtime_logger

EventKind = Literal["created", "changed", "deleted"]
Callback = Callable[[], None]

_WATCHDOG_KINDS: dict[str, EventKind] = {
    "created": "created",
    "modified": "changed",
    "closed": "changed",
    "deleted": "deleted",
}


@dataclass(slots=True)
class _Subscription:
    ident: int
    name: str
    on_create: Callback | None = None
    on_change: Callback | None = None
    on_delete: Callback | None = None

    def callback_for(self, kind: EventKind) -> Callback | None:
        if kind == "created":
            return self.on_create
        if kind == "deleted":
            return self.on_delete
        return self.on_change


@dataclass(slots=True)
class WatchHandle:
    path: Path
    _release: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def disposed(self) -> bool:
        return self._release is None

    def dispose(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class _DirectoryHandler(FileSystemEventHandler):
    def __init__(self, directory: Path, *, debounce_s: float = 0.25) -> None:
        super().__init__()
        self.directory = directory
        self.debounce_s = debounce_s
        self._directory_text = os.path.normpath(str(directory))
        self._lock = threading.Lock()
        self._subscriptions: dict[int, _Subscription] = {}
        self._pending: dict[str, EventKind] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._logger = get_runtime_logger()

    def add(self, subscription: _Subscription) -> None:
        with self._lock:
            self._subscriptions[subscription.ident] = subscription

    def remove(self, ident: int) -> int:
        with self._lock:
            self._subscriptions.pop(ident, None)
            if not self._subscriptions:
                for timer in self._timers.values():
                    timer.cancel()
                self._timers.clear()
                self._pending.clear()
            return len(self._subscriptions)

    def remove_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()
            self._subscriptions.clear()

    def on_any_event(self, event: FileSystemEvent) -> None:
        for name, kind in self._classify(event):
            self._schedule(name, kind)

    def _classify(self, event: FileSystemEvent) -> list[tuple[str, EventKind]]:
        if event.event_type == "moved":
            changes: list[tuple[str, EventKind]] = []
            src_name = self._child_name(event.src_path)
            if src_name is not None:
                changes.append((src_name, "deleted"))
            dest_name = self._child_name(getattr(event, "dest_path", ""))
            if dest_name is not None:
                changes.append((dest_name, "created"))
            return changes

        kind = _WATCHDOG_KINDS.get(event.event_type)
        name = self._child_name(event.src_path)
        if kind is None or name is None:
            return []
        return [(name, kind)]

    def _child_name(self, raw_path: str | bytes) -> str | None:
        if not raw_path:
            return None
        text = os.path.normpath(os.fsdecode(raw_path))
        if text == self._directory_text or os.path.dirname(text) != self._directory_text:
            return None
        return os.path.basename(text)

    def _schedule(self, name: str, kind: EventKind) -> None:
        with self._lock:
            if not any(sub.name == name for sub in self._subscriptions.values()):
                return
            self._pending[name] = kind
            timer = self._timers.pop(name, None)
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(self.debounce_s, self._fire, args=(name,))
            timer.daemon = True
            self._timers[name] = timer
            timer.start()
        self._logger.debug("watch.event", directory=str(self.directory), name=name, kind=kind)

    def _fire(self, name: str) -> None:
        with self._lock:
            self._timers.pop(name, None)
            kind = self._pending.pop(name, None)
            targets = [sub for sub in self._subscriptions.values() if sub.name == name]
        if kind is None:
            return
        self.dispatch_now(name, kind, targets)

    def dispatch_now(self, name: str, kind: EventKind, targets: list[_Subscription] | None = None) -> None:
        if targets is None:
            with self._lock:
                targets = [sub for sub in self._subscriptions.values() if sub.name == name]
        path = self.directory / name
        for subscription in targets:
            callback = subscription.callback_for(kind)
            if callback is None:
                continue
            try:
                callback()
                self._logger.debug("watch.callback.fired", path=str(path), kind=kind)
            except Exception as exc:
                self._logger.error("watch.callback.failed", path=str(path), kind=kind, error=str(exc))


class WatchManager:
    def __init__(self, *, debounce_s: float = 0.25) -> None:
        self.debounce_s = debounce_s
        self._observer = Observer()
        self._observer.start()
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._handlers: dict[Path, _DirectoryHandler] = {}
        self._watches: dict[Path, Any] = {}
        self._logger = get_runtime_logger()
        self._logger.info("watch.manager.started", debounce_s=debounce_s)

    def subscribe(
        self,
        path: Path,
        *,
        on_create: Callback | None = None,
        on_change: Callback | None = None,
        on_delete: Callback | None = None,
    ) -> WatchHandle:
        target = path.expanduser().absolute()
        directory = target.parent
        subscription = _Subscription(
            ident=next(self._ids),
            name=target.name,
            on_create=on_create,
            on_change=on_change,
            on_delete=on_delete,
        )

        with self._lock:
            handler = self._handlers.get(directory)
            if handler is None:
                handler = _DirectoryHandler(directory, debounce_s=self.debounce_s)
                # Raises OSError when the directory is missing or watch limits are hit.
                self._watches[directory] = self._observer.schedule(handler, str(directory), recursive=False)
                self._handlers[directory] = handler
                self._logger.info("watch.manager.watch", directory=str(directory))
            handler.add(subscription)

        self._logger.debug("watch.manager.subscribed", path=str(target), ident=subscription.ident)
        return WatchHandle(path=target, _release=lambda: self._release(directory, subscription.ident))

    def _release(self, directory: Path, ident: int) -> None:
        with self._lock:
            handler = self._handlers.get(directory)
            if handler is None:
                return
            remaining = handler.remove(ident)
            if remaining:
                self._logger.debug("watch.manager.unsubscribe.defer", directory=str(directory), remaining=remaining)
                return
            self._handlers.pop(directory, None)
            watch = self._watches.pop(directory, None)

        if watch is not None:
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as exc:
                self._logger.warning("watch.manager.unschedule_failed", directory=str(directory), error=str(exc))
        self._logger.info("watch.manager.unwatch", directory=str(directory))

    def watched_directories(self) -> list[Path]:
        with self._lock:
            return sorted(self._handlers)

    def close(self) -> None:
        self._observer.stop()
        self._observer.join(timeout=2)
        with self._lock:
            for handler in self._handlers.values():
                handler.remove_all()
            self._handlers.clear()
            self._watches.clear()
        self._logger.info("watch.manager.closed")


class NullWatchManager:
    """No-op watcher for tests, one-shot commands and restricted environments."""

    def subscribe(
        self,
        path: Path,
        *,
        on_create: Callback | None = None,  # noqa: ARG002
        on_change: Callback | None = None,  # noqa: ARG002
        on_delete: Callback | None = None,  # noqa: ARG002
    ) -> WatchHandle:
        return WatchHandle(path=path)

    def close(self) -> None:
        return
