from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError

from tracksync.app import TrackSyncApp
from tracksync.config.models import AppSettings, NotificationSettings, SyncSettings
from tracksync.config.store import SettingsStore
from tracksync.fs.watch import NullWatchManager
from tracksync.notifications import NotificationEvent, Notifier
from tracksync.paths import workspace_settings_path


class SettingsStoreTests(unittest.TestCase):
    def test_load_save_update_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            store = SettingsStore(path)

            settings = store.load()
            self.assertTrue(path.exists())
            self.assertEqual(settings.schema_version, 1)
            self.assertFalse(settings.sync.enabled)

            updated = store.update("watch.debounce_s", 1.5)
            self.assertEqual(updated.watch.debounce_s, 1.5)

            reloaded = store.load()
            self.assertEqual(reloaded.watch.debounce_s, 1.5)

    def test_set_sync_enabled_persists(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            SettingsStore(path).set_sync_enabled(True)

            self.assertTrue(SettingsStore(path).load().sync.enabled)
            self.assertTrue(json.loads(path.read_text(encoding="utf-8"))["sync"]["enabled"])

    def test_unknown_paths_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SettingsStore(Path(tmp) / "settings.json")

            with self.assertRaises(KeyError):
                store.update("sync.nope", True)
            with self.assertRaises(KeyError):
                store.update("nope.enabled", True)

    def test_get_reads_dotted_keys(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SettingsStore(Path(tmp) / "settings.json")
            store.update("paths.roots", ["/a", "/b"])

            self.assertEqual(store.get("paths.roots"), ["/a", "/b"])
            self.assertEqual(store.get("sync.exclude_key"), "files.exclude")
            with self.assertRaises(KeyError):
                store.get("sync.missing")

    def test_invalid_value_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SettingsStore(Path(tmp) / "settings.json")

            with self.assertRaises(ValidationError):
                store.update("tree.max_entries", 1)

    def test_corrupt_file_is_backed_up_and_reset(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text("{not json", encoding="utf-8")

            settings = SettingsStore(path).load()

            self.assertEqual(settings, AppSettings())
            self.assertEqual(path.with_suffix(".corrupt.json").read_text(encoding="utf-8"), "{not json")


class SettingsModelTests(unittest.TestCase):
    def test_universal_patterns_are_cleaned(self) -> None:
        settings = SyncSettings(universal_patterns=["**/.git", " **/.git ", "", "**/.DS_Store"])
        self.assertEqual(settings.universal_patterns, ["**/.git", "**/.DS_Store"])

    def test_setting_items_are_flat_and_displayable(self) -> None:
        items = dict(AppSettings().setting_items())

        self.assertEqual(items["sync.enabled"], "false")
        self.assertEqual(items["sync.universal_patterns"], "**/.git,**/.DS_Store")
        self.assertEqual(items["sync.exclude_key"], "files.exclude")
        self.assertEqual(items["watch.debounce_s"], "0.25")

    def test_workspace_settings_path(self) -> None:
        self.assertEqual(
            workspace_settings_path(Path("/proj")),
            Path("/proj/.vscode/settings.json"),
        )


class NotifierTests(unittest.TestCase):
    def test_disabled_notifier_sends_nothing(self) -> None:
        with patch("tracksync.notifications.Notify") as notify:
            sent = Notifier(NotificationSettings(desktop=False)).send(NotificationEvent("t", "b"))

        self.assertFalse(sent)
        notify.assert_not_called()

    def test_send_sets_title_and_message(self) -> None:
        with patch("tracksync.notifications.Notify") as notify:
            notify.return_value.send.return_value = True
            sent = Notifier(NotificationSettings()).send(NotificationEvent("tracksync", "disk full", "error"))

        self.assertTrue(sent)
        self.assertEqual(notify.return_value.title, "tracksync")
        self.assertEqual(notify.return_value.message, "disk full")

    def test_send_failure_is_not_raised(self) -> None:
        with patch("tracksync.notifications.Notify") as notify:
            notify.return_value.send.side_effect = RuntimeError("no notification daemon")
            sent = Notifier(NotificationSettings()).send(NotificationEvent("t", "b"))

        self.assertFalse(sent)


class TrackSyncAppBootstrapTests(unittest.TestCase):
    def test_falls_back_to_null_watch_manager_when_inotify_limit_hit(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch(
                "tracksync.app.WatchManager",
                side_effect=OSError(24, "inotify instance limit reached"),
            ):
                app = TrackSyncApp(
                    roots=[Path(tmp)],
                    settings_store=SettingsStore(Path(tmp) / "settings.json"),
                    log_level="off",
                )

        self.assertIsInstance(app.watch_manager, NullWatchManager)
        self.assertIn("Errno 24", app._watcher_startup_error or "")  # noqa: SLF001
        self.assertIn("inotify", app._watcher_startup_message().lower())  # noqa: SLF001

    def test_no_watch_uses_null_manager(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            app = TrackSyncApp(
                roots=[Path(tmp)],
                settings_store=SettingsStore(Path(tmp) / "settings.json"),
                enable_watchers=False,
                log_level="off",
            )

        self.assertIsInstance(app.watch_manager, NullWatchManager)
        self.assertIsNone(app._watcher_startup_error)  # noqa: SLF001


if __name__ == "__main__":
    unittest.main()
