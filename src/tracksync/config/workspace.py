"""Workspace settings document that carries the published exclusion filter.

A scope is the absolute path of a root. Its document lives at
``<root>/<settings_dir>/settings.json`` and the filter is stored under one key
(``files.exclude`` by default); every other setting in the document is left
alone.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tracksync.errors import SinkWriteError
from tracksync.paths import workspace_settings_path
from tracksync.runtime_logging import get_runtime_logger

EXCLUDE_KEY = "files.exclude"


class WorkspaceSettingsSink:
    def __init__(
        self,
        *,
        settings_dir: str = ".vscode",
        key: str = EXCLUDE_KEY,
        prune_empty: bool = True,
    ) -> None:
        self.settings_dir = settings_dir
        self.key = key
        self.prune_empty = prune_empty
        self.logger = get_runtime_logger()

    def settings_file(self, scope: str) -> Path:
        return workspace_settings_path(Path(scope), self.settings_dir)

    def read(self, scope: str) -> dict[str, bool] | None:
        path = self.settings_file(scope)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("sink.read.unreadable", path=str(path), error=str(exc))
            return None

        if not isinstance(data, dict):
            return None
        value = data.get(self.key)
        if not isinstance(value, dict):
            return None
        return {str(key): bool(flag) for key, flag in value.items()}

    def write(self, scope: str, exclusions: dict[str, bool] | None) -> None:
        path = self.settings_file(scope)
        document = self._load_document(scope, path)

        if exclusions is None:
            if self.key not in document:
                return
            document.pop(self.key)
            if not document and self.prune_empty:
                self._remove_document(scope, path)
                return
        else:
            document[self.key] = {key: exclusions[key] for key in sorted(exclusions)}

        payload = json.dumps(document, indent=2)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"{payload}\n", encoding="utf-8")
        except OSError as exc:
            raise SinkWriteError(scope, str(exc)) from exc
        self.logger.debug(
            "sink.write.done",
            path=str(path),
            cleared=exclusions is None,
            entry_count=len(exclusions or {}),
        )

    def _load_document(self, scope: str, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SinkWriteError(scope, str(exc)) from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            # Never overwrite a document we cannot parse.
            raise SinkWriteError(scope, f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SinkWriteError(scope, f"{path} does not hold a JSON object")
        return data

    def _remove_document(self, scope: str, path: Path) -> None:
        try:
            path.unlink()
            directory = path.parent
            if directory.is_dir() and not any(directory.iterdir()):
                directory.rmdir()
        except OSError as exc:
            raise SinkWriteError(scope, str(exc)) from exc
        self.logger.debug("sink.write.pruned", path=str(path))
