"""Persisted application settings addressed by dotted keys (``sync.enabled``)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tracksync.config.models import AppSettings
from tracksync.paths import settings_path
from tracksync.runtime_logging import get_runtime_logger


def _locate(data: dict[str, Any], dotted_key: str) -> tuple[dict[str, Any], str]:
    """Return the section holding ``dotted_key`` and the leaf name within it."""
    *sections, leaf = dotted_key.split(".")
    cursor = data
    for name in sections:
        nested = cursor.get(name)
        if not isinstance(nested, dict):
            raise KeyError(f"Unknown setting path: {dotted_key}")
        cursor = nested
    if leaf not in cursor:
        raise KeyError(f"Unknown setting path: {dotted_key}")
    return cursor, leaf


class SettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings_path()
        self.logger = get_runtime_logger()

    def load(self) -> AppSettings:
        """Read settings, writing defaults when the file is missing or unusable."""
        if not self.path.exists():
            return self._reset()

        raw = self.path.read_text(encoding="utf-8")
        try:
            return AppSettings.model_validate_json(raw)
        except ValidationError as exc:
            # Keep the unusable payload next to the file for inspection.
            backup = self.path.with_suffix(".corrupt.json")
            backup.write_text(raw, encoding="utf-8")
            self.logger.warning(
                "settings.load.corrupt",
                path=str(self.path),
                backup=str(backup),
                error_count=exc.error_count(),
            )
            return self._reset()

    def save(self, settings: AppSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(settings.model_dump(mode="json"), indent=2, sort_keys=True)
        self.path.write_text(f"{payload}\n", encoding="utf-8")

    def get(self, dotted_key: str) -> Any:
        section, leaf = _locate(self.load().model_dump(mode="json"), dotted_key)
        return section[leaf]

    def update(self, dotted_key: str, value: Any) -> AppSettings:
        data = self.load().model_dump()
        section, leaf = _locate(data, dotted_key)
        section[leaf] = value

        updated = AppSettings.model_validate(data)
        self.save(updated)
        self.logger.info("settings.updated", key=dotted_key)
        return updated

    def set_sync_enabled(self, enabled: bool) -> AppSettings:
        return self.update("sync.enabled", enabled)

    def _reset(self) -> AppSettings:
        settings = AppSettings()
        self.save(settings)
        return settings
