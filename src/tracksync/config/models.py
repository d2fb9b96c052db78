"""Settings schema for tracksync."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class SyncSettings(BaseModel):
    enabled: bool = Field(default=False, description="Publish the exclusion filter")
    reserved_dir: str = Field(default=".vscode", description="Root directory never hidden")
    universal_patterns: list[str] = Field(default_factory=lambda: ["**/.git", "**/.DS_Store"])
    settings_dir: str = Field(default=".vscode")
    exclude_key: str = Field(default="files.exclude")
    prune_empty_settings: bool = Field(default=True)

    @field_validator("universal_patterns")
    @classmethod
    def validate_patterns(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item.strip()]
        return list(dict.fromkeys(cleaned))


class WatchSettings(BaseModel):
    enabled: bool = Field(default=True)
    debounce_s: float = Field(default=0.25, ge=0.0, le=10.0)


class TreeSettings(BaseModel):
    max_entries: int = Field(default=5000, ge=100, le=200000)


class NotificationSettings(BaseModel):
    desktop: bool = Field(default=True)


class PathsSettings(BaseModel):
    roots: list[str] = Field(default_factory=list)

    @field_validator("roots")
    @classmethod
    def validate_roots(cls, value: list[str]) -> list[str]:
        return [str(Path(item).expanduser()) for item in value]


class AppSettings(BaseModel):
    schema_version: int = Field(default=1)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    tree: TreeSettings = Field(default_factory=TreeSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    paths: PathsSettings = Field(default_factory=PathsSettings)

    def setting_items(self) -> list[tuple[str, str]]:
        """Flatten key/value pairs for the ``settings`` command."""

        result: list[tuple[str, str]] = []

        def walk(prefix: str, value: object) -> None:
            if isinstance(value, BaseModel):
                for key, nested in value.model_dump().items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            elif isinstance(value, dict):
                for key, nested in value.items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            else:
                result.append((prefix, display_value(value)))

        walk("", self)
        return result


def display_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return str(value)
