"""Structured JSONL runtime logging for tracksync.

Every record is one JSON object per line with ``ts``, ``level``, ``event`` and
``pid`` plus free-form keyword fields. Bound loggers carry fixed fields (for
example the root a controller is working on) into every record they write and
share the file of the logger they were bound from.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import UTC, datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Literal

from tracksync.paths import state_root

LogLevel = Literal["off", "error", "warning", "info", "debug"]

LEVEL_ENV = "TRACKSYNC_LOG_LEVEL"
FILE_ENV = "TRACKSYNC_LOG_FILE"
DEFAULT_LEVEL: LogLevel = "warning"

_ALIASES = {"warn": "warning", "none": "off", "disabled": "off", "0": "off"}


class Severity(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    OFF = 100


def parse_level(value: str | None, default: LogLevel = DEFAULT_LEVEL) -> LogLevel:
    if not value:
        return default
    name = value.strip().lower()
    name = _ALIASES.get(name, name)
    if name.upper() not in Severity.__members__:
        return default
    return name  # type: ignore[return-value]


def default_log_file() -> Path:
    return state_root() / "logs" / "tracksync.runtime.jsonl"


class _JsonlFile:
    """Append-only JSONL file shared by a logger and everything bound from it."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def append(self, record: dict[str, Any]) -> None:
        line = json.dumps(record, sort_keys=True, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(f"{line}\n")


class RuntimeLogger:
    def __init__(
        self,
        level: LogLevel,
        output: _JsonlFile | None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.level = level
        self.threshold = Severity[level.upper()]
        self.output = output
        self.context = dict(context or {})

    @property
    def sink_path(self) -> Path | None:
        return self.output.path if self.output is not None else None

    def enabled(self, level: str) -> bool:
        if self.output is None or self.threshold >= Severity.OFF:
            return False
        return Severity[level.upper()] >= self.threshold

    def bind(self, **fields: Any) -> RuntimeLogger:
        """Return a logger writing to the same file with ``fields`` attached."""
        return RuntimeLogger(self.level, self.output, {**self.context, **fields})

    def log(self, level: str, event: str, **fields: Any) -> None:
        if self.output is None or not self.enabled(level):
            return
        self.output.append(
            {
                "ts": datetime.now(UTC).isoformat(),
                "level": level,
                "event": event,
                "pid": os.getpid(),
                **self.context,
                **fields,
            }
        )

    def debug(self, event: str, **fields: Any) -> None:
        self.log("debug", event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.log("info", event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.log("warning", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.log("error", event, **fields)


_runtime_logger: RuntimeLogger | None = None


def configure_runtime_logging(
    *,
    level: str | None = None,
    log_file: str | Path | None = None,
) -> RuntimeLogger:
    """Install the process logger from arguments, falling back to the environment."""
    global _runtime_logger

    effective_level = parse_level(level or os.getenv(LEVEL_ENV))
    if effective_level == "off":
        _runtime_logger = RuntimeLogger("off", None)
        return _runtime_logger

    raw_file = log_file or os.getenv(FILE_ENV)
    path = Path(raw_file).expanduser().resolve() if raw_file else default_log_file()
    _runtime_logger = RuntimeLogger(effective_level, _JsonlFile(path))
    _runtime_logger.info("logging.configured", configured_level=effective_level, sink_path=str(path))
    return _runtime_logger


def get_runtime_logger() -> RuntimeLogger:
    global _runtime_logger
    if _runtime_logger is None:
        _runtime_logger = configure_runtime_logging()
    return _runtime_logger
