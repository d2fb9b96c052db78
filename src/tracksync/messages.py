"""Textual message objects for controller/app coordination."""

from __future__ import annotations

from pathlib import Path

from textual.message import Message


class TrackedSetChanged(Message):
    def __init__(self, *, root: Path) -> None:
        self.root = root
        super().__init__()


class SyncToggled(Message):
    def __init__(self, *, enabled: bool) -> None:
        self.enabled = enabled
        super().__init__()
