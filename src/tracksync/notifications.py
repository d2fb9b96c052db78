"""Desktop notifications for failures the operator should see."""

from __future__ import annotations

from dataclasses import dataclass

from notifypy import Notify

from tracksync.config.models import NotificationSettings
from tracksync.runtime_logging import get_runtime_logger


@dataclass(slots=True)
class NotificationEvent:
    title: str
    body: str
    severity: str = "info"


class Notifier:
    def __init__(self, settings: NotificationSettings) -> None:
        self.settings = settings
        self.logger = get_runtime_logger()

    def send(self, event: NotificationEvent) -> bool:
        if not self.settings.desktop:
            return False

        note = Notify()
        note.title = event.title
        note.message = event.body
        try:
            return bool(note.send())
        except Exception as exc:
            # Headless sessions have no notification daemon.
            self.logger.debug("notify.send.failed", title=event.title, error=str(exc))
            return False
