"""User-visible notifications raised while improving text."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Callable

LOGGER = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Severity of a notification, mirrored onto logging levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def logging_level(self) -> int:
        return {
            NotificationLevel.INFO: logging.INFO,
            NotificationLevel.WARNING: logging.WARNING,
            NotificationLevel.ERROR: logging.ERROR,
        }[self]


@dataclass(slots=True, frozen=True)
class Notification:
    """One message shown to the user."""

    level: NotificationLevel
    message: str
    detail: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def render(self) -> str:
        if self.detail:
            return f"{self.message}\nRaw response: {self.detail}"
        return self.message


NotificationListener = Callable[[Notification], None]


class Notifier:
    """Fans notifications out to listeners and keeps a short history.

    Listener failures are logged and never interrupt the caller.
    """

    def __init__(self, capacity: int = 100) -> None:
        self._history: deque[Notification] = deque(maxlen=max(10, capacity))
        self._listeners: list[NotificationListener] = []
        self._lock = Lock()

    def add_listener(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: NotificationListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            LOGGER.debug("Notification listener %r was not registered", listener)

    def notify(self, level: NotificationLevel, message: str, *, detail: str | None = None) -> Notification:
        notification = Notification(level=level, message=message, detail=detail)
        LOGGER.log(level.logging_level, "%s", notification.render())
        with self._lock:
            self._history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:  # pragma: no cover - listener bugs must not break requests
                LOGGER.exception("Notification listener %r failed", listener)
        return notification

    def info(self, message: str, *, detail: str | None = None) -> Notification:
        return self.notify(NotificationLevel.INFO, message, detail=detail)

    def warning(self, message: str, *, detail: str | None = None) -> Notification:
        return self.notify(NotificationLevel.WARNING, message, detail=detail)

    def error(self, message: str, *, detail: str | None = None) -> Notification:
        return self.notify(NotificationLevel.ERROR, message, detail=detail)

    def tail(self, limit: int | None = None) -> list[Notification]:
        with self._lock:
            items = list(self._history)
        if limit is None or limit >= len(items):
            return items
        return items[-limit:]

    @property
    def last(self) -> Notification | None:
        with self._lock:
            return self._history[-1] if self._history else None


__all__ = ["Notification", "NotificationLevel", "NotificationListener", "Notifier"]
