"""Service layer helpers (settings, notifications)."""

from .notifications import Notification, NotificationLevel, Notifier
from .settings import Settings, SettingsStore

__all__ = ["Notification", "NotificationLevel", "Notifier", "Settings", "SettingsStore"]
