"""Notification dispatch for appointment lifecycle events."""

from .base import NotificationEvent, NotificationKind, Notifier
from .dispatcher import NotificationDispatcher

__all__ = ["NotificationDispatcher", "NotificationEvent", "NotificationKind", "Notifier"]
