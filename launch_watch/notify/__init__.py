"""Notification delivery."""

from .telegram import LogNotifier, NotConfiguredError, NotificationError, Notifier, TelegramNotifier

__all__ = ["LogNotifier", "NotConfiguredError", "NotificationError", "Notifier", "TelegramNotifier"]
