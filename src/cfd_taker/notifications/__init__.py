"""User-facing notifications."""

from cfd_taker.notifications.center import Notification, NotificationCenter

__all__ = ["Notification", "NotificationCenter"]
