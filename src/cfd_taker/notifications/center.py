"""User-facing notifications."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cfd_taker.core.types import NotificationStatus

logger = logging.getLogger(__name__)

ERROR_DURATION = timedelta(seconds=10)

_LOG_LEVELS = {
    NotificationStatus.ERROR: logging.ERROR,
    NotificationStatus.WARNING: logging.WARNING,
    NotificationStatus.INFO: logging.INFO,
}


@dataclass(frozen=True)
class Notification:
    """A notification; ``duration`` None means it stays until closed."""

    id: str
    status: NotificationStatus
    title: str
    description: str = ""
    duration: timedelta | None = None
    dismissible: bool = True
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def persistent(self) -> bool:
        return self.duration is None

    def expired(self, now: datetime) -> bool:
        return self.duration is not None and now >= self.created_at + self.duration


class NotificationCenter:
    """Keeps the active notifications, one per id."""

    def __init__(self) -> None:
        self._active: dict[str, Notification] = {}
        self._listeners: list[Callable[[str, Notification | None], None]] = []
        self._counter = 0
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def on_change(self, callback: Callable[[str, Notification | None], None]) -> None:
        """Register a callback called with (id, notification or None when closed)."""
        self._listeners.append(callback)

    def _emit(self, notification_id: str, notification: Notification | None) -> None:
        for callback in list(self._listeners):
            try:
                callback(notification_id, notification)
            except Exception as e:
                logger.error(f"Error in notification listener: {e}")

    def show(
        self,
        status: NotificationStatus,
        title: str,
        description: str = "",
        *,
        id: str | None = None,
        duration: timedelta | None = ERROR_DURATION,
        dismissible: bool = True,
    ) -> Notification:
        """Show a notification.

        Showing an id that is already active keeps the existing one.
        """
        if id is not None and id in self._active:
            return self._active[id]

        if id is None:
            self._counter += 1
            id = f"notification-{self._counter}"

        notification = Notification(
            id=id,
            status=status,
            title=title,
            description=description,
            duration=duration,
            dismissible=dismissible,
        )
        self._active[id] = notification
        if duration is not None:
            self._schedule_expiry(notification)
        logger.log(_LOG_LEVELS[status], f"{title} {description}".strip())
        self._emit(id, notification)
        return notification

    def _schedule_expiry(self, notification: Notification) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no event loop: expire() drops it on the next sweep
            return
        self._timers[notification.id] = loop.call_later(
            notification.duration.total_seconds(), self._expire_one, notification
        )

    def _expire_one(self, notification: Notification) -> None:
        self._timers.pop(notification.id, None)
        if self._active.get(notification.id) is notification:
            self.close(notification.id)

    def close(self, notification_id: str) -> bool:
        """Close a notification; returns False if it was not active."""
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        if self._active.pop(notification_id, None) is None:
            return False
        self._emit(notification_id, None)
        return True

    def is_active(self, notification_id: str) -> bool:
        return notification_id in self._active

    def get(self, notification_id: str) -> Notification | None:
        return self._active.get(notification_id)

    def expire(self, now: datetime | None = None) -> list[str]:
        """Drop time-limited notifications whose duration elapsed."""
        now = now or datetime.now()
        expired = [n.id for n in self._active.values() if n.expired(now)]
        for notification_id in expired:
            self.close(notification_id)
        return expired

    @property
    def active(self) -> list[Notification]:
        return list(self._active.values())
