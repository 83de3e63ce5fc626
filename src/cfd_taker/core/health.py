"""Connection monitoring - feed liveness, maker status and periodic health log."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from cfd_taker.core.types import NotificationStatus, Topic

if TYPE_CHECKING:
    from cfd_taker.data.feed import EventStreamAggregator
    from cfd_taker.data.price_feed import PriceFeedAdapter
    from cfd_taker.notifications.center import NotificationCenter

logger = logging.getLogger(__name__)

FEED_NOTIFICATION_ID = "connection-toast"
MAKER_NOTIFICATION_ID = "maker-connection-toast"


@dataclass
class ModuleStatus:
    """Status of a single module."""

    name: str
    connected: bool
    details: str = ""


class ConnectionMonitor:
    """Turns connectivity changes into persistent notifications.

    - Feed disconnected: error notification until the feed is back
    - Maker offline: warning notification until the maker is back online
    - Periodic one-line health log of all sources
    """

    def __init__(
        self,
        feed: "EventStreamAggregator",
        notifications: "NotificationCenter",
        price_feed: "PriceFeedAdapter | None" = None,
        interval_seconds: int = 60,
    ) -> None:
        """Initialize connection monitor.

        Args:
            feed: Daemon feed aggregator
            notifications: Where connectivity notifications are shown
            price_feed: Reference price feed (optional, only logged)
            interval_seconds: Health log interval in seconds (default: 60)
        """
        self._feed = feed
        self._notifications = notifications
        self._price_feed = price_feed
        self._interval = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None
        self._start_time: datetime | None = None
        self._check_count = 0

        feed.on_connection_change(self._on_feed_connection)
        feed.subscribe(Topic.MAKER_STATUS, self._on_maker_status)

    @property
    def maker_online(self) -> bool:
        """Maker connectivity; offline until a status arrives."""
        status = self._feed.latest(Topic.MAKER_STATUS)
        return bool(status and status.online)

    def _on_feed_connection(self, connected: bool) -> None:
        if not connected:
            self._notifications.show(
                NotificationStatus.ERROR,
                "Connection error!",
                "Please ensure your daemon is running.",
                id=FEED_NOTIFICATION_ID,
                duration=None,
            )
        else:
            self._notifications.close(FEED_NOTIFICATION_ID)

    def _on_maker_status(self, topic: Topic, status: Any) -> None:
        if not status.online:
            self._notifications.show(
                NotificationStatus.WARNING,
                "No maker!",
                "You are not connected to any maker. Functionality may be limited",
                id=MAKER_NOTIFICATION_ID,
                duration=None,
            )
        else:
            self._notifications.close(MAKER_NOTIFICATION_ID)

    async def start(self) -> None:
        """Start periodic health logging."""
        self._running = True
        self._start_time = datetime.now()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Connection monitor started (interval: {self._interval}s)")

    async def stop(self) -> None:
        """Stop health logging."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Connection monitor stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                if self._running:
                    self._check_count += 1
                    self._notifications.expire()
                    self._log_health_status()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Health check error: {e}")

    def _log_health_status(self) -> None:
        statuses = self.collect_statuses()
        parts = []
        for status in statuses:
            part = f"{status.name}:{'ok' if status.connected else 'down'}"
            if status.details:
                part += f"({status.details})"
            parts.append(part)

        level = logging.INFO if all(s.connected for s in statuses) else logging.WARNING
        logger.log(
            level, f"Health #{self._check_count} [{self._format_uptime()}] {' | '.join(parts)}"
        )

    def collect_statuses(self) -> list[ModuleStatus]:
        """Collect status from all sources."""
        statuses = [
            ModuleStatus(
                name="Feed",
                connected=self._feed.is_connected,
                details=f"{self._feed.discarded_messages} discarded"
                if self._feed.discarded_messages
                else "",
            )
        ]

        if self._price_feed is not None:
            price = self._price_feed.reference_price
            statuses.append(
                ModuleStatus(
                    name="Price",
                    connected=self._price_feed.is_connected,
                    details=str(price) if price is not None else "no price",
                )
            )

        status = self._feed.latest(Topic.MAKER_STATUS)
        statuses.append(
            ModuleStatus(
                name="Maker",
                connected=self.maker_online,
                details="" if status is not None else "unknown",
            )
        )

        cfds = self._feed.latest(Topic.CFDS) or ()
        statuses.append(ModuleStatus(name="Cfds", connected=True, details=str(len(cfds))))
        return statuses

    def _format_uptime(self) -> str:
        if not self._start_time:
            return "0s"

        total_seconds = int((datetime.now() - self._start_time).total_seconds())
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}h{minutes}m"
        elif minutes > 0:
            return f"{minutes}m{seconds}s"
        else:
            return f"{seconds}s"
