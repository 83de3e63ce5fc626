"""Daemon server-sent event stream client."""

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import aiohttp

from cfd_taker.core.data_pool import DataPool, TopicCallback
from cfd_taker.core.errors import FeedDecodeError
from cfd_taker.core.types import Topic
from cfd_taker.data.models import decode_topic
from cfd_taker.data.reconnect import AlwaysReconnect, ReconnectPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SseEvent:
    """One dispatched server-sent event."""

    name: str
    data: str


class SseParser:
    """Incremental parser for the ``text/event-stream`` line format.

    Only ``event`` and ``data`` fields matter for the daemon feed; ``id``
    and ``retry`` are accepted and ignored.
    """

    def __init__(self) -> None:
        self._name = ""
        self._data: list[str] = []

    def feed_line(self, line: str) -> SseEvent | None:
        """Consume one line (without its terminator).

        Returns:
            The completed event when the line is the blank separator, else None
        """
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._name = value
        elif name == "data":
            self._data.append(value)
        return None

    def _dispatch(self) -> SseEvent | None:
        name, data = self._name, self._data
        self._name, self._data = "", []
        if not data:
            return None
        return SseEvent(name=name or "message", data="\n".join(data))


class EventStreamAggregator:
    """Keeps the latest decoded value of every daemon feed topic.

    Features:
    - One multiplexed SSE connection, many named topics
    - Malformed messages are dropped, the previous value survives
    - Liveness flag with change callbacks
    - Injectable reconnect policy
    """

    def __init__(
        self,
        url: str,
        data_pool: DataPool | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
        auth: aiohttp.BasicAuth | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            url: Full URL of the feed endpoint (e.g. "http://127.0.0.1:8000/api/feed")
            data_pool: Topic store to write into (a private one is created if omitted)
            reconnect_policy: Strategy applied after the stream drops
            auth: Optional HTTP basic auth for the daemon
            session: Optional aiohttp session; created lazily otherwise
        """
        self._url = url
        self._pool = data_pool or DataPool()
        self._policy = reconnect_policy or AlwaysReconnect()
        self._auth = auth
        self._session = session
        self._owns_session = session is None
        self._connected = False
        self._running = False
        self._task: asyncio.Task | None = None
        self._connection_callbacks: list[Callable[[bool], None]] = []
        self._discarded = 0
        self._attempt = 0

    @property
    def data_pool(self) -> DataPool:
        return self._pool

    @property
    def is_connected(self) -> bool:
        """Check if the feed is currently connected."""
        return self._connected

    @property
    def discarded_messages(self) -> int:
        """Number of messages dropped because they failed to decode."""
        return self._discarded

    def latest(self, topic: Topic) -> Any:
        """Get the latest value of a topic, or None if none arrived yet."""
        return self._pool.latest(topic)

    def subscribe(self, topic: Topic | None, callback: TopicCallback) -> None:
        """Register a callback for a topic (None for all topics)."""
        self._pool.subscribe(topic, callback)

    def on_connection_change(self, callback: Callable[[bool], None]) -> None:
        """Register a callback called with the new liveness on every transition."""
        self._connection_callbacks.append(callback)

    def _set_connected(self, connected: bool, *, attempt_failed: bool = False) -> None:
        # A failed attempt is reported even if the feed was never up
        changed = connected != self._connected
        if not changed and not attempt_failed:
            return
        self._connected = connected
        if connected:
            logger.info(f"Feed connected: {self._url}")
        elif changed:
            logger.warning(f"Feed disconnected: {self._url}")
        for callback in list(self._connection_callbacks):
            try:
                callback(connected)
            except Exception as e:
                logger.error(f"Error in connection callback: {e}")

    def handle_event(self, name: str, data: str) -> bool:
        """Decode one feed event and store it under its topic.

        Args:
            name: SSE event name (the topic)
            data: Raw JSON payload

        Returns:
            True if the topic value was replaced
        """
        try:
            topic = Topic(name)
        except ValueError:
            logger.debug(f"Ignoring event for unknown topic '{name}'")
            return False

        try:
            payload = json.loads(data)
            value = decode_topic(topic, payload)
        except json.JSONDecodeError as e:
            self._discarded += 1
            logger.warning(f"Discarding malformed '{topic.value}' message: {e}")
            return False
        except FeedDecodeError as e:
            self._discarded += 1
            logger.warning(f"Discarding malformed '{topic.value}' message: {e.reason}")
            return False

        self._pool.update(topic, value)
        return True

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(auth=self._auth)
            self._owns_session = True
        return self._session

    async def start(self) -> None:
        """Start consuming the feed in a background task."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self.run())
        logger.info(f"Started feed stream: {self._url}")

    async def run(self) -> None:
        """Consume the feed until closed or the reconnect policy gives up."""
        self._running = True
        self._attempt = 0

        while self._running:
            try:
                await self._consume()
            except asyncio.CancelledError:
                raise
            except aiohttp.ClientError as e:
                logger.warning(f"Feed connection error: {e}")
            except Exception as e:
                logger.error(f"Feed stream error: {e}")

            if not self._running:
                self._connected = False
                break
            self._set_connected(False, attempt_failed=True)

            self._attempt += 1
            if not self._policy.should_retry(self._attempt):
                logger.error(f"Giving up on feed after {self._attempt} failed attempt(s)")
                break
            delay = self._policy.delay(self._attempt)
            logger.info(f"Reconnecting to feed in {delay:.1f}s (attempt {self._attempt})...")
            await asyncio.sleep(delay)

        self._running = False

    async def _consume(self) -> None:
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=10)
        async with session.get(
            self._url,
            headers={"Accept": "text/event-stream"},
            timeout=timeout,
        ) as resp:
            resp.raise_for_status()
            self._attempt = 0
            self._set_connected(True)

            parser = SseParser()
            async for raw in resp.content:
                if not self._running:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                event = parser.feed_line(line)
                if event is not None:
                    self.handle_event(event.name, event.data)

    async def close(self) -> None:
        """Stop the stream and release the HTTP session."""
        self._running = False

        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        # A deliberate shutdown is not reported as a lost connection
        if self._connected:
            self._connected = False
            logger.info(f"Feed closed: {self._url}")

        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None
