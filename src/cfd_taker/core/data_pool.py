"""Latest-value store for feed topics."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cfd_taker.core.types import Topic

logger = logging.getLogger(__name__)

TopicCallback = Callable[[Topic, Any], None]


@dataclass(frozen=True)
class DataSnapshot:
    """Point-in-time view of every topic.

    Topics are independent: the values may stem from different moments.
    """

    timestamp: datetime
    values: dict[Topic, Any] = field(default_factory=dict)

    def get(self, topic: Topic) -> Any:
        return self.values.get(topic)


class DataPool:
    """Single-writer, multi-reader cells, one per topic.

    Every update replaces the previous value of its topic before any
    subscriber of that topic is called.
    """

    def __init__(self) -> None:
        self._values: dict[Topic, Any] = {}
        self._updated_at: dict[Topic, datetime] = {}
        self._subscribers: dict[Topic | None, list[TopicCallback]] = {}

    def subscribe(self, topic: Topic | None, callback: TopicCallback) -> None:
        """Subscribe to updates.

        Args:
            topic: Topic to watch, or None for every topic
            callback: Function called with (topic, value) after the value was replaced
        """
        self._subscribers.setdefault(topic, []).append(callback)

    def unsubscribe(self, topic: Topic | None, callback: TopicCallback) -> None:
        """Unsubscribe from updates."""
        callbacks = self._subscribers.get(topic, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def update(self, topic: Topic, value: Any) -> None:
        """Replace the value of a topic and notify its subscribers."""
        self._values[topic] = value
        self._updated_at[topic] = datetime.now()
        self._notify(topic, value)

    def _notify(self, topic: Topic, value: Any) -> None:
        subscribers = list(self._subscribers.get(topic, [])) + list(
            self._subscribers.get(None, [])
        )
        for callback in subscribers:
            try:
                callback(topic, value)
            except Exception:
                logger.exception(f"Subscriber failed handling '{topic.value}' update")

    def latest(self, topic: Topic) -> Any:
        """Get the latest value of a topic, or None if nothing arrived yet."""
        return self._values.get(topic)

    def has(self, topic: Topic) -> bool:
        """Check whether a topic has received at least one value."""
        return topic in self._values

    def updated_at(self, topic: Topic) -> datetime | None:
        """Get the time the topic was last replaced."""
        return self._updated_at.get(topic)

    def get_snapshot(self) -> DataSnapshot:
        """Get a point-in-time snapshot of all topics."""
        return DataSnapshot(timestamp=datetime.now(), values=dict(self._values))
