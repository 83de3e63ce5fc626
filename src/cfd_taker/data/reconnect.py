"""Reconnection strategies for long-lived feed connections."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ReconnectPolicy(Protocol):
    """Decides whether and when a dropped connection is re-established.

    ``attempt`` counts consecutive failed connections, starting at 1.
    """

    def should_retry(self, attempt: int) -> bool: ...

    def delay(self, attempt: int) -> float: ...


class AlwaysReconnect:
    """Retry forever after a fixed delay."""

    def __init__(self, delay_seconds: float = 1.0) -> None:
        self._delay = delay_seconds

    def should_retry(self, attempt: int) -> bool:
        return True

    def delay(self, attempt: int) -> float:
        return self._delay


class ExponentialBackoff:
    """Double the delay after every failed attempt, up to a cap.

    Retries forever unless ``max_attempts`` is set.
    """

    MIN_RECONNECT_DELAY = 1.0  # Initial delay in seconds
    MAX_RECONNECT_DELAY = 60.0  # Maximum delay in seconds
    RECONNECT_MULTIPLIER = 2.0

    def __init__(
        self,
        min_delay: float = MIN_RECONNECT_DELAY,
        max_delay: float = MAX_RECONNECT_DELAY,
        multiplier: float = RECONNECT_MULTIPLIER,
        max_attempts: int | None = None,
    ) -> None:
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._multiplier = multiplier
        self._max_attempts = max_attempts

    def should_retry(self, attempt: int) -> bool:
        return self._max_attempts is None or attempt <= self._max_attempts

    def delay(self, attempt: int) -> float:
        return min(self._min_delay * self._multiplier ** max(attempt - 1, 0), self._max_delay)


class NoReconnect:
    """Give up as soon as the connection drops."""

    def should_retry(self, attempt: int) -> bool:
        return False

    def delay(self, attempt: int) -> float:
        return 0.0
