"""Exception hierarchy for the taker core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cfd_taker.trading.calculator import TradeWarning


class TakerError(Exception):
    """Base class for all taker errors."""


class FeedDecodeError(TakerError):
    """A single feed message could not be decoded into its topic's type."""

    def __init__(self, topic: str, reason: str) -> None:
        self.topic = topic
        self.reason = reason
        super().__init__(f"Failed to decode '{topic}' message: {reason}")


class DaemonAPIError(TakerError):
    """The daemon answered with a non-2xx status or could not be reached.

    ``status`` is None for transport failures.
    """

    def __init__(self, status: int | None, description: str) -> None:
        self.status = status
        self.description = description
        super().__init__(f"Daemon API error (status={status}): {description}")


class SubmissionBlockedError(TakerError):
    """The order failed local validation and was never sent."""

    def __init__(self, warning: TradeWarning | None) -> None:
        self.warning = warning
        title = warning.title if warning else "Order cannot be submitted"
        super().__init__(title)


class SubmissionInFlightError(TakerError):
    """A previous request is still pending."""


class UnavailableActionError(TakerError):
    """The requested CFD action is not offered for the CFD's current state."""
