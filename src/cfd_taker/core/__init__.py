"""Core infrastructure module."""

from cfd_taker.core.data_pool import DataPool, DataSnapshot
from cfd_taker.core.errors import (
    DaemonAPIError,
    FeedDecodeError,
    SubmissionBlockedError,
    SubmissionInFlightError,
    TakerError,
    UnavailableActionError,
)
from cfd_taker.core.types import (
    CfdAction,
    CfdState,
    CfdStateGroup,
    NotificationStatus,
    Side,
    Topic,
)

__all__ = [
    "CfdAction",
    "CfdState",
    "CfdStateGroup",
    "DaemonAPIError",
    "DataPool",
    "DataSnapshot",
    "FeedDecodeError",
    "NotificationStatus",
    "Side",
    "SubmissionBlockedError",
    "SubmissionInFlightError",
    "TakerError",
    "Topic",
    "UnavailableActionError",
]
