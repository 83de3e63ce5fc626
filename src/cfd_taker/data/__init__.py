"""Data module - daemon feed, reference price feed and topic models."""

from cfd_taker.data.feed import EventStreamAggregator, SseParser
from cfd_taker.data.models import (
    Cfd,
    ConnectionStatus,
    IdentityInfo,
    LeverageDetail,
    MakerOffer,
    WalletInfo,
    decode_topic,
)
from cfd_taker.data.price_feed import PriceFeedAdapter
from cfd_taker.data.reconnect import (
    AlwaysReconnect,
    ExponentialBackoff,
    NoReconnect,
    ReconnectPolicy,
)

__all__ = [
    "AlwaysReconnect",
    "Cfd",
    "ConnectionStatus",
    "EventStreamAggregator",
    "ExponentialBackoff",
    "IdentityInfo",
    "LeverageDetail",
    "MakerOffer",
    "NoReconnect",
    "PriceFeedAdapter",
    "ReconnectPolicy",
    "SseParser",
    "WalletInfo",
    "decode_topic",
]
