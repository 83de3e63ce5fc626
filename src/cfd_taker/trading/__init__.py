"""Trading module - offer normalization, trade calculation and CFD lifecycle."""

from cfd_taker.trading.calculator import (
    TradeForm,
    TradeIntent,
    TradeQuote,
    TradeWarning,
    WarningKind,
    calculate,
    lot_aligned,
)
from cfd_taker.trading.lifecycle import partition_cfds, state_group
from cfd_taker.trading.offer import NO_OFFER, Offer, offer_from_maker

__all__ = [
    "NO_OFFER",
    "Offer",
    "TradeForm",
    "TradeIntent",
    "TradeQuote",
    "TradeWarning",
    "WarningKind",
    "calculate",
    "lot_aligned",
    "offer_from_maker",
    "partition_cfds",
    "state_group",
]
