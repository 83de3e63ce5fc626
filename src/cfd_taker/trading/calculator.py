"""Margin, fee and validity calculation for a new position.

The calculation is a pure function of the offer, the taker's chosen
leverage and quantity, and the wallet balance. Every validity flag is
computed independently; ``can_submit`` ANDs all of them, while only the
highest-priority active flag is surfaced as the user-facing warning.

Warning priority (highest first):
    balance too low > not lot-aligned > quantity too high
    > quantity too low / not positive > no offer > leverage not offered
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from cfd_taker.core.types import NotificationStatus
from cfd_taker.trading.offer import Offer

logger = logging.getLogger(__name__)

DEFAULT_LEVERAGE = 2
ZERO = Decimal("0")


class WarningKind(str, Enum):
    """Reasons an order cannot be submitted, in display priority order."""

    BALANCE_TOO_LOW = "balance_too_low"
    QUANTITY_NOT_LOT_ALIGNED = "quantity_not_lot_aligned"
    QUANTITY_TOO_HIGH = "quantity_too_high"
    QUANTITY_TOO_LOW = "quantity_too_low"
    NO_OFFER = "no_offer"
    LEVERAGE_UNAVAILABLE = "leverage_unavailable"


@dataclass(frozen=True)
class TradeWarning:
    """Inline warning shown next to the order form."""

    kind: WarningKind
    title: str
    description: str
    status: NotificationStatus = NotificationStatus.ERROR


@dataclass(frozen=True)
class TradeIntent:
    """Order about to be submitted."""

    offer_id: str
    quantity: Decimal
    leverage: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "offer_id": self.offer_id,
            "quantity": _json_number(self.quantity),
            "leverage": self.leverage,
        }


@dataclass(frozen=True)
class TradeQuote:
    """Result of a trade calculation."""

    offer: Offer
    leverage: int | None
    quantity: Decimal
    wallet_balance: Decimal
    margin: Decimal
    settlement_fee: Decimal
    liquidation_price: Decimal | None
    balance_too_low: bool
    quantity_too_high: bool
    quantity_too_low: bool
    quantity_not_positive: bool
    quantity_not_lot_aligned: bool
    no_offer: bool
    leverage_unavailable: bool = False
    submitting: bool = False

    @property
    def is_valid(self) -> bool:
        """True when no validity flag is set."""
        return not (
            self.no_offer
            or self.balance_too_low
            or self.quantity_too_high
            or self.quantity_too_low
            or self.quantity_not_positive
            or self.quantity_not_lot_aligned
            or self.leverage_unavailable
        )

    @property
    def can_submit(self) -> bool:
        return self.is_valid and not self.submitting

    @property
    def warning(self) -> TradeWarning | None:
        """The single highest-priority active warning."""
        return select_warning(self)

    def intent(self) -> TradeIntent | None:
        """Build the order for this quote; None without an offer or leverage."""
        if self.offer.id is None or self.leverage is None:
            return None
        return TradeIntent(offer_id=self.offer.id, quantity=self.quantity, leverage=self.leverage)


def _json_number(value: Decimal) -> int | float:
    return int(value) if value == value.to_integral_value() else float(value)


def _fmt(value: Decimal) -> str:
    return f"{value:f}"


def lot_aligned(quantity: Decimal, lot_size: Decimal) -> bool:
    """Check that a quantity is a whole multiple of the lot size."""
    return quantity % lot_size == 0


def calculate(
    offer: Offer,
    leverage: int | None,
    quantity: Decimal | int,
    wallet_balance: Decimal | None = None,
    *,
    submitting: bool = False,
) -> TradeQuote:
    """Compute margin, fee and validity for a new position.

    Args:
        offer: Normalized offer (use the no-offer default when none exists)
        leverage: Chosen leverage; without a matching tier margin and fee are zero
        quantity: Chosen quantity in contracts
        wallet_balance: Available balance, zero when the wallet is unknown
        submitting: Whether an order submission is in flight

    Returns:
        The quote with all validity flags
    """
    quantity = Decimal(quantity)
    balance = wallet_balance if wallet_balance is not None else ZERO

    detail = offer.leverage_detail(leverage)
    margin_per_lot = detail.margin_per_lot if detail else ZERO
    fee_per_lot = detail.initial_funding_fee_per_lot if detail else ZERO

    lots = quantity / offer.lot_size
    margin = lots * margin_per_lot
    settlement_fee = lots * fee_per_lot

    return TradeQuote(
        offer=offer,
        leverage=leverage,
        quantity=quantity,
        wallet_balance=balance,
        margin=margin,
        settlement_fee=settlement_fee,
        liquidation_price=detail.liquidation_price if detail else None,
        balance_too_low=balance < margin,
        quantity_too_high=quantity > offer.max_quantity,
        quantity_too_low=quantity < offer.min_quantity,
        quantity_not_positive=not quantity > 0,
        quantity_not_lot_aligned=not lot_aligned(quantity, offer.lot_size),
        no_offer=offer.id is None,
        leverage_unavailable=detail is None,
        submitting=submitting,
    )


def select_warning(quote: TradeQuote) -> TradeWarning | None:
    """Pick the warning to display for a quote."""
    offer = quote.offer
    if quote.balance_too_low:
        return TradeWarning(
            kind=WarningKind.BALANCE_TOO_LOW,
            title="Not enough balance to open a new position!",
            description="Deposit more into your wallet.",
            status=NotificationStatus.WARNING,
        )
    if quote.quantity_not_lot_aligned:
        return TradeWarning(
            kind=WarningKind.QUANTITY_NOT_LOT_ALIGNED,
            title=f"Quantity is not in increments of {_fmt(offer.lot_size)}!",
            description=f"Increment is {_fmt(offer.lot_size)}",
        )
    if quote.quantity_too_high:
        return TradeWarning(
            kind=WarningKind.QUANTITY_TOO_HIGH,
            title="Quantity too high!",
            description=f"Max available liquidity is {_fmt(offer.max_quantity)}",
        )
    if quote.quantity_too_low or quote.quantity_not_positive:
        return TradeWarning(
            kind=WarningKind.QUANTITY_TOO_LOW,
            title="Quantity too low!",
            description=f"Min quantity is {_fmt(offer.min_quantity)}",
        )
    if quote.no_offer:
        return TradeWarning(
            kind=WarningKind.NO_OFFER,
            title="Limited liquidity in maker!",
            description="The maker you are connected has no active offers",
            status=NotificationStatus.WARNING,
        )
    if quote.leverage_unavailable:
        choices = ", ".join(str(c) for c in offer.leverage_choices)
        return TradeWarning(
            kind=WarningKind.LEVERAGE_UNAVAILABLE,
            title=f"Leverage {quote.leverage} is not offered!",
            description=f"Available leverage: {choices or 'none'}",
            status=NotificationStatus.WARNING,
        )
    return None


def warning_for(quote: TradeQuote, maker_online: bool) -> TradeWarning | None:
    """Inline warning to show; suppressed while the maker is offline.

    The maker-offline notification covers that case on its own.
    """
    if not maker_online:
        return None
    return quote.warning


def parse_quantity(value: Any) -> Decimal:
    """Parse user input into a quantity; unparsable input counts as zero."""
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not quantity.is_finite():
        return ZERO
    return quantity


@dataclass
class TradeForm:
    """Client-local order form state for one side."""

    quantity: Decimal = ZERO
    leverage: int = DEFAULT_LEVERAGE
    user_has_edited: bool = False

    def set_quantity(self, value: Any) -> None:
        """Apply a user edit of the quantity field."""
        self.quantity = parse_quantity(value)
        self.user_has_edited = True

    def set_leverage(self, leverage: int) -> None:
        self.leverage = int(leverage)

    def sync_with_offer(self, offer: Offer) -> None:
        """Follow the offer's minimum quantity until the user edits the field."""
        if not self.user_has_edited and self.quantity != offer.min_quantity:
            logger.debug(f"Quantity follows offer minimum: {self.quantity} -> {offer.min_quantity}")
            self.quantity = offer.min_quantity

    def quote(
        self, offer: Offer, wallet_balance: Decimal | None, *, submitting: bool = False
    ) -> TradeQuote:
        return calculate(
            offer, self.leverage, self.quantity, wallet_balance, submitting=submitting
        )
