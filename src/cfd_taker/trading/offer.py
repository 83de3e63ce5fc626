"""Normalization of maker offers for the taker."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from cfd_taker.core.types import Side
from cfd_taker.data.models import LeverageDetail, MakerOffer

DEFAULT_LOT_SIZE = Decimal("100")
FUNDING_RATE_PLACES = Decimal("0.00001")


@dataclass(frozen=True)
class Offer:
    """Offer shape consumed by the trade calculator.

    Without a maker offer every field but the quantity bounds and lot size
    is absent, and the bounds make any positive quantity invalid.
    """

    min_quantity: Decimal = Decimal("0")
    max_quantity: Decimal = Decimal("0")
    lot_size: Decimal = DEFAULT_LOT_SIZE
    leverage_details: tuple[LeverageDetail, ...] = ()
    id: str | None = None
    price: Decimal | None = None
    funding_rate_annualized: Decimal | None = None
    funding_rate_hourly: Decimal | None = None

    @property
    def leverage_choices(self) -> list[int]:
        return [detail.leverage for detail in self.leverage_details]

    def leverage_detail(self, leverage: int | None) -> LeverageDetail | None:
        """Find the tier for a leverage, None if the offer has none."""
        if leverage is None:
            return None
        for detail in self.leverage_details:
            if detail.leverage == leverage:
                return detail
        return None


NO_OFFER = Offer()


def round_funding_rate(rate: Decimal) -> Decimal:
    return rate.quantize(FUNDING_RATE_PLACES, rounding=ROUND_HALF_UP)


def offer_from_maker(maker: MakerOffer | None) -> Offer:
    """Map a raw maker offer (or its absence) to a taker offer."""
    if maker is None:
        return NO_OFFER

    return Offer(
        id=maker.id,
        price=maker.price,
        funding_rate_annualized=maker.funding_rate_annualized_percent,
        funding_rate_hourly=round_funding_rate(maker.funding_rate_hourly_percent),
        min_quantity=maker.min_quantity,
        max_quantity=maker.max_quantity,
        lot_size=maker.lot_size,
        leverage_details=maker.leverage_details,
    )


def taker_side_for_maker_topic(maker_side: Side) -> Side:
    """The maker's long offer is what a taker goes short against, and vice versa."""
    return Side.SHORT if maker_side == Side.LONG else Side.LONG
