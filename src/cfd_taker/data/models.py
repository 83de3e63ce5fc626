"""Typed payloads of the daemon feed and their decoders."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from cfd_taker.core.errors import FeedDecodeError
from cfd_taker.core.types import CfdAction, CfdState, Side, Topic


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number (or numeric string) to Decimal without float noise."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    result = Decimal(str(value))
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def to_int(value: Any) -> int:
    """Convert a JSON number to int, rejecting fractional values."""
    number = to_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"not an integer: {value!r}")
    return int(number)


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(to_int(value), tz=UTC)


@dataclass(frozen=True)
class WalletInfo:
    """Taker wallet as last synchronized by the daemon."""

    balance: Decimal
    address: str
    last_updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WalletInfo":
        balance = to_decimal(data["balance"])
        if balance < 0:
            raise ValueError(f"negative balance: {balance}")
        return cls(
            balance=balance,
            address=str(data["address"]),
            last_updated_at=_timestamp(data.get("last_updated_at")),
        )


@dataclass(frozen=True)
class LeverageDetail:
    """One leverage tier of a maker offer."""

    leverage: int
    margin_per_lot: Decimal
    initial_funding_fee_per_lot: Decimal
    liquidation_price: Decimal

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeverageDetail":
        return cls(
            leverage=to_int(data["leverage"]),
            margin_per_lot=to_decimal(data["margin_per_lot"]),
            initial_funding_fee_per_lot=to_decimal(data["initial_funding_fee_per_lot"]),
            liquidation_price=to_decimal(data["liquidation_price"]),
        )


@dataclass(frozen=True)
class MakerOffer:
    """Offer as published by the maker, before normalization."""

    id: str
    price: Decimal
    funding_rate_annualized_percent: Decimal
    funding_rate_hourly_percent: Decimal
    min_quantity: Decimal
    max_quantity: Decimal
    lot_size: Decimal
    leverage_details: tuple[LeverageDetail, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MakerOffer":
        details = tuple(LeverageDetail.from_dict(d) for d in data.get("leverage_details") or [])
        leverages = [d.leverage for d in details]
        if len(set(leverages)) != len(leverages):
            raise ValueError(f"duplicate leverage tiers: {leverages}")

        offer = cls(
            id=str(data["id"]),
            price=to_decimal(data["price"]),
            funding_rate_annualized_percent=to_decimal(data["funding_rate_annualized_percent"]),
            funding_rate_hourly_percent=to_decimal(data["funding_rate_hourly_percent"]),
            min_quantity=to_decimal(data["min_quantity"]),
            max_quantity=to_decimal(data["max_quantity"]),
            lot_size=to_decimal(data["lot_size"]),
            leverage_details=details,
        )
        if offer.lot_size <= 0:
            raise ValueError(f"lot size must be positive, got {offer.lot_size}")
        if offer.min_quantity > offer.max_quantity:
            raise ValueError(
                f"min quantity {offer.min_quantity} exceeds max quantity {offer.max_quantity}"
            )
        return offer


@dataclass(frozen=True)
class ConnectionStatus:
    """Whether the taker daemon currently has a maker connection."""

    online: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionStatus":
        online = data["online"]
        if not isinstance(online, bool):
            raise ValueError(f"online must be a boolean, got {online!r}")
        return cls(online=online)


@dataclass(frozen=True)
class IdentityInfo:
    """Opaque identity descriptor of the local daemon."""

    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IdentityInfo":
        return cls(fields=dict(data))

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


@dataclass(frozen=True)
class Cfd:
    """A position record owned by the daemon."""

    order_id: str
    position: Side
    initial_price: Decimal
    quantity: Decimal
    leverage: int
    state: CfdState
    margin: Decimal = Decimal("0")
    liquidation_price: Decimal | None = None
    profit_btc: Decimal | None = None
    profit_percent: Decimal | None = None
    closing_price: Decimal | None = None
    offer_id: str | None = None
    counterparty: str | None = None
    actions: frozenset[CfdAction] = frozenset()
    state_transition_timestamp: datetime | None = None
    expiry_timestamp: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cfd":
        return cls(
            order_id=str(data["order_id"]),
            position=Side(str(data["position"]).lower()),
            initial_price=to_decimal(data["initial_price"]),
            quantity=to_decimal(data["quantity_usd"]),
            leverage=to_int(data["leverage"]),
            state=CfdState(data["state"]),
            margin=to_decimal(data.get("margin", 0)),
            liquidation_price=_optional_decimal(data.get("liquidation_price")),
            profit_btc=_optional_decimal(data.get("profit_btc")),
            profit_percent=_optional_decimal(data.get("profit_percent")),
            closing_price=_optional_decimal(data.get("closing_price")),
            offer_id=data.get("offer_id"),
            counterparty=data.get("counterparty"),
            actions=frozenset(CfdAction(a) for a in data.get("actions") or []),
            state_transition_timestamp=_timestamp(data.get("state_transition_timestamp")),
            expiry_timestamp=_timestamp(data.get("expiry_timestamp")),
        )


def _decode_cfds(payload: Any) -> tuple[Cfd, ...]:
    if not isinstance(payload, list):
        raise TypeError(f"expected a list of cfds, got {type(payload).__name__}")
    return tuple(Cfd.from_dict(item) for item in payload)


def _decode_offer(payload: Any) -> MakerOffer | None:
    # The daemon publishes null when the maker withdraws its offer
    if payload is None:
        return None
    return MakerOffer.from_dict(payload)


TOPIC_DECODERS: dict[Topic, Callable[[Any], Any]] = {
    Topic.WALLET: WalletInfo.from_dict,
    Topic.LONG_OFFER: _decode_offer,
    Topic.SHORT_OFFER: _decode_offer,
    Topic.IDENTITY: IdentityInfo.from_dict,
    Topic.CFDS: _decode_cfds,
    Topic.MAKER_STATUS: ConnectionStatus.from_dict,
}


def decode_topic(topic: Topic, payload: Any) -> Any:
    """Decode a parsed JSON payload into the topic's model.

    Raises:
        FeedDecodeError: If the payload does not match the topic's shape
    """
    decoder = TOPIC_DECODERS[topic]
    # out-of-range numbers and timestamps raise OverflowError or OSError
    try:
        return decoder(payload)
    except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError, OSError) as e:
        raise FeedDecodeError(topic.value, f"{type(e).__name__}: {e}") from e
