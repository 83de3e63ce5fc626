"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest

from cfd_taker.core.errors import DaemonAPIError
from cfd_taker.data.models import MakerOffer
from cfd_taker.trading.offer import Offer, offer_from_maker


@pytest.fixture
def maker_offer_payload() -> dict[str, Any]:
    """Maker offer as published on the long_offer/short_offer topics."""
    return {
        "id": "6e4f6cb1-ffb1-4bf0-b0e5-4b5bd8e4a0d2",
        "price": 41234.5,
        "funding_rate_annualized_percent": 18.25,
        "funding_rate_hourly_percent": 0.002083333,
        "min_quantity": 100,
        "max_quantity": 1000,
        "lot_size": 100,
        "leverage_details": [
            {
                "leverage": 2,
                "margin_per_lot": 0.001,
                "initial_funding_fee_per_lot": 0.00001,
                "liquidation_price": 27489.5,
            },
            {
                "leverage": 3,
                "margin_per_lot": 0.0008,
                "initial_funding_fee_per_lot": 0.00001,
                "liquidation_price": 30925.5,
            },
        ],
    }


@pytest.fixture
def offer(maker_offer_payload: dict[str, Any]) -> Offer:
    return offer_from_maker(MakerOffer.from_dict(maker_offer_payload))


@pytest.fixture
def wallet_payload() -> dict[str, Any]:
    return {
        "balance": 0.01,
        "address": "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4",
        "last_updated_at": 1650000000,
    }


def _cfd_record(order_id: str = "cfd-1", state: str = "Open", **overrides: Any) -> dict[str, Any]:
    record = {
        "order_id": order_id,
        "offer_id": "6e4f6cb1-ffb1-4bf0-b0e5-4b5bd8e4a0d2",
        "position": "Long",
        "initial_price": 41234.5,
        "quantity_usd": 300,
        "leverage": 2,
        "margin": 0.003,
        "liquidation_price": 27489.5,
        "profit_btc": 0.0001,
        "profit_percent": 3.3,
        "state": state,
        "actions": [],
        "state_transition_timestamp": 1650000000,
        "expiry_timestamp": 1650086400,
        "counterparty": "maker-peer",
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_cfd() -> Callable[..., dict[str, Any]]:
    """Factory for cfd records as sent on the cfds topic."""
    return _cfd_record


class FakeDaemonClient:
    """In-memory stand-in for DaemonRestClient.

    Set ``error`` to make every call fail, or ``release`` to hold calls
    until the event is set.
    """

    def __init__(self) -> None:
        self.orders: list[Any] = []
        self.actions: list[tuple[str, Any]] = []
        self.withdrawals: list[tuple[Decimal, Decimal, str]] = []
        self.syncs = 0
        self.margin = Decimal("0")
        self.error: DaemonAPIError | None = None
        self.release: asyncio.Event | None = None
        self.closed = False

    async def _respond(self) -> None:
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error

    async def post_order(self, intent: Any) -> dict[str, Any]:
        self.orders.append(intent)
        await self._respond()
        return {}

    async def calculate_margin(self, price: Decimal, quantity: Decimal, leverage: int) -> Decimal:
        await self._respond()
        return self.margin

    async def withdraw(self, amount: Decimal, fee: Decimal, address: str) -> str:
        self.withdrawals.append((amount, fee, address))
        await self._respond()
        return "https://mempool.space/tx/abc"

    async def sync_wallet(self) -> None:
        self.syncs += 1
        await self._respond()

    async def post_cfd_action(self, order_id: str, action: Any) -> None:
        self.actions.append((order_id, action))
        await self._respond()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeDaemonClient:
    return FakeDaemonClient()
