"""Tests for the taker terminal wiring."""

import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from cfd_taker.config import Config
from cfd_taker.core.errors import DaemonAPIError, SubmissionBlockedError, UnavailableActionError
from cfd_taker.core.types import CfdAction, Side
from cfd_taker.data.feed import EventStreamAggregator
from cfd_taker.data.price_feed import PriceFeedAdapter
from cfd_taker.terminal import TakerTerminal
from cfd_taker.trading.calculator import WarningKind
from cfd_taker.trading.offer import NO_OFFER


@pytest.fixture
def feed() -> EventStreamAggregator:
    return EventStreamAggregator("http://daemon/api/feed")


@pytest.fixture
def terminal(feed, fake_client) -> TakerTerminal:
    return TakerTerminal(Config(), feed=feed, price_feed=PriceFeedAdapter(), client=fake_client)


def publish(feed: EventStreamAggregator, topic: str, payload) -> None:
    assert feed.handle_event(topic, json.dumps(payload))


class TestQuotes:
    """Test recomputation on feed changes."""

    def test_initial_state(self, terminal):
        for side in Side:
            quote = terminal.quote(side)
            assert terminal.offer(side) is NO_OFFER
            assert quote.quantity == 0
            assert quote.leverage == 2
            assert quote.can_submit is False

    def test_maker_long_offer_feeds_taker_short(self, terminal, feed, maker_offer_payload):
        publish(feed, "long_offer", maker_offer_payload)

        assert terminal.offer(Side.SHORT).id == maker_offer_payload["id"]
        assert terminal.offer(Side.LONG) is NO_OFFER
        assert terminal.form(Side.SHORT).quantity == Decimal("100")
        assert terminal.quote(Side.SHORT).margin == Decimal("0.001")

    def test_wallet_update_recomputes_both_sides(
        self, terminal, feed, maker_offer_payload, wallet_payload
    ):
        publish(feed, "long_offer", maker_offer_payload)
        publish(feed, "short_offer", maker_offer_payload)
        assert terminal.quote(Side.SHORT).balance_too_low is True

        publish(feed, "wallet", wallet_payload)

        assert terminal.quote(Side.SHORT).can_submit is True
        assert terminal.quote(Side.LONG).can_submit is True
        assert terminal.wallet.balance == Decimal("0.01")

    def test_listeners_see_every_recomputation(self, terminal, feed, maker_offer_payload):
        seen = []
        terminal.on_quote(lambda side, quote: seen.append((side, quote.quantity)))

        publish(feed, "short_offer", maker_offer_payload)
        terminal.set_quantity(Side.LONG, "300")

        assert seen == [(Side.LONG, Decimal("100")), (Side.LONG, Decimal("300"))]

    def test_withdrawn_offer(self, terminal, feed, maker_offer_payload):
        publish(feed, "long_offer", maker_offer_payload)
        publish(feed, "long_offer", None)

        assert terminal.offer(Side.SHORT) is NO_OFFER
        assert terminal.quote(Side.SHORT).no_offer is True

    def test_warning_hidden_until_maker_online(
        self, terminal, feed, maker_offer_payload, wallet_payload
    ):
        publish(feed, "short_offer", maker_offer_payload)
        publish(feed, "wallet", wallet_payload)
        terminal.set_quantity(Side.LONG, "350")
        assert terminal.warning(Side.LONG) is None

        publish(feed, "maker_status", {"online": True})

        assert terminal.warning(Side.LONG).kind == WarningKind.QUANTITY_NOT_LOT_ALIGNED

    def test_leverage_change(self, terminal, feed, maker_offer_payload):
        publish(feed, "short_offer", maker_offer_payload)

        quote = terminal.set_leverage(Side.LONG, 3)

        assert quote.margin == Decimal("0.0008")
        assert quote.liquidation_price == Decimal("30925.5")


class TestPlaceOrder:
    """Test placing orders through the terminal."""

    @pytest.mark.asyncio
    async def test_place_order(
        self, terminal, feed, fake_client, maker_offer_payload, wallet_payload
    ):
        publish(feed, "long_offer", maker_offer_payload)
        publish(feed, "wallet", wallet_payload)
        terminal.set_quantity(Side.SHORT, "300")
        submitting = []
        terminal.on_quote(lambda side, quote: submitting.append(quote.submitting))

        result = await terminal.place_order(Side.SHORT)

        assert result.intent.to_payload() == {
            "offer_id": maker_offer_payload["id"],
            "quantity": 300,
            "leverage": 2,
        }
        assert fake_client.orders == [result.intent]
        assert True in submitting
        assert terminal.quote(Side.SHORT).submitting is False

    @pytest.mark.asyncio
    async def test_blocked_without_offer(self, terminal, fake_client):
        terminal.set_quantity(Side.LONG, "100")

        with pytest.raises(SubmissionBlockedError):
            await terminal.place_order(Side.LONG)

        assert fake_client.orders == []

    @pytest.mark.asyncio
    async def test_blocked_with_low_balance(self, terminal, feed, fake_client, maker_offer_payload):
        publish(feed, "long_offer", maker_offer_payload)

        with pytest.raises(SubmissionBlockedError) as exc_info:
            await terminal.place_order(Side.SHORT)

        assert exc_info.value.warning.kind == WarningKind.BALANCE_TOO_LOW
        assert fake_client.orders == []

    @pytest.mark.asyncio
    async def test_verify_margin(self, terminal, feed, fake_client, maker_offer_payload):
        publish(feed, "long_offer", maker_offer_payload)
        fake_client.margin = Decimal("0.0011")

        remote = await terminal.verify_margin(Side.SHORT)

        assert remote == Decimal("0.0011")
        assert terminal.quote(Side.SHORT).margin == Decimal("0.001")


class TestPositions:
    """Test position tracking and CFD actions."""

    def test_partition(self, terminal, feed, make_cfd):
        publish(feed, "cfds", [make_cfd("a", "Open"), make_cfd("b", "Closed")])

        assert [c.order_id for c in terminal.open_cfds] == ["a"]
        assert [c.order_id for c in terminal.closed_cfds] == ["b"]
        assert terminal.find_cfd("b").order_id == "b"
        assert terminal.find_cfd("missing") is None

    @pytest.mark.asyncio
    async def test_run_available_action(self, terminal, feed, fake_client, make_cfd):
        publish(feed, "cfds", [make_cfd("a", "Open", actions=["settle"])])

        await terminal.run_cfd_action("a", CfdAction.SETTLE)

        assert fake_client.actions == [("a", CfdAction.SETTLE)]

    @pytest.mark.asyncio
    async def test_unavailable_action(self, terminal, feed, fake_client, make_cfd):
        publish(feed, "cfds", [make_cfd("a", "Open", actions=["settle"])])

        with pytest.raises(UnavailableActionError):
            await terminal.run_cfd_action("a", CfdAction.COMMIT)
        with pytest.raises(UnavailableActionError):
            await terminal.run_cfd_action("missing", CfdAction.SETTLE)

        assert fake_client.actions == []

    @pytest.mark.asyncio
    async def test_failed_action_notifies(self, terminal, feed, fake_client, make_cfd):
        publish(feed, "cfds", [make_cfd("a", "Open", actions=["commit"])])
        fake_client.error = DaemonAPIError(400, "Not allowed")

        with pytest.raises(DaemonAPIError):
            await terminal.run_cfd_action("a", CfdAction.COMMIT)

        titles = [n.title for n in terminal.notifications.active]
        assert "Error: commit" in titles


class TestMisc:
    """Test funding schedule and shutdown."""

    def test_next_funding_event(self, terminal, feed, maker_offer_payload):
        now = datetime(2022, 4, 15, 12, 34, 56, tzinfo=UTC)
        assert terminal.next_funding_event(now) is None

        publish(feed, "short_offer", maker_offer_payload)

        assert terminal.next_funding_event(now) == datetime(2022, 4, 15, 13, 0, tzinfo=UTC)

    def test_reference_price(self, terminal):
        assert terminal.reference_price is None

    @pytest.mark.asyncio
    async def test_stop_closes_client(self, terminal, fake_client):
        await terminal.stop()

        assert fake_client.closed is True
        assert terminal.is_feed_connected is False
