"""Tests for the reference price feed."""

import json
from decimal import Decimal

import pytest

from cfd_taker.data.price_feed import PriceFeedAdapter, extract_mark_price


def tick(*records: dict) -> str:
    return json.dumps({"table": "instrument", "action": "update", "data": list(records)})


class TestExtractMarkPrice:
    """Test mark price extraction."""

    def test_first_record(self):
        message = tick({"symbol": ".BXBT", "markPrice": 41234.56}, {"markPrice": 1})

        assert extract_mark_price(message) == Decimal("41234.56")

    @pytest.mark.parametrize(
        "message",
        [
            "not json",
            "[]",
            json.dumps({"success": True, "subscribe": "instrument:.BXBT"}),
            json.dumps({"data": []}),
            json.dumps({"data": "x"}),
            tick({"symbol": ".BXBT"}),
            tick({"symbol": ".BXBT", "markPrice": None}),
            tick({"symbol": ".BXBT", "markPrice": 0}),
            tick({"symbol": ".BXBT", "markPrice": "abc"}),
        ],
    )
    def test_no_usable_price(self, message):
        assert extract_mark_price(message) is None


class TestPriceFeedAdapter:
    """Test reference price tracking."""

    def test_initially_unknown(self):
        adapter = PriceFeedAdapter()

        assert adapter.reference_price is None
        assert adapter.is_connected is False

    def test_update_and_keep_previous(self):
        adapter = PriceFeedAdapter()
        prices = []
        adapter.on_price(prices.append)

        assert adapter.handle_message(tick({"markPrice": 41000})) is True
        assert adapter.handle_message(tick({"symbol": ".BXBT"})) is False
        assert adapter.handle_message("garbage") is False

        assert adapter.reference_price == Decimal("41000")
        assert prices == [Decimal("41000")]

    def test_failing_callback_does_not_block_update(self):
        adapter = PriceFeedAdapter()

        def broken(price):
            raise RuntimeError("boom")

        adapter.on_price(broken)

        assert adapter.handle_message(tick({"markPrice": 42000.5})) is True
        assert adapter.reference_price == Decimal("42000.5")
