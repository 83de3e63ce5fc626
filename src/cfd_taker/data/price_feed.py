"""BitMEX reference price WebSocket client."""

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import websockets

from cfd_taker.data.models import to_decimal
from cfd_taker.data.reconnect import AlwaysReconnect, ReconnectPolicy

logger = logging.getLogger(__name__)

BITMEX_BXBT_URL = "wss://www.bitmex.com/realtime?subscribe=instrument:.BXBT"


def extract_mark_price(message: str | bytes) -> Decimal | None:
    """Get the mark price of the first tick record in a feed message.

    Returns:
        The price, or None when the message carries no usable price
    """
    try:
        payload = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None

    data = payload.get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None

    mark_price = data[0].get("markPrice")
    if not mark_price:
        return None
    try:
        return to_decimal(mark_price)
    except (ValueError, ArithmeticError):
        return None


class PriceFeedAdapter:
    """Tracks the latest BitMEX ``.BXBT`` mark price.

    The connection is retried according to the reconnect policy (forever by
    default). The last price is kept across disconnects; no staleness
    timeout applies.
    """

    def __init__(
        self,
        url: str = BITMEX_BXBT_URL,
        reconnect_policy: ReconnectPolicy | None = None,
    ) -> None:
        self._url = url
        self._policy = reconnect_policy or AlwaysReconnect()
        self._reference_price: Decimal | None = None
        self._connected = False
        self._running = False
        self._ws: Any = None
        self._task: asyncio.Task | None = None
        self._callbacks: list[Callable[[Decimal], None]] = []

    @property
    def reference_price(self) -> Decimal | None:
        """Latest mark price, or None before the first tick."""
        return self._reference_price

    @property
    def is_connected(self) -> bool:
        return self._connected

    def on_price(self, callback: Callable[[Decimal], None]) -> None:
        """Register a callback called with every new reference price."""
        self._callbacks.append(callback)

    def handle_message(self, message: str | bytes) -> bool:
        """Apply one raw feed message.

        Returns:
            True if the reference price was updated
        """
        price = extract_mark_price(message)
        if price is None:
            return False

        self._reference_price = price
        for callback in list(self._callbacks):
            try:
                callback(price)
            except Exception as e:
                logger.error(f"Error in price callback: {e}")
        return True

    async def start(self) -> None:
        """Start the feed in a background task."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self.run())

    async def run(self) -> None:
        """Receive ticks until closed or the reconnect policy gives up."""
        self._running = True
        attempt = 0

        while self._running:
            try:
                async with websockets.connect(self._url) as ws:
                    self._ws = ws
                    self._connected = True
                    attempt = 0
                    logger.info(f"Price feed connected: {self._url}")

                    async for message in ws:
                        if not self._running:
                            break
                        self.handle_message(message)

            except asyncio.CancelledError:
                raise
            except websockets.exceptions.ConnectionClosed as e:
                if self._running:
                    logger.warning(f"Price feed closed: {e}")
            except Exception as e:
                if self._running:
                    logger.error(f"Price feed error: {e}")
            finally:
                self._connected = False
                self._ws = None

            if not self._running:
                break
            attempt += 1
            if not self._policy.should_retry(attempt):
                logger.error(f"Giving up on price feed after {attempt} attempt(s)")
                break
            await asyncio.sleep(self._policy.delay(attempt))

        self._running = False

    async def close(self) -> None:
        """Stop the feed."""
        self._running = False

        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        if self._ws:
            with contextlib.suppress(Exception):
                await self._ws.close()
            self._ws = None
        self._connected = False
