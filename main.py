"""CFD Taker - Entry point.

Runs the taker decision core against a local daemon:
1. Streams wallet, offers, positions and maker status from the daemon feed
2. Tracks the BitMEX .BXBT reference price
3. Recomputes margin, fee and validity for both sides on every change
4. Optionally places one order once it becomes submittable

Usage:
    python main.py                                   # read-only monitor
    python main.py --long --quantity 300 --leverage 2
"""

import argparse
import asyncio
import contextlib
import logging
import signal
from pathlib import Path

from cfd_taker.config import Config
from cfd_taker.core.errors import TakerError
from cfd_taker.core.types import Side
from cfd_taker.logging import DEFAULT_LOG_DIR, get_logger, setup_logging
from cfd_taker.notifications.center import Notification
from cfd_taker.terminal import TakerTerminal
from cfd_taker.trading.calculator import TradeQuote


class TakerApp:
    """Headless taker: logs state changes and places at most one order."""

    def __init__(
        self,
        config: Config,
        side: Side | None = None,
        quantity: str | None = None,
        leverage: int | None = None,
    ) -> None:
        self._logger = get_logger("app")
        self._terminal = TakerTerminal(config)
        self._side = side
        self._order_placed = False
        self._order_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._last_warning: dict[Side, str | None] = {}

        if side is not None:
            if quantity is not None:
                self._terminal.set_quantity(side, quantity)
            if leverage is not None:
                self._terminal.set_leverage(side, leverage)

        self._terminal.on_quote(self._handle_quote)
        self._terminal.notifications.on_change(self._handle_notification)

    def _handle_quote(self, side: Side, quote: TradeQuote) -> None:
        warning = self._terminal.warning(side)
        title = warning.title if warning else None
        if self._last_warning.get(side, "") != title:
            self._last_warning[side] = title
            self._logger.info(
                f"{side.value}: quantity={quote.quantity} leverage={quote.leverage} "
                f"margin={quote.margin} fee={quote.settlement_fee} "
                f"can_submit={quote.can_submit}" + (f" [{title}]" if title else "")
            )

        if (
            side == self._side
            and not self._order_placed
            and quote.can_submit
            and self._terminal.maker_online
        ):
            self._order_placed = True
            self._order_task = asyncio.create_task(self._place_order(side))

    async def _place_order(self, side: Side) -> None:
        try:
            result = await self._terminal.place_order(side)
            self._logger.info(
                f"Order submitted: {result.intent.quantity} @ {result.intent.leverage}x, "
                "waiting for the position to appear in the feed"
            )
        except TakerError as e:
            self._logger.error(f"Order not placed: {e}")

    def _handle_notification(self, notification_id: str, notification: Notification | None) -> None:
        if notification is None:
            self._logger.info(f"Notification cleared: {notification_id}")

    async def start(self) -> None:
        await self._terminal.start()
        await self._stop_event.wait()

    async def stop(self) -> None:
        self._stop_event.set()
        if self._order_task:
            with contextlib.suppress(asyncio.CancelledError, TakerError):
                await self._order_task
        await self._terminal.stop()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CFD taker decision core")
    side = parser.add_mutually_exclusive_group()
    side.add_argument("--long", action="store_true", help="Place a long order")
    side.add_argument("--short", action="store_true", help="Place a short order")
    parser.add_argument("--quantity", help="Order quantity in contracts")
    parser.add_argument("--leverage", type=int, help="Order leverage")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-dir", type=Path, default=DEFAULT_LOG_DIR, help="Directory for the daily log file"
    )
    parser.add_argument("--no-log-file", action="store_true", help="Log to stdout only")
    return parser.parse_args()


async def main_async(args: argparse.Namespace) -> None:
    """Async main entry point."""
    logger = setup_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        log_dir=None if args.no_log_file else args.log_dir,
    )
    config = Config.from_env()

    side = Side.LONG if args.long else Side.SHORT if args.short else None
    app = TakerApp(config, side=side, quantity=args.quantity, leverage=args.leverage)

    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Shutdown signal received")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_handler)

    try:
        await app.start()
    finally:
        await app.stop()


def main() -> None:
    """Application entry point."""
    args = parse_args()
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main_async(args))


if __name__ == "__main__":
    main()
