"""Taker terminal - wires feeds, calculator, lifecycle and order submission.

Data flow:
    daemon feed -> DataPool topics -> offer view models -> quotes -> submission gate
    BitMEX feed -> reference price
    cfds topic -> open / closed partition

All recomputation runs synchronously in the callback that delivered the
change, so a quote never mixes an old and a new value of the same topic.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import aiohttp

from cfd_taker.config import Config
from cfd_taker.core.data_pool import DataPool
from cfd_taker.core.errors import DaemonAPIError, SubmissionBlockedError, UnavailableActionError
from cfd_taker.core.health import ConnectionMonitor
from cfd_taker.core.types import CfdAction, NotificationStatus, Side, Topic
from cfd_taker.data.feed import EventStreamAggregator
from cfd_taker.data.models import Cfd, IdentityInfo, MakerOffer, WalletInfo
from cfd_taker.data.price_feed import PriceFeedAdapter
from cfd_taker.data.reconnect import AlwaysReconnect
from cfd_taker.execution.client import DaemonRestClient
from cfd_taker.execution.submission import OrderSubmission, SubmissionResult, describe_failure
from cfd_taker.execution.wallet import WalletOperations
from cfd_taker.notifications.center import NotificationCenter
from cfd_taker.trading.calculator import TradeForm, TradeQuote, TradeWarning, warning_for
from cfd_taker.trading.lifecycle import partition_cfds
from cfd_taker.trading.offer import NO_OFFER, Offer, offer_from_maker, taker_side_for_maker_topic

logger = logging.getLogger(__name__)

QuoteListener = Callable[[Side, TradeQuote], None]


class TakerTerminal:
    """Client-side decision core of the taker."""

    def __init__(
        self,
        config: Config,
        *,
        feed: EventStreamAggregator | None = None,
        price_feed: PriceFeedAdapter | None = None,
        client: DaemonRestClient | None = None,
    ) -> None:
        """Initialize the terminal.

        Args:
            config: Application configuration
            feed: Daemon feed aggregator (built from config if omitted)
            price_feed: Reference price feed (built from config if omitted)
            client: Daemon REST client (built from config if omitted)
        """
        self._config = config
        auth = None
        if config.daemon.password:
            auth = aiohttp.BasicAuth(config.daemon.username, config.daemon.password)

        self._feed = feed or EventStreamAggregator(
            config.daemon.feed_url,
            DataPool(),
            reconnect_policy=AlwaysReconnect(config.feed.reconnect_delay),
            auth=auth,
        )
        self._price_feed = price_feed or PriceFeedAdapter(
            config.feed.price_feed_url,
            reconnect_policy=AlwaysReconnect(config.feed.reconnect_delay),
        )
        self._client = client or DaemonRestClient(
            config.daemon.url, auth=auth, timeout=config.daemon.http_timeout
        )

        self.notifications = NotificationCenter()
        self._monitor = ConnectionMonitor(
            self._feed,
            self.notifications,
            price_feed=self._price_feed,
            interval_seconds=config.feed.health_interval,
        )
        self._submission = OrderSubmission(
            self._client, self.notifications, on_state_change=self._on_submission_state
        )
        self.wallet_operations = WalletOperations(self._client, self.notifications)

        leverage = config.trading.default_leverage
        self._forms = {side: TradeForm(leverage=leverage) for side in Side}
        self._offers: dict[Side, Offer] = {side: NO_OFFER for side in Side}
        self._quotes: dict[Side, TradeQuote] = {}
        self._open_cfds: list[Cfd] = []
        self._closed_cfds: list[Cfd] = []
        self._quote_listeners: list[QuoteListener] = []

        self._feed.subscribe(Topic.LONG_OFFER, self._on_offer)
        self._feed.subscribe(Topic.SHORT_OFFER, self._on_offer)
        self._feed.subscribe(Topic.WALLET, self._on_wallet)
        self._feed.subscribe(Topic.CFDS, self._on_cfds)

        for side in Side:
            self._recompute(side)

    # Feed callbacks

    def _on_offer(self, topic: Topic, maker: MakerOffer | None) -> None:
        maker_side = Side.LONG if topic == Topic.LONG_OFFER else Side.SHORT
        side = taker_side_for_maker_topic(maker_side)
        offer = offer_from_maker(maker)
        self._offers[side] = offer
        self._forms[side].sync_with_offer(offer)
        logger.debug(f"{side.value} offer updated: id={offer.id} price={offer.price}")
        self._recompute(side)

    def _on_wallet(self, topic: Topic, wallet: WalletInfo) -> None:
        for side in Side:
            self._recompute(side)

    def _on_cfds(self, topic: Topic, cfds: tuple[Cfd, ...]) -> None:
        self._open_cfds, self._closed_cfds = partition_cfds(cfds)
        logger.debug(f"Positions: {len(self._open_cfds)} open, {len(self._closed_cfds)} closed")

    def _on_submission_state(self, submitting: bool) -> None:
        for side in Side:
            self._recompute(side, submitting=submitting)

    def _recompute(self, side: Side, submitting: bool | None = None) -> TradeQuote:
        if submitting is None:
            submitting = self._submission.is_submitting
        wallet = self.wallet
        quote = self._forms[side].quote(
            self._offers[side],
            wallet.balance if wallet else None,
            submitting=submitting,
        )
        self._quotes[side] = quote
        for listener in list(self._quote_listeners):
            try:
                listener(side, quote)
            except Exception as e:
                logger.error(f"Error in quote listener: {e}")
        return quote

    def on_quote(self, callback: QuoteListener) -> None:
        """Register a callback called with (side, quote) on every recomputation."""
        self._quote_listeners.append(callback)

    # Order form

    def form(self, side: Side) -> TradeForm:
        return self._forms[side]

    def set_quantity(self, side: Side, quantity: Any) -> TradeQuote:
        self._forms[side].set_quantity(quantity)
        return self._recompute(side)

    def set_leverage(self, side: Side, leverage: int) -> TradeQuote:
        self._forms[side].set_leverage(leverage)
        return self._recompute(side)

    def offer(self, side: Side) -> Offer:
        return self._offers[side]

    def quote(self, side: Side) -> TradeQuote:
        return self._quotes[side]

    def warning(self, side: Side) -> TradeWarning | None:
        """Inline warning for a side's order form."""
        return warning_for(self._quotes[side], self.maker_online)

    async def place_order(self, side: Side) -> SubmissionResult:
        """Submit the current order of a side.

        Raises:
            SubmissionBlockedError: The current quote does not allow submission
            SubmissionInFlightError: A previous order is still pending
            DaemonAPIError: The daemon rejected the order
        """
        quote = self._recompute(side)
        intent = quote.intent()
        if intent is None:
            raise SubmissionBlockedError(quote.warning)
        return await self._submission.submit(intent, quote)

    async def verify_margin(self, side: Side) -> Decimal:
        """Compare the local margin with the daemon's calculation.

        The local value stays authoritative; a mismatch is only logged.
        """
        quote = self._quotes[side]
        offer = self._offers[side]
        if offer.price is None or quote.leverage is None:
            raise SubmissionBlockedError(quote.warning)

        remote = await self._client.calculate_margin(offer.price, quote.quantity, quote.leverage)
        if remote != quote.margin:
            logger.warning(f"{side.value} margin mismatch: local={quote.margin} daemon={remote}")
        return remote

    # Positions

    @property
    def open_cfds(self) -> list[Cfd]:
        return list(self._open_cfds)

    @property
    def closed_cfds(self) -> list[Cfd]:
        return list(self._closed_cfds)

    def find_cfd(self, order_id: str) -> Cfd | None:
        for cfd in self._open_cfds + self._closed_cfds:
            if cfd.order_id == order_id:
                return cfd
        return None

    async def run_cfd_action(self, order_id: str, action: CfdAction) -> None:
        """Run an action on a CFD if its current state offers it."""
        cfd = self.find_cfd(order_id)
        if cfd is None or action not in cfd.actions:
            raise UnavailableActionError(f"Action '{action.value}' not available for {order_id}")

        try:
            await self._client.post_cfd_action(order_id, action)
        except DaemonAPIError as e:
            self.notifications.show(
                NotificationStatus.ERROR, f"Error: {action.value}", describe_failure(e)
            )
            raise
        logger.info(f"Requested '{action.value}' for cfd {order_id}")

    # Snapshot accessors

    @property
    def wallet(self) -> WalletInfo | None:
        return self._feed.latest(Topic.WALLET)

    @property
    def identity(self) -> IdentityInfo | None:
        return self._feed.latest(Topic.IDENTITY)

    @property
    def maker_online(self) -> bool:
        return self._monitor.maker_online

    @property
    def is_feed_connected(self) -> bool:
        return self._feed.is_connected

    @property
    def reference_price(self) -> Decimal | None:
        return self._price_feed.reference_price

    @property
    def monitor(self) -> ConnectionMonitor:
        return self._monitor

    def next_funding_event(self, now: datetime | None = None) -> datetime | None:
        """Next funding event, assumed at the next full UTC hour.

        Returns None while neither side has an offer.
        """
        if all(offer.id is None for offer in self._offers.values()):
            return None
        now = now or datetime.now(UTC)
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    # Lifecycle

    async def start(self) -> None:
        """Start both feeds and the connection monitor."""
        await self._feed.start()
        await self._price_feed.start()
        await self._monitor.start()
        logger.info("Taker terminal started")

    async def stop(self) -> None:
        """Stop feeds and release HTTP resources."""
        await self._monitor.stop()
        await self._price_feed.close()
        await self._feed.close()
        await self._client.close()
        logger.info("Taker terminal stopped")
