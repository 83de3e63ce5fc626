"""Order submission with at-most-one request in flight."""

import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cfd_taker.core.errors import DaemonAPIError, SubmissionBlockedError, SubmissionInFlightError
from cfd_taker.core.types import NotificationStatus
from cfd_taker.execution.client import DaemonRestClient
from cfd_taker.notifications.center import NotificationCenter
from cfd_taker.trading.calculator import TradeIntent, TradeQuote

logger = logging.getLogger(__name__)


def describe_failure(error: DaemonAPIError) -> str:
    """Render a daemon failure as 'status: description'."""
    if error.status is None:
        return error.description
    return f"{error.status}: {error.description}" if error.description else str(error.status)


class SingleFlightGate:
    """Boolean guard allowing one operation at a time."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @contextlib.contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the gate for the duration of the block.

        Raises:
            SubmissionInFlightError: If the gate is already held
        """
        if self._busy:
            raise SubmissionInFlightError(f"A previous {self._name} request is still pending")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False


@dataclass(frozen=True)
class SubmissionResult:
    """Successful order submission."""

    intent: TradeIntent
    response: Any = None
    submitted_at: datetime = field(default_factory=datetime.now)


class OrderSubmission:
    """Sends new orders to the daemon.

    The resulting position is not tracked here: it shows up in the ``cfds``
    feed topic once the daemon has processed the order.
    """

    def __init__(
        self,
        client: DaemonRestClient,
        notifications: NotificationCenter,
        on_state_change: Callable[[bool], None] | None = None,
    ) -> None:
        """Initialize order submission.

        Args:
            client: Daemon REST client
            notifications: Where failures are reported
            on_state_change: Called with True when a request starts and False when it ends
        """
        self._client = client
        self._notifications = notifications
        self._gate = SingleFlightGate("order")
        self._on_state_change = on_state_change

    def _emit(self, submitting: bool) -> None:
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(submitting)
        except Exception as e:
            logger.error(f"Error in submission state callback: {e}")

    @property
    def is_submitting(self) -> bool:
        return self._gate.busy

    async def submit(self, intent: TradeIntent, quote: TradeQuote) -> SubmissionResult:
        """Submit an order.

        Args:
            intent: Order to send
            quote: Current quote the order was validated against

        Returns:
            The submission result

        Raises:
            SubmissionInFlightError: A previous order is still pending
            SubmissionBlockedError: The quote does not allow submission; nothing was sent
            DaemonAPIError: The daemon rejected the order or could not be reached
        """
        if self._gate.busy:
            raise SubmissionInFlightError("A previous order request is still pending")
        if not quote.is_valid:
            raise SubmissionBlockedError(quote.warning)
        if intent != quote.intent():
            logger.warning(f"Order {intent} does not match the current quote, not sending")
            raise SubmissionBlockedError(None)

        with self._gate.hold():
            self._emit(True)
            logger.info(
                f"Submitting order: offer={intent.offer_id} quantity={intent.quantity} "
                f"leverage={intent.leverage}"
            )
            try:
                response = await self._client.post_order(intent)
            except DaemonAPIError as e:
                logger.error(f"Order submission failed: {e}")
                self._notifications.show(
                    NotificationStatus.ERROR,
                    "Error: Submitting order",
                    describe_failure(e),
                )
                raise
            finally:
                self._emit(False)

        logger.info(f"Order accepted by daemon: offer={intent.offer_id}")
        return SubmissionResult(intent=intent, response=response)
