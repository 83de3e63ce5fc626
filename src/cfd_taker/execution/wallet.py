"""Wallet withdraw and sync operations."""

import logging
from decimal import Decimal

from cfd_taker.core.errors import DaemonAPIError
from cfd_taker.core.types import NotificationStatus
from cfd_taker.execution.client import DaemonRestClient
from cfd_taker.execution.submission import SingleFlightGate, describe_failure
from cfd_taker.notifications.center import NotificationCenter

logger = logging.getLogger(__name__)


class WalletOperations:
    """Withdraw and resync requests; the wallet topic reflects the outcome."""

    def __init__(self, client: DaemonRestClient, notifications: NotificationCenter) -> None:
        self._client = client
        self._notifications = notifications
        self._withdraw_gate = SingleFlightGate("withdraw")
        self._sync_gate = SingleFlightGate("sync")

    @property
    def is_withdrawing(self) -> bool:
        return self._withdraw_gate.busy

    @property
    def is_syncing(self) -> bool:
        return self._sync_gate.busy

    async def withdraw(self, amount: Decimal, fee: Decimal, address: str) -> str:
        """Withdraw funds.

        Args:
            amount: Amount in BTC, zero withdraws everything
            fee: Fee rate in sats/vbyte
            address: Target address

        Returns:
            Explorer URL of the withdraw transaction
        """
        if amount < 0:
            raise ValueError(f"withdraw amount must not be negative, got {amount}")
        if not address.strip():
            raise ValueError("withdraw address is required")

        with self._withdraw_gate.hold():
            try:
                url = await self._client.withdraw(amount, fee, address.strip())
            except DaemonAPIError as e:
                self._notifications.show(
                    NotificationStatus.ERROR, "Error: Withdraw", describe_failure(e)
                )
                raise

        self._notifications.show(NotificationStatus.INFO, "Withdraw successful", url)
        return url

    async def sync(self) -> None:
        """Ask the daemon to resynchronize the wallet."""
        with self._sync_gate.hold():
            try:
                await self._client.sync_wallet()
            except DaemonAPIError as e:
                self._notifications.show(
                    NotificationStatus.ERROR, "Error: Syncing Wallet", describe_failure(e)
                )
                raise
        logger.info("Wallet sync requested")
