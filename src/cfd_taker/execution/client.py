"""Daemon REST API client."""

import asyncio
import json
import logging
from decimal import Decimal
from typing import Any

import aiohttp

from cfd_taker.core.errors import DaemonAPIError
from cfd_taker.core.types import CfdAction
from cfd_taker.data.models import to_decimal
from cfd_taker.trading.calculator import TradeIntent

logger = logging.getLogger(__name__)


class DaemonRestClient:
    """HTTP client for the taker daemon's ``/api`` routes."""

    def __init__(
        self,
        base_url: str,
        auth: aiohttp.BasicAuth | None = None,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(auth=self._auth)
                self._owns_session = True
            return self._session

    async def close(self) -> None:
        async with self._lock:
            if self._owns_session and self._session and not self._session.closed:
                await self._session.close()
            self._session = None

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        session = await self._get_session()
        url = f"{self.base_url}{path}"

        try:
            async with session.request(
                method.upper(), url, json=body, timeout=self._timeout
            ) as resp:
                text = await resp.text()
                payload: Any = text
                if text:
                    try:
                        payload = json.loads(text)
                    except json.JSONDecodeError:
                        payload = text

                if not 200 <= resp.status < 300:
                    description = None
                    if isinstance(payload, dict):
                        description = payload.get("description")
                    raise DaemonAPIError(resp.status, description or resp.reason or "")

                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{method.upper()} {path} failed: {e}")
            raise DaemonAPIError(None, str(e) or type(e).__name__) from e

    async def post_order(self, intent: TradeIntent) -> Any:
        """Open a new position by taking an offer."""
        return await self._request("POST", "/api/cfd/order", intent.to_payload())

    async def calculate_margin(self, price: Decimal, quantity: Decimal, leverage: int) -> Decimal:
        """Ask the daemon for the margin of a position."""
        payload = await self._request(
            "POST",
            "/api/calculate/margin",
            {"price": float(price), "quantity": float(quantity), "leverage": leverage},
        )
        return to_decimal(payload["margin"])

    async def withdraw(self, amount: Decimal, fee: Decimal, address: str) -> str:
        """Withdraw from the wallet; returns the transaction explorer URL."""
        payload = await self._request(
            "POST",
            "/api/withdraw",
            {"amount": float(amount), "fee": float(fee), "address": address},
        )
        return str(payload)

    async def sync_wallet(self) -> None:
        """Trigger a wallet resynchronization."""
        await self._request("PUT", "/api/sync")

    async def post_cfd_action(self, order_id: str, action: CfdAction) -> None:
        """Run an action (commit, settle, ...) on an existing CFD."""
        await self._request("POST", f"/api/cfd/{order_id}/{action.value}")
