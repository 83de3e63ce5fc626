"""Tests for the daemon REST client."""

from decimal import Decimal

import pytest
from aiohttp import test_utils, web

from cfd_taker.core.errors import DaemonAPIError
from cfd_taker.core.types import CfdAction
from cfd_taker.execution.client import DaemonRestClient
from cfd_taker.trading.calculator import TradeIntent


class DaemonStub:
    """Records requests and answers with canned responses."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, object]] = []
        self.responses: dict[str, web.Response] = {}

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.json() if request.can_read_body else None
        self.requests.append((request.method, request.path, body))
        return self.responses.get(request.path, web.json_response({}))

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app


async def start(stub: DaemonStub) -> tuple[test_utils.TestServer, DaemonRestClient]:
    server = test_utils.TestServer(stub.app())
    await server.start_server()
    return server, DaemonRestClient(str(server.make_url("/")))


class TestDaemonRestClient:
    """Test request shapes and error mapping."""

    @pytest.mark.asyncio
    async def test_post_order(self):
        stub = DaemonStub()
        server, client = await start(stub)
        try:
            await client.post_order(TradeIntent("offer-1", Decimal("300"), 2))
        finally:
            await client.close()
            await server.close()

        assert stub.requests == [
            ("POST", "/api/cfd/order", {"offer_id": "offer-1", "quantity": 300, "leverage": 2})
        ]

    @pytest.mark.asyncio
    async def test_error_uses_description(self):
        stub = DaemonStub()
        stub.responses["/api/cfd/order"] = web.json_response(
            {"title": "Order rejected", "description": "Offer expired"}, status=400
        )
        server, client = await start(stub)
        try:
            with pytest.raises(DaemonAPIError) as exc_info:
                await client.post_order(TradeIntent("offer-1", Decimal("300"), 2))
        finally:
            await client.close()
            await server.close()

        assert exc_info.value.status == 400
        assert exc_info.value.description == "Offer expired"

    @pytest.mark.asyncio
    async def test_error_without_description_uses_reason(self):
        stub = DaemonStub()
        stub.responses["/api/sync"] = web.Response(status=500)
        server, client = await start(stub)
        try:
            with pytest.raises(DaemonAPIError) as exc_info:
                await client.sync_wallet()
        finally:
            await client.close()
            await server.close()

        assert exc_info.value.status == 500
        assert exc_info.value.description == "Internal Server Error"
        assert stub.requests[0][:2] == ("PUT", "/api/sync")

    @pytest.mark.asyncio
    async def test_unreachable_daemon(self):
        server = test_utils.TestServer(web.Application())
        await server.start_server()
        url = str(server.make_url("/"))
        await server.close()

        client = DaemonRestClient(url, timeout=2)
        try:
            with pytest.raises(DaemonAPIError) as exc_info:
                await client.sync_wallet()
        finally:
            await client.close()

        assert exc_info.value.status is None
        assert exc_info.value.description

    @pytest.mark.asyncio
    async def test_calculate_margin(self):
        stub = DaemonStub()
        stub.responses["/api/calculate/margin"] = web.json_response({"margin": 0.003})
        server, client = await start(stub)
        try:
            margin = await client.calculate_margin(Decimal("41234.5"), Decimal("300"), 2)
        finally:
            await client.close()
            await server.close()

        assert margin == Decimal("0.003")
        assert stub.requests[0][2] == {"price": 41234.5, "quantity": 300.0, "leverage": 2}

    @pytest.mark.asyncio
    async def test_withdraw_returns_url(self):
        stub = DaemonStub()
        stub.responses["/api/withdraw"] = web.json_response("https://mempool.space/tx/abc")
        server, client = await start(stub)
        try:
            url = await client.withdraw(Decimal("0.01"), Decimal("1"), "bc1qaddress")
        finally:
            await client.close()
            await server.close()

        assert url == "https://mempool.space/tx/abc"
        assert stub.requests[0][2] == {"amount": 0.01, "fee": 1.0, "address": "bc1qaddress"}

    @pytest.mark.asyncio
    async def test_cfd_action_path(self):
        stub = DaemonStub()
        server, client = await start(stub)
        try:
            await client.post_cfd_action("cfd-1", CfdAction.SETTLE)
        finally:
            await client.close()
            await server.close()

        assert stub.requests == [("POST", "/api/cfd/cfd-1/settle", None)]
