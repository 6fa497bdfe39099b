"""
Tests for the RPC fallback router.

============================================================
PURPOSE
============================================================
Exercise endpoint and auth-variant fallback against a real local
HTTP server.

TEST PRINCIPLES:
- The first well-formed answer wins
- Unreachable endpoints are skipped for the rest of a pass
- Definitive answers (404, passthrough codes) are not retried
- Exhaustion raises RpcUnavailableError

============================================================
"""

from decimal import Decimal

import pytest
from aiohttp import test_utils, web

from chain_adapters.exceptions import RpcResponseError, RpcUnavailableError
from chain_adapters.router import RpcRouter, redact_endpoint
from core.exceptions import ConfigurationError


UNREACHABLE = "http://127.0.0.1:1"


def _router(endpoints, **kwargs) -> RpcRouter:
    kwargs.setdefault("extra_passes", 0)
    kwargs.setdefault("backoff_seconds", 0)
    kwargs.setdefault("variant_pause_seconds", 0)
    kwargs.setdefault("timeout", 5)
    return RpcRouter("eth", endpoints, **kwargs)


class FakeNode:
    """Local JSON-RPC + REST server with a request counter."""

    def __init__(self, required_auth=None, rpc_status=200, rpc_error=None, result='"0x10"'):
        self.required_auth = required_auth
        self.rpc_status = rpc_status
        self.rpc_error = rpc_error
        self.result = result
        self.calls = 0
        self.server = None

    @property
    def url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    def _authorized(self, request: web.Request) -> bool:
        if self.required_auth is None:
            return True
        return request.headers.get("Authorization") == self.required_auth

    async def rpc(self, request: web.Request) -> web.Response:
        self.calls += 1
        if not self._authorized(request):
            return web.json_response({"error": "unauthorized"}, status=401)
        if self.rpc_status != 200:
            return web.Response(status=self.rpc_status, text="upstream error")
        payload = await request.json()
        if self.rpc_error is not None:
            return web.json_response({"jsonrpc": "2.0", "id": payload["id"], "error": self.rpc_error})
        return web.Response(
            text=f'{{"jsonrpc": "2.0", "id": {payload["id"]}, "result": {self.result}}}',
            content_type="application/json",
        )

    async def tx(self, request: web.Request) -> web.Response:
        self.calls += 1
        if request.match_info["tx_id"] == "missing":
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response({"id": request.match_info["tx_id"], "apikey": request.query.get("apikey")})

    async def __aenter__(self) -> "FakeNode":
        app = web.Application()
        app.router.add_post("/", self.rpc)
        app.router.add_get("/tx/{tx_id}", self.tx)
        self.server = test_utils.TestServer(app)
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.server.close()


# ============================================================
# JSON-RPC
# ============================================================

class TestRouterCall:
    """Test JSON-RPC dispatch."""

    @pytest.mark.asyncio
    async def test_success(self):
        async with FakeNode(result='"0x10"') as node:
            async with _router([node.url]) as router:
                assert await router.call("eth_blockNumber") == "0x10"
                assert router.last_used == {"endpoint": "http://127.0.0.1", "auth": "no-key"}

    @pytest.mark.asyncio
    async def test_auth_variant_fallback(self):
        """Header variants are tried in order until Bearer works."""
        async with FakeNode(required_auth="Bearer secret", result='"0x1"') as node:
            async with _router([node.url], api_key="secret") as router:
                assert await router.call("eth_blockNumber") == "0x1"
                assert router.last_used["auth"] == "header:bearer"
                assert node.calls == 4

                await router.call("eth_blockNumber")
                assert node.calls == 5

    @pytest.mark.asyncio
    async def test_endpoint_fallback(self):
        """An unreachable first endpoint falls through to the next."""
        async with FakeNode(result='"0x2"') as node:
            async with _router([UNREACHABLE, node.url]) as router:
                assert await router.call("eth_blockNumber") == "0x2"
                attempts = router.get_attempts()
                assert attempts[0]["ok"] is False
                assert attempts[0]["status"] is None
                assert attempts[-1]["ok"] is True

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_skips_remaining_variants(self):
        """Connection failures skip the endpoint's other auth variants."""
        async with FakeNode(result='"0x3"') as node:
            async with _router([UNREACHABLE, node.url], api_key="k") as router:
                await router.call("eth_blockNumber")
                failed = [a for a in router.get_attempts() if not a["ok"]]
                assert len(failed) == 1

    @pytest.mark.asyncio
    async def test_passthrough_code(self):
        """Selected JSON-RPC error codes are definitive answers."""
        error = {"code": -5, "message": "No such mempool or blockchain transaction"}
        async with FakeNode(rpc_error=error) as node:
            async with _router([node.url], extra_passes=2) as router:
                with pytest.raises(RpcResponseError) as exc:
                    await router.call("getrawtransaction", ["ab" * 32, 1], passthrough_codes=(-5,))
                assert exc.value.rpc_code == -5
                assert node.calls == 1

    @pytest.mark.asyncio
    async def test_other_rpc_error_exhausts(self):
        error = {"code": -32000, "message": "header not found"}
        async with FakeNode(rpc_error=error) as node:
            async with _router([node.url], extra_passes=1) as router:
                with pytest.raises(RpcUnavailableError):
                    await router.call("eth_getBlockByNumber", ["0x1", True])
                assert node.calls == 2

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        """Every pass over every endpoint fails."""
        async with FakeNode(rpc_status=500) as node:
            async with _router([node.url, UNREACHABLE], extra_passes=2) as router:
                with pytest.raises(RpcUnavailableError) as exc:
                    await router.call("eth_blockNumber")
                assert node.calls == 3
                assert exc.value.code == "rpc_unavailable"
                assert len(exc.value.attempts) == 6

    @pytest.mark.asyncio
    async def test_rate_limit_moves_on(self):
        async with FakeNode(rpc_status=429) as limited, FakeNode(result='"0x4"') as healthy:
            async with _router([limited.url, healthy.url]) as router:
                assert await router.call("eth_blockNumber") == "0x4"
                assert router.get_attempts()[0]["status"] == 429

    @pytest.mark.asyncio
    async def test_decimal_parsing(self):
        """bitcoind amounts parse as Decimal when requested."""
        async with FakeNode(result="0.1") as node:
            async with _router([node.url], parse_float_as_decimal=True) as router:
                value = await router.call("getblockcount")
                assert value == Decimal("0.1")
                assert isinstance(value, Decimal)


# ============================================================
# REST
# ============================================================

class TestRouterRequest:
    """Test REST dispatch."""

    @pytest.mark.asyncio
    async def test_get_with_query_key(self):
        async with FakeNode() as node:
            strategies = _router(["http://x"], api_key="k").strategies
            query_only = tuple(s for s in strategies if s.name == "query:apikey")
            async with _router([node.url], api_key="k", strategies=query_only) as router:
                body = await router.request("GET", "tx/abc")
                assert body == {"id": "abc", "apikey": "k"}

    @pytest.mark.asyncio
    async def test_not_found_ok(self):
        async with FakeNode() as node:
            async with _router([node.url], extra_passes=2) as router:
                assert await router.request("GET", "/tx/missing", not_found_ok=True) is None
                assert node.calls == 1

    @pytest.mark.asyncio
    async def test_not_found_without_flag_exhausts(self):
        async with FakeNode() as node:
            async with _router([node.url]) as router:
                with pytest.raises(RpcUnavailableError):
                    await router.request("GET", "/tx/missing")


class TestRouterConfig:
    """Test construction edge cases."""

    def test_empty_pool(self):
        with pytest.raises(ConfigurationError):
            RpcRouter("eth", [])

    def test_pool_deduplicated(self):
        router = RpcRouter("eth", ["https://a.example/", "https://a.example"])
        assert router.endpoints == ["https://a.example"]

    def test_redact_endpoint(self):
        assert redact_endpoint("https://eth.node.example/v1/SECRETKEY") == "https://eth.node.example"
