import asyncio
import json
from decimal import Decimal
from urllib import error

import pytest

from guess_client import wallet_bridge
from guess_client.exceptions import RemoteReadError
from guess_client.wallet_bridge import BridgeSessionProvider, WalletBridgeClient


class _Resp:
    def __init__(self, payload):
        self.payload = payload

    def read(self):
        return json.dumps(self.payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeBridgeServer:
    """Routes urlopen() requests to canned JSON payloads keyed by path."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, req, timeout=None):
        path = req.full_url.split("8787", 1)[1]
        body = json.loads(req.data) if req.data else None
        self.requests.append((req.get_method(), path, body))
        payload = self.routes[path]
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, list):
            payload = payload.pop(0) if len(payload) > 1 else payload[0]
        return _Resp(payload)


@pytest.fixture
def bridge(monkeypatch):
    def install(routes):
        server = FakeBridgeServer(routes)
        monkeypatch.setattr(wallet_bridge.request, "urlopen", server)
        monkeypatch.setattr(wallet_bridge.webbrowser, "open", lambda url: None)
        return WalletBridgeClient("http://127.0.0.1:8787"), server

    return install


async def _balance(account):
    return Decimal("12.5")


def test_connected_account_is_returned(bridge):
    client, server = bridge({"/wallet/account?playerId=p1": {"ok": True, "connected": True, "address": "GABC"}})
    provider = BridgeSessionProvider(client, "p1", _balance)

    assert asyncio.run(provider.get_account()) == "GABC"
    assert [r[0] for r in server.requests] == ["GET"]


def test_connect_is_requested_only_once(bridge):
    client, server = bridge({
        "/wallet/account?playerId=p1": {"ok": True, "connected": False},
        "/wallet/connect": {"ok": True, "connectUrl": "http://127.0.0.1:8787/connect/p1"},
    })
    provider = BridgeSessionProvider(client, "p1", _balance, display_name="Alice")

    async def run():
        return [await provider.get_account() for _ in range(3)]

    assert asyncio.run(run()) == [None, None, None]
    posts = [r for r in server.requests if r[0] == "POST"]
    assert posts == [("POST", "/wallet/connect", {"playerId": "p1", "displayName": "Alice"})]


def test_unreachable_bridge_is_a_read_error(bridge):
    client, _ = bridge({"/wallet/account?playerId=p1": error.URLError("refused")})
    provider = BridgeSessionProvider(client, "p1", _balance)

    with pytest.raises(RemoteReadError):
        asyncio.run(provider.get_account())


def test_network_and_balance(bridge):
    client, _ = bridge({
        "/wallet/network?playerId=p1": [
            {"ok": False},
            {"ok": True, "networkPassphrase": "Test SDF Network ; September 2015"},
        ],
    })
    provider = BridgeSessionProvider(client, "p1", _balance)

    assert asyncio.run(provider.get_network()) is None
    assert asyncio.run(provider.get_network()) == "Test SDF Network ; September 2015"
    assert asyncio.run(provider.get_balance("GABC")) == Decimal("12.5")


def test_wait_for_signed_request(bridge):
    client, server = bridge({
        "/tx/request/r1": [
            {"ok": True, "request": {"status": "pending"}},
            {"ok": True, "request": {"status": "signed", "signedXdr": "AAAA"}},
        ],
    })

    result = client.wait_for_signed_request("r1", timeout_seconds=5, poll_seconds=0)

    assert result["request"]["signedXdr"] == "AAAA"
    assert len(server.requests) == 2


def test_wait_for_signed_request_times_out(bridge):
    client, _ = bridge({"/tx/request/r1": {"ok": True, "request": {"status": "pending"}}})

    result = client.wait_for_signed_request("r1", timeout_seconds=0, poll_seconds=0)

    assert result == {"ok": False, "error": "sign_request_timeout", "requestId": "r1"}


def test_is_healthy(bridge):
    client, _ = bridge({"/health": {"ok": True}})
    assert client.is_healthy()

    client, _ = bridge({"/health": error.URLError("refused")})
    assert not client.is_healthy()
