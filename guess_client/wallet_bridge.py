"""
wallet_bridge.py
HTTP client for the local wallet bridge, and a session provider built on it.

The bridge is a small local service that pairs a browser wallet with this
process: it reports the connected account and network, and turns unsigned
transactions into signing requests the user approves in the browser.
"""

import asyncio
import json
import logging
import time
import webbrowser
from decimal import Decimal
from typing import Awaitable, Callable, Optional
from urllib import request, error

from guess_client.exceptions import RemoteReadError

logger = logging.getLogger(__name__)


class WalletBridgeClient:
    def __init__(self, base_url="http://127.0.0.1:8787"):
        self.base_url = base_url.rstrip("/")

    def _get(self, path):
        url = f"{self.base_url}{path}"
        req = request.Request(url, method="GET")
        with request.urlopen(req, timeout=5) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def _post(self, path, payload):
        url = f"{self.base_url}{path}"
        body = json.dumps(payload).encode("utf-8")
        req = request.Request(
            url,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with request.urlopen(req, timeout=10) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def health(self):
        return self._get("/health")

    def get_account_for_player(self, player_id):
        return self._get(f"/wallet/account?playerId={player_id}")

    def get_network(self, player_id):
        return self._get(f"/wallet/network?playerId={player_id}")

    def connect_player(self, player_id, display_name=None, open_browser=True):
        payload = {"playerId": player_id, "displayName": display_name}
        response = self._post("/wallet/connect", payload)
        if open_browser and response.get("connectUrl"):
            webbrowser.open(response["connectUrl"])
        return response

    def create_sign_request(self, player_id, action, xdr, network_passphrase, metadata=None, open_browser=True):
        response = self._post(
            "/tx/request",
            {
                "playerId": player_id,
                "action": action,
                "xdr": xdr,
                "networkPassphrase": network_passphrase,
                "metadata": metadata or {},
            },
        )
        if open_browser and response.get("signerUrl"):
            webbrowser.open(response["signerUrl"])
        return response

    def get_sign_request(self, request_id):
        return self._get(f"/tx/request/{request_id}")

    def wait_for_signed_request(self, request_id, timeout_seconds=120, poll_seconds=1.5):
        started = time.time()
        while time.time() - started <= timeout_seconds:
            payload = self.get_sign_request(request_id)
            if not payload.get("ok"):
                return payload
            status = payload["request"].get("status")
            if status in {"signed", "rejected"}:
                return payload
            time.sleep(poll_seconds)
        return {"ok": False, "error": "sign_request_timeout", "requestId": request_id}

    def is_healthy(self):
        try:
            return bool(self.health().get("ok", False))
        except (error.URLError, OSError, ValueError):
            return False


BalanceReader = Callable[[str], Awaitable[Decimal]]


class BridgeSessionProvider:
    """
    Session provider answering from the wallet bridge.

    The first account lookup that finds no linked wallet asks the bridge to
    start a connection, which opens the wallet's approval page once.
    Balances come from `balance_reader`, since the bridge does not track them.
    """

    def __init__(
        self,
        bridge: WalletBridgeClient,
        player_id: str,
        balance_reader: BalanceReader,
        display_name: Optional[str] = None,
        open_browser: bool = True,
    ):
        self.bridge = bridge
        self.player_id = player_id
        self.balance_reader = balance_reader
        self.display_name = display_name
        self.open_browser = open_browser
        self._connect_requested = False

    async def _bridge_call(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except (error.URLError, OSError, ValueError) as exc:
            raise RemoteReadError(f"wallet bridge unreachable: {exc}") from exc

    async def get_account(self) -> Optional[str]:
        account = await self._bridge_call(self.bridge.get_account_for_player, self.player_id)
        if account.get("connected") and account.get("address"):
            return account["address"]
        if not self._connect_requested:
            self._connect_requested = True
            conn = await self._bridge_call(
                self.bridge.connect_player, self.player_id, self.display_name, self.open_browser
            )
            logger.info("Connect wallet in browser -> %s", conn.get("connectUrl", ""))
        return None

    async def get_network(self) -> Optional[str]:
        payload = await self._bridge_call(self.bridge.get_network, self.player_id)
        if not payload.get("ok"):
            return None
        return payload.get("networkPassphrase") or payload.get("network")

    async def get_balance(self, account: str) -> Decimal:
        return await self.balance_reader(account)
