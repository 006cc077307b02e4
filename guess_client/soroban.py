"""
soroban.py
Runs the guess-number game against a Soroban deployment of the contract.

Prerequisites
-------------
- stellar-sdk >= 13.0  (pip install stellar-sdk)
- SOROBAN_CONTRACT_ID  env var must be set to the deployed contract address.
- SOROBAN_RPC_URL      defaults to https://soroban-testnet.stellar.org
- SOROBAN_NET_PHRASE   defaults to Testnet passphrase.
- SOROBAN_HORIZON_URL  defaults to https://horizon-testnet.stellar.org

Flow
----
  reads   simulate the call on RPC and decode the returned value
  writes  simulate, hand the unsigned XDR to the wallet bridge for signing,
          then broadcast the signed envelope; the tx hash is the handle
  events  poll getEvents for the contract, filtered on the event symbol

The game contract takes the caller's address as its first argument
(`caller_arg`) and the paid amount as an explicit trailing i128 argument
for `guess`. The student registry takes only the student id.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from stellar_sdk import Address, Network, Server, SorobanServer, TransactionEnvelope, scval
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.contract import ContractClient
from stellar_sdk.soroban_rpc import EventFilter, EventFilterType, GetTransactionStatus

from guess_client.events import EventWatch
from guess_client.exceptions import RemoteReadError, RemoteWriteError
from guess_client.interfaces import EventCallback
from guess_client.models import TxOptions, TxReceipt
from guess_client.wallet_bridge import WalletBridgeClient

logger = logging.getLogger(__name__)

# Any funded-or-not account works as the source of a read-only simulation.
READ_SOURCE = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"


# ── configuration ────────────────────────────────────────────────────────────

@dataclass
class StellarConfig:
    rpc_url: str
    network_passphrase: str
    contract_id: str
    horizon_url: str = "https://horizon-testnet.stellar.org"
    registry_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StellarConfig":
        contract_id = os.environ.get("SOROBAN_CONTRACT_ID", "").strip()
        if not contract_id:
            raise EnvironmentError(
                "SOROBAN_CONTRACT_ID is not set.\n"
                "Deploy the guess-number contract first, then\n"
                "export SOROBAN_CONTRACT_ID=<deployed_address>"
            )
        rpc_url = os.environ.get(
            "SOROBAN_RPC_URL", "https://soroban-testnet.stellar.org"
        )
        passphrase = os.environ.get(
            "SOROBAN_NET_PHRASE", Network.TESTNET_NETWORK_PASSPHRASE
        )
        horizon_url = os.environ.get(
            "SOROBAN_HORIZON_URL", "https://horizon-testnet.stellar.org"
        )
        registry_id = os.environ.get("SOROBAN_REGISTRY_ID", "").strip() or None
        return cls(
            rpc_url=rpc_url,
            network_passphrase=passphrase,
            contract_id=contract_id,
            horizon_url=horizon_url,
            registry_id=registry_id,
        )


# ── value conversion ─────────────────────────────────────────────────────────

def to_scval(value: Any) -> stellar_xdr.SCVal:
    """Encode a plain Python argument for a contract call."""
    if isinstance(value, bool):
        return scval.to_bool(value)
    if isinstance(value, int):
        return scval.to_int128(value)
    if isinstance(value, str):
        if len(value) == 56 and value[0] in "GC":
            return scval.to_address(value)
        return scval.to_string(value)
    raise TypeError(f"cannot encode {type(value).__name__} as a contract argument")


def from_scval(value: Any) -> Any:
    """Decode an SCVal (or its base64 XDR) into plain Python values."""
    if isinstance(value, str):
        value = stellar_xdr.SCVal.from_xdr(value)
    native = scval.to_native(value)
    if isinstance(native, Address):
        return native.address
    if isinstance(native, (list, tuple)):
        return [n.address if isinstance(n, Address) else n for n in native]
    return native


# ── ledger client ────────────────────────────────────────────────────────────

class SorobanLedgerClient:
    """
    Ledger client for one Soroban contract. Transactions are signed by the
    user's wallet through the bridge, never by this process.
    """

    def __init__(
        self,
        config: StellarConfig,
        bridge: WalletBridgeClient,
        player_id: str,
        contract_id: Optional[str] = None,
        caller_arg: bool = True,
        event_poll_interval: float = 2.0,
        sign_timeout: float = 120,
        contract=None,
        server=None,
    ):
        self.config = config
        self.bridge = bridge
        self.player_id = player_id
        self.contract_id = contract_id or config.contract_id
        self.caller_arg = caller_arg
        self.event_poll_interval = event_poll_interval
        self.sign_timeout = sign_timeout
        self._contract = contract or ContractClient(
            contract_id=self.contract_id,
            rpc_url=config.rpc_url,
            network_passphrase=config.network_passphrase,
        )
        self._server = server or SorobanServer(config.rpc_url)
        self._default_account: Optional[str] = None

    def set_default_account(self, account: Optional[str]) -> None:
        self._default_account = account

    # ── internal ─────────────────────────────────────────────────────────────

    def _assemble(self, function_name: str, params: list, source: str):
        return self._contract.invoke(
            function_name=function_name,
            parameters=params,
            source=source,
            signer=None,    # the wallet bridge signs
            simulate=True,
        )

    def _sign(self, action: str, xdr: str) -> str:
        req = self.bridge.create_sign_request(
            player_id=self.player_id,
            action=action,
            xdr=xdr,
            network_passphrase=self.config.network_passphrase,
            metadata={},
            open_browser=True,
        )
        rid = req.get("requestId")
        if not rid:
            raise RemoteWriteError(f"{action}: bridge error {req}")

        result = self.bridge.wait_for_signed_request(rid, timeout_seconds=self.sign_timeout)
        if not result.get("ok"):
            raise RemoteWriteError(f"{action}: {result.get('error', 'unknown')}")

        req_obj = result["request"]
        if req_obj.get("status") != "signed":
            raise RemoteWriteError(f"{action}: rejected by wallet")
        return req_obj["signedXdr"]

    def _submit(self, action: str, params: list, source: str) -> str:
        unsigned = self._assemble(action, params, source).to_xdr()
        signed = self._sign(action, unsigned)
        tx = TransactionEnvelope.from_xdr(
            signed,
            network_passphrase=self.config.network_passphrase,
        )
        response = self._server.send_transaction(tx)
        status = (
            response.status.value
            if hasattr(response.status, "value")
            else str(response.status)
        )
        if status == "ERROR":
            raise RemoteWriteError(f"{action}: rejected by RPC ({response.error_result_xdr})")
        return response.hash

    # ── LedgerClient ─────────────────────────────────────────────────────────

    async def call(self, method: str, args: Sequence[Any] = ()) -> Any:
        source = self._default_account or READ_SOURCE
        params = [to_scval(a) for a in args]
        if self.caller_arg and self._default_account:
            params.insert(0, scval.to_address(self._default_account))
        try:
            assembled = await asyncio.to_thread(self._assemble, method, params, source)
            raw = assembled.result()
        except Exception as exc:
            raise RemoteReadError(f"{method}() simulation failed: {exc}") from exc
        if raw is None:
            return None
        return from_scval(raw)

    async def send(self, method: str, args: Sequence[Any], options: TxOptions) -> str:
        sender = options.sender or self._default_account
        if not sender:
            raise RemoteWriteError(f"{method}: no wallet address to send from")
        params = [to_scval(a) for a in args]
        if self.caller_arg:
            params.insert(0, scval.to_address(sender))
        if options.value is not None:
            params.append(scval.to_int128(options.value))
        try:
            return await asyncio.to_thread(self._submit, method, params, sender)
        except RemoteWriteError:
            raise
        except Exception as exc:
            raise RemoteWriteError(f"{method}: {exc}") from exc

    async def get_receipt(self, handle: str) -> Optional[TxReceipt]:
        try:
            response = await asyncio.to_thread(self._server.get_transaction, handle)
        except Exception as exc:
            raise RemoteReadError(f"getTransaction failed: {exc}") from exc
        if response.status == GetTransactionStatus.NOT_FOUND:
            return None
        return TxReceipt(
            handle=handle,
            finalized=True,
            success=response.status == GetTransactionStatus.SUCCESS,
            raw={"status": response.status.value, "ledger": response.ledger},
        )

    async def subscribe(self, event_name: str, callback: EventCallback) -> EventWatch:
        try:
            latest = await asyncio.to_thread(self._server.get_latest_ledger)
        except Exception as exc:
            raise RemoteReadError(f"getLatestLedger failed: {exc}") from exc

        filters = [
            EventFilter(
                event_type=EventFilterType.CONTRACT,
                contract_ids=[self.contract_id],
                topics=[[scval.to_symbol(event_name).to_xdr(), "*"]],
            )
        ]
        position = {"start": latest.sequence, "cursor": None}

        def _poll() -> List[Dict[str, Any]]:
            if position["cursor"]:
                response = self._server.get_events(filters=filters, cursor=position["cursor"])
            else:
                response = self._server.get_events(start_ledger=position["start"], filters=filters)
            position["cursor"] = response.cursor
            return [decode_winner(event.topic, event.value) for event in response.events]

        async def _fetch() -> List[Dict[str, Any]]:
            try:
                return await asyncio.to_thread(_poll)
            except Exception as exc:
                raise RemoteReadError(str(exc)) from exc

        return EventWatch(event_name, _fetch, callback, self.event_poll_interval)

    async def health(self) -> bool:
        try:
            response = await asyncio.to_thread(self._server.get_health)
        except Exception as exc:
            logger.debug("Health probe failed: %s", exc)
            return False
        return response.status == "healthy"


def decode_winner(topic: Sequence[str], value: str) -> Dict[str, Any]:
    """Winner events are published as topics (symbol, winner) with the answer as data."""
    topics = [from_scval(t) for t in topic]
    return {
        "_winner": topics[1] if len(topics) > 1 else None,
        "_answer": from_scval(value),
    }


# ── balances ─────────────────────────────────────────────────────────────────

class HorizonBalanceReader:
    """Native XLM balance of an account, read from Horizon."""

    def __init__(self, horizon_url: str, server=None):
        self._server = server or Server(horizon_url)

    def _native_balance(self, account: str) -> Decimal:
        record = self._server.accounts().account_id(account).call()
        for balance in record.get("balances", []):
            if balance.get("asset_type") == "native":
                return Decimal(balance["balance"])
        return Decimal(0)

    async def __call__(self, account: str) -> Decimal:
        try:
            return await asyncio.to_thread(self._native_balance, account)
        except Exception as exc:
            raise RemoteReadError(f"Horizon balance lookup failed: {exc}") from exc
