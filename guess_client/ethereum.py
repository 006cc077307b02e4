"""
ethereum.py
web3.py adapters for the guess-number contract on an EVM chain.

`Web3SessionProvider` reads the unlocked account, network id and ether
balance from a wallet-backed JSON-RPC node; `Web3LedgerClient` calls,
transacts and watches one contract. web3.py is synchronous, so every
request runs via `asyncio.to_thread` to keep the event loop free.

Use `connect(config)` to build both. When the wallet node is unreachable it
falls back to a read-only connection with no session provider.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3
from web3.exceptions import TransactionNotFound

from guess_client.abi import GUESS_NUMBER_ABI, STUDENT_REGISTRY_ABI
from guess_client.config import ClientConfig
from guess_client.events import EventWatch
from guess_client.exceptions import ProviderUnavailable, RemoteReadError, RemoteWriteError
from guess_client.interfaces import EventCallback
from guess_client.models import TxOptions, TxReceipt

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


def _http_web3(url: str) -> Web3:
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": REQUEST_TIMEOUT}))


class Web3SessionProvider:
    def __init__(self, w3: Web3, account_index: int = 0):
        self.w3 = w3
        self.account_index = account_index

    async def get_account(self) -> Optional[str]:
        try:
            accounts = await asyncio.to_thread(lambda: self.w3.eth.accounts)
        except Exception as exc:
            raise RemoteReadError(f"eth_accounts failed: {exc}") from exc
        if len(accounts) > self.account_index:
            return accounts[self.account_index]
        return None

    async def get_network(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(lambda: self.w3.net.version)
        except Exception as exc:
            raise RemoteReadError(f"net_version failed: {exc}") from exc

    async def get_balance(self, account: str) -> Decimal:
        try:
            wei = await asyncio.to_thread(self.w3.eth.get_balance, account)
        except Exception as exc:
            raise RemoteReadError(f"eth_getBalance failed: {exc}") from exc
        return Decimal(self.w3.from_wei(wei, "ether"))


class Web3LedgerClient:
    def __init__(self, w3: Web3, address: str, abi: List[Dict[str, Any]], event_poll_interval: float = 2.0):
        self.w3 = w3
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        self.event_poll_interval = event_poll_interval
        self._default_account: Optional[str] = None

    def set_default_account(self, account: Optional[str]) -> None:
        # Contract reads are per-sender (query() returns the caller's own range).
        self._default_account = account
        self.w3.eth.default_account = account

    def _function(self, method: str, args: Sequence[Any]):
        return getattr(self.contract.functions, method)(*args)

    async def call(self, method: str, args: Sequence[Any] = ()) -> Any:
        tx = {"from": self._default_account} if self._default_account else None
        try:
            fn = self._function(method, args)
            return await asyncio.to_thread(fn.call, tx)
        except Exception as exc:
            raise RemoteReadError(f"{method}() call failed: {exc}") from exc

    async def send(self, method: str, args: Sequence[Any], options: TxOptions) -> str:
        try:
            fn = self._function(method, args)
            tx_hash = await asyncio.to_thread(fn.transact, options.as_dict())
        except Exception as exc:
            raise RemoteWriteError(f"{method}() transaction failed: {exc}") from exc
        return Web3.to_hex(tx_hash)

    async def get_receipt(self, handle: str) -> Optional[TxReceipt]:
        try:
            receipt = await asyncio.to_thread(self.w3.eth.get_transaction_receipt, handle)
        except TransactionNotFound:
            return None
        except Exception as exc:
            raise RemoteReadError(f"receipt lookup failed: {exc}") from exc
        if receipt is None:
            return None
        raw = dict(receipt)
        status = raw.get("status")
        return TxReceipt(
            handle=handle,
            finalized="status" in raw,
            success=None if status is None else status == 1,
            raw=raw,
        )

    async def subscribe(self, event_name: str, callback: EventCallback) -> EventWatch:
        event = getattr(self.contract.events, event_name)
        try:
            event_filter = await asyncio.to_thread(event.create_filter, from_block="latest")
        except Exception as exc:
            raise RemoteReadError(f"could not install {event_name} filter: {exc}") from exc

        async def _fetch() -> List[Dict[str, Any]]:
            try:
                entries = await asyncio.to_thread(event_filter.get_new_entries)
            except Exception as exc:
                raise RemoteReadError(str(exc)) from exc
            return [dict(entry["args"]) for entry in entries]

        return EventWatch(event_name, _fetch, callback, self.event_poll_interval)

    async def health(self) -> bool:
        try:
            return bool(await asyncio.to_thread(self.w3.is_connected))
        except Exception as exc:
            logger.debug("Health probe failed: %s", exc)
            return False


def wallet_web3(url: str) -> Web3:
    """Connect to a wallet-backed node; raises ProviderUnavailable if it is down."""
    w3 = _http_web3(url)
    if not w3.is_connected():
        raise ProviderUnavailable(f"no Web3 provider at {url}")
    return w3


def connect(
    config: ClientConfig,
) -> Tuple[Optional[Web3SessionProvider], Web3LedgerClient, Web3LedgerClient]:
    """Return (session provider or None, game contract, student registry)."""
    try:
        w3 = wallet_web3(config.rpc_url)
        provider: Optional[Web3SessionProvider] = Web3SessionProvider(w3)
    except ProviderUnavailable as exc:
        logger.warning("No Web3 detected (%s), using %s read-only", exc, config.fallback_rpc_url)
        w3 = _http_web3(config.fallback_rpc_url)
        provider = None

    ledger = Web3LedgerClient(w3, config.contract_address, GUESS_NUMBER_ABI, config.event_poll_interval)
    registry = Web3LedgerClient(w3, config.registry_address, STUDENT_REGISTRY_ABI)
    return provider, ledger, registry
