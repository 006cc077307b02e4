"""
interfaces.py
Collaborator contracts the engine depends on.

The engine never imports a wallet or ledger SDK directly; adapters in
`ethereum.py`, `soroban.py` and `wallet_bridge.py` implement these.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Union

from guess_client.models import TxOptions, TxReceipt

EventCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class SessionProvider(Protocol):
    async def get_account(self) -> Optional[str]: ...

    async def get_network(self) -> Optional[str]: ...

    async def get_balance(self, account: str) -> Decimal: ...


class Subscription(Protocol):
    async def close(self) -> None: ...


class LedgerClient(Protocol):
    def set_default_account(self, account: Optional[str]) -> None: ...

    async def call(self, method: str, args: Sequence[Any] = ()) -> Any: ...

    async def send(self, method: str, args: Sequence[Any], options: TxOptions) -> str: ...

    async def get_receipt(self, handle: str) -> Optional[TxReceipt]: ...

    async def subscribe(self, event_name: str, callback: EventCallback) -> Subscription: ...

    async def health(self) -> bool: ...


class View(Protocol):
    def on_bounds_reset(self, lower: int, upper: int) -> None: ...

    def on_bounds_narrowed(self, lower: int, upper: int, by_self: bool) -> None: ...

    def on_balance_changed(self, balance: Decimal) -> None: ...

    def on_winner_announced(self, address: str, answer: int, name: str) -> None: ...

    def on_validation_error(self, reason: str) -> None: ...

    def on_registered(self, tx_handle: Optional[str]) -> None: ...

    def on_write_error(self, action: str, reason: str) -> None: ...

    def on_timed_out(self, action: str) -> None: ...

    def on_health_changed(self, healthy: bool) -> None: ...
