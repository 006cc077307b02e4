"""
bootstrap.py
One-time session start-up: wait for an unlocked account, then for the
target network, then read the balance once.

    AWAITING_ACCOUNT ──account──▶ AWAITING_NETWORK ──target net──▶ READY

READY is terminal. A later account or network switch in the wallet is not
followed; restart the client to pick it up.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from guess_client.exceptions import GuessClientError
from guess_client.interfaces import LedgerClient, SessionProvider
from guess_client.models import Session
from guess_client.retry import RetryPolicy

logger = logging.getLogger(__name__)


class BootState(Enum):
    AWAITING_ACCOUNT = "awaiting_account"
    AWAITING_NETWORK = "awaiting_network"
    READY = "ready"


class SessionBootstrapper:
    def __init__(
        self,
        provider: SessionProvider,
        ledger: LedgerClient,
        session: Session,
        target_network: str,
        account_policy: RetryPolicy,
        network_policy: RetryPolicy,
    ):
        self.provider = provider
        self.ledger = ledger
        self.session = session
        self.target_network = str(target_network)
        self.account_policy = account_policy
        self.network_policy = network_policy
        self.state = BootState.AWAITING_ACCOUNT
        self._on_ready: List[Callable[[], Awaitable[None]]] = []

    def on_ready(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Register a coroutine function to run once when READY is reached."""
        self._on_ready.append(callback)

    async def run(self) -> Session:
        """
        Drive the state machine to READY.

        Raises RetryExhausted or PollCancelled from the policies; the state
        is left where the failure happened.
        """
        if self.state is BootState.AWAITING_ACCOUNT:
            account = await self.account_policy.poll(self._probe_account, what="account")
            self.session.account_id = account
            self.ledger.set_default_account(account)
            logger.info("Account set! You are %s.", account)
            self.state = BootState.AWAITING_NETWORK

        if self.state is BootState.AWAITING_NETWORK:
            network = await self.network_policy.poll(self._probe_network, what="network")
            self.session.network_id = network
            logger.info("Network set! You're on network %s.", network)
            self.state = BootState.READY
            for callback in self._on_ready:
                await callback()

        return self.session

    async def _probe_account(self) -> Optional[str]:
        try:
            account = await self.provider.get_account()
        except GuessClientError as exc:
            logger.debug("Account lookup failed: %s", exc)
            return None
        if not account:
            logger.debug("Account detection failed, wallet locked?")
            return None
        return account

    async def _probe_network(self) -> Optional[str]:
        try:
            network = await self.provider.get_network()
        except GuessClientError as exc:
            logger.debug("Network lookup failed: %s", exc)
            return None
        if network is None or str(network) != self.target_network:
            logger.debug("On network %s, waiting for %s", network, self.target_network)
            return None
        return str(network)
