"""
client.py
Wires the session, the polling loops and the write flows together.

Loops started by `start()`
--------------------------
- sync:    every `tick_interval`, while registered, re-read balance and
           the guessing range and dispatch whatever changed
- health:  every `health_interval`, probe the ledger and report flips
- roster:  every `roster_interval`, resolve student ids to wallets

The winner subscription is opened once, after registration is mined.
`stop()` sets the shared cancel event, which also interrupts any
bootstrap or confirmation wait in progress.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from guess_client.abi import WINNER_EVENT
from guess_client.bootstrap import SessionBootstrapper
from guess_client.confirmation import ConfirmationResult, ConfirmationWaiter, InFlight
from guess_client.config import ClientConfig
from guess_client.dispatcher import TransitionDispatcher
from guess_client.exceptions import PollCancelled, RemoteReadError
from guess_client.flows import GuessFlow, RegistrationFlow
from guess_client.interfaces import LedgerClient, SessionProvider, Subscription, View
from guess_client.models import ContractSnapshot, GuessAttempt, GuessSlot, Session, WinnerRecord
from guess_client.retry import RetryPolicy
from guess_client.roster import StudentRoster
from guess_client.synchronizer import StateSynchronizer

logger = logging.getLogger(__name__)


class GuessNumberClient:
    def __init__(
        self,
        session_provider: Optional[SessionProvider],
        ledger: LedgerClient,
        view: View,
        config: Optional[ClientConfig] = None,
        roster: Optional[StudentRoster] = None,
    ):
        self.config = config or ClientConfig()
        self.session_provider = session_provider
        self.ledger = ledger
        self.view = view
        self.roster = roster

        self.session = Session()
        self.guesses = GuessSlot()
        self.in_flight = InFlight()
        self._cancel = asyncio.Event()
        self._tasks: List[asyncio.Task] = []
        self._subscription: Optional[Subscription] = None
        self._subscribed = False
        self._healthy: Optional[bool] = None
        self._stopped = False

        cfg = self.config
        self.synchronizer = StateSynchronizer(ledger, self.session, session_provider)
        self.dispatcher = TransitionDispatcher(
            view, self.guesses, roster.name_for if roster is not None else str
        )
        waiter = ConfirmationWaiter(ledger)

        self.bootstrapper: Optional[SessionBootstrapper] = None
        if session_provider is not None:
            self.bootstrapper = SessionBootstrapper(
                session_provider,
                ledger,
                self.session,
                cfg.target_network,
                account_policy=RetryPolicy(
                    cfg.account_poll_interval, cfg.bootstrap_max_attempts, cancel=self._cancel
                ),
                network_policy=RetryPolicy(
                    cfg.network_poll_interval, cfg.bootstrap_max_attempts, cancel=self._cancel
                ),
            )
            self.bootstrapper.on_ready(self._initial_balance)

        self.registration = RegistrationFlow(
            ledger,
            self.synchronizer,
            self.dispatcher,
            waiter,
            self.in_flight,
            self.session,
            cfg,
            RetryPolicy(cfg.register_poll_interval, timeout=cfg.confirm_timeout, cancel=self._cancel),
            on_confirmed=self._subscribe_winner,
        )
        self.guess_flow = GuessFlow(
            ledger,
            self.synchronizer,
            self.dispatcher,
            waiter,
            self.in_flight,
            self.guesses,
            self.session,
            cfg,
            RetryPolicy(cfg.guess_poll_interval, timeout=cfg.confirm_timeout, cancel=self._cancel),
        )

    # ── state ────────────────────────────────────────────────────────────────

    @property
    def read_only(self) -> bool:
        return self.session_provider is None

    @property
    def snapshot(self) -> ContractSnapshot:
        return self.synchronizer.snapshot

    @property
    def winner(self) -> Optional[WinnerRecord]:
        return self.synchronizer.winner

    # ── lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> Session:
        """
        Start the background loops and bootstrap the session.

        Returns once the session is READY (or immediately in read-only
        mode). RetryExhausted from a bounded bootstrap propagates.
        """
        if self.roster is not None:
            self._spawn(self._roster_loop(), "roster")
        self._spawn(self._health_loop(), "health")

        if self.bootstrapper is None:
            logger.warning("No wallet provider detected, running read-only")
            return self.session

        try:
            await self.bootstrapper.run()
        except PollCancelled:
            logger.info("Stopped before the session was ready")
            return self.session
        self._spawn(self._sync_loop(), "sync")
        return self.session

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._cancel.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def __aenter__(self) -> "GuessNumberClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ── user actions ─────────────────────────────────────────────────────────

    async def register(self) -> Optional[ConfirmationResult]:
        return await self.registration.run()

    async def submit_guess(self, value, more_gas: bool = False) -> Optional[GuessAttempt]:
        return await self.guess_flow.submit(value, more_gas=more_gas)

    def reset_guess(self) -> None:
        self.guess_flow.reset()

    async def sync_once(self) -> None:
        """One synchronizer tick: balance and range are read side by side."""
        balance_change, range_change = await asyncio.gather(
            self.synchronizer.refresh_balance(), self.synchronizer.tick()
        )
        self.dispatcher.dispatch(balance_change)
        self.dispatcher.dispatch(range_change)

    # ── internals ────────────────────────────────────────────────────────────

    def _spawn(self, coro, name: str) -> None:
        self._tasks.append(asyncio.create_task(coro, name=f"guess-client-{name}"))

    async def _sleep(self, seconds: float) -> bool:
        """Wait `seconds`; False means the client is stopping."""
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return True
        return False

    async def _initial_balance(self) -> None:
        await self.synchronizer.refresh_balance()
        logger.info("Session ready: %s holds %s", self.session.account_id, self.session.balance)

    async def _sync_loop(self) -> None:
        while True:
            if self.synchronizer.snapshot.registered:
                try:
                    await self.sync_once()
                except Exception:
                    logger.exception("Sync tick failed")
            if not await self._sleep(self.config.tick_interval):
                return

    async def _health_loop(self) -> None:
        while True:
            healthy = await self.ledger.health()
            if healthy != self._healthy:
                self._healthy = healthy
                if healthy:
                    logger.info("Ledger reachable")
                else:
                    logger.warning("Ledger unreachable")
                self.dispatcher.health_changed(healthy)
            if not await self._sleep(self.config.health_interval):
                return

    async def _roster_loop(self) -> None:
        while True:
            try:
                resolved = await self.roster.refresh()
                logger.debug("Roster refreshed, %d wallets resolved", resolved)
            except Exception:
                logger.exception("Roster refresh failed")
            if not await self._sleep(self.config.roster_interval):
                return

    async def _subscribe_winner(self) -> None:
        if self._subscribed:
            return
        self._subscribed = True
        try:
            self._subscription = await self.ledger.subscribe(WINNER_EVENT, self._on_winner_event)
        except RemoteReadError as exc:
            self._subscribed = False
            logger.error("Could not watch %s events: %s", WINNER_EVENT, exc)
            return
        logger.info("Watching %s events", WINNER_EVENT)

    def _on_winner_event(self, args: Dict[str, Any]) -> None:
        try:
            if args["_winner"] is None:
                raise ValueError("no winner address")
            record = WinnerRecord(guesser_address=str(args["_winner"]), answer=int(args["_answer"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed %s event: %r", WINNER_EVENT, args)
            return
        logger.info("%s guessed the number %d", record.guesser_address, record.answer)
        self.dispatcher.dispatch(self.synchronizer.apply_winner(record))
