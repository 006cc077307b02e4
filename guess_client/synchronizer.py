"""
synchronizer.py
Owns the last-known contract snapshot and turns repeated reads into
edge-triggered transitions.

Transition rules, applied to the previous snapshot and a fresh read:

  1. previous bounds unknown (or still the contract's zero state)
     -> initialise, no transition
  2. range widened on either side  -> RANGE_RESET
     (somebody guessed right and the contract reopened the range)
  3. range changed, not widened    -> RANGE_NARROWED
     (a wrong guess was made)
  4. identical                     -> nothing

The bounds alone cannot tell "my guess won" apart from "someone else won
and the game restarted", so RANGE_RESET carries both meanings.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional, Tuple

from guess_client.exceptions import GuessClientError, RemoteReadError
from guess_client.interfaces import LedgerClient, SessionProvider
from guess_client.models import (
    ContractSnapshot,
    Session,
    Transition,
    TransitionKind,
    WinnerRecord,
)

logger = logging.getLogger(__name__)


def detect_transition(prev: ContractSnapshot, nxt: ContractSnapshot) -> Optional[TransitionKind]:
    if not prev.has_bounds or nxt.lower_bound is None or nxt.upper_bound is None:
        return None
    if prev.lower_bound > nxt.lower_bound or prev.upper_bound < nxt.upper_bound:
        return TransitionKind.RANGE_RESET
    if prev.lower_bound != nxt.lower_bound or prev.upper_bound != nxt.upper_bound:
        return TransitionKind.RANGE_NARROWED
    return None


class StateSynchronizer:
    def __init__(
        self,
        ledger: LedgerClient,
        session: Session,
        session_provider: Optional[SessionProvider] = None,
    ):
        self.ledger = ledger
        self.session = session
        self.session_provider = session_provider
        self.snapshot = ContractSnapshot()
        self.winner: Optional[WinnerRecord] = None

    # ── contract state ───────────────────────────────────────────────────────

    async def read_bounds(self) -> Tuple[int, int]:
        result = await self.ledger.call("query")
        try:
            lower, upper = result
            return int(lower), int(upper)
        except (TypeError, ValueError) as exc:
            raise RemoteReadError(f"unexpected query() result: {result!r}") from exc

    async def tick(self) -> Optional[Transition]:
        """Read the guessing range once and diff it against the last read."""
        if not self.snapshot.registered:
            return None
        try:
            lower, upper = await self.read_bounds()
        except RemoteReadError as exc:
            logger.warning("Contract query failed, skipping tick: %s", exc)
            return None

        # Registration flags may have moved while the read was in flight.
        prev = self.snapshot
        nxt = replace(prev, lower_bound=lower, upper_bound=upper)
        kind = detect_transition(prev, nxt)
        self.snapshot = nxt
        if kind is None:
            return None
        logger.info("Contract updated! You can now guess from %d to %d.", lower, upper)
        return Transition(kind=kind, snapshot=nxt)

    # ── balance ──────────────────────────────────────────────────────────────

    async def refresh_balance(self) -> Optional[Transition]:
        """
        Re-read the account balance. The first read only initialises the
        session; later reads produce BALANCE_CHANGED when the value moved.
        """
        account = self.session.account_id
        if account is None or self.session_provider is None:
            return None
        try:
            balance = Decimal(await self.session_provider.get_balance(account))
        except GuessClientError as exc:
            logger.warning("Balance read failed: %s", exc)
            return None

        previous = self.session.balance
        if previous is not None and previous == balance:
            return None
        self.session.balance = balance
        if previous is None:
            logger.info("Balance read: you have %s.", balance)
            return None
        logger.info("Balance updated! You have %s.", balance)
        return Transition(kind=TransitionKind.BALANCE_CHANGED, snapshot=self.snapshot, balance=balance)

    # ── pushed events and registration bookkeeping ───────────────────────────

    def apply_winner(self, record: WinnerRecord) -> Transition:
        self.winner = record
        return Transition(kind=TransitionKind.WINNER_ANNOUNCED, snapshot=self.snapshot, winner=record)

    def mark_registration_pending(self) -> None:
        self.snapshot = replace(self.snapshot, pending_registration=True)

    def clear_registration_pending(self) -> None:
        self.snapshot = replace(self.snapshot, pending_registration=False)

    def mark_registered(self, tx_handle: Optional[str] = None) -> Transition:
        self.snapshot = replace(self.snapshot, registered=True, pending_registration=False)
        return Transition(kind=TransitionKind.REGISTERED, snapshot=self.snapshot, tx_handle=tx_handle)
