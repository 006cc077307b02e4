"""
flows.py
User-initiated writes: registering with the contract and placing a guess.

Both flows submit a transaction, then wait for its receipt. Each holds an
in-flight flag for its action while doing so, so a double click cannot
send the same action twice. Whether a confirmed guess won is decided
later by the synchronizer, when the contract's range moves.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Optional

from guess_client.confirmation import (
    ConfirmationResult,
    ConfirmationStatus,
    ConfirmationWaiter,
    InFlight,
)
from guess_client.config import ClientConfig
from guess_client.dispatcher import TransitionDispatcher
from guess_client.exceptions import RemoteWriteError, ValidationError
from guess_client.interfaces import LedgerClient
from guess_client.models import GuessAttempt, GuessOutcome, GuessSlot, Session, TxOptions
from guess_client.retry import RetryPolicy
from guess_client.synchronizer import StateSynchronizer

logger = logging.getLogger(__name__)

REGISTER = "register"
GUESS = "guess"

_WHOLE_NUMBER = re.compile(r"[+-]?[0-9]+")


async def _nothing() -> None:
    return None


class RegistrationFlow:
    def __init__(
        self,
        ledger: LedgerClient,
        synchronizer: StateSynchronizer,
        dispatcher: TransitionDispatcher,
        waiter: ConfirmationWaiter,
        in_flight: InFlight,
        session: Session,
        config: ClientConfig,
        policy: RetryPolicy,
        on_confirmed: Callable[[], Awaitable[None]] = _nothing,
    ):
        self.ledger = ledger
        self.synchronizer = synchronizer
        self.dispatcher = dispatcher
        self.waiter = waiter
        self.in_flight = in_flight
        self.session = session
        self.config = config
        self.policy = policy
        self.on_confirmed = on_confirmed

    def tx_options(self) -> TxOptions:
        return TxOptions(
            sender=self.session.account_id,
            gas_price=self.config.gas_price,
            gas=self.config.gas,
        )

    async def run(self) -> Optional[ConfirmationResult]:
        """Register once. Returns None when nothing was sent."""
        snapshot = self.synchronizer.snapshot
        if snapshot.registered or snapshot.pending_registration:
            logger.debug("Registration already done or pending")
            return None
        if not self.in_flight.try_acquire(REGISTER):
            logger.debug("Registration already in flight")
            return None

        try:
            try:
                handle = await self.ledger.send("register", [], self.tx_options())
            except RemoteWriteError as exc:
                logger.error("Registration failed: %s", exc)
                self.dispatcher.write_error(REGISTER, str(exc))
                return None

            self.synchronizer.mark_registration_pending()
            result = await self.waiter.await_confirmation(handle, self.policy)
            if not result.confirmed:
                self.synchronizer.clear_registration_pending()
                if result.status is ConfirmationStatus.TIMED_OUT:
                    self.dispatcher.timed_out(REGISTER)
                return result

            if result.receipt is not None and result.receipt.success is False:
                logger.warning("Registration transaction %s was mined but reverted", handle)
            logger.info("You've registered in the contract! Transaction ID: %s", handle)
            self.dispatcher.dispatch(self.synchronizer.mark_registered(handle))
            await self.on_confirmed()
            return result
        finally:
            self.in_flight.release(REGISTER)


class GuessFlow:
    def __init__(
        self,
        ledger: LedgerClient,
        synchronizer: StateSynchronizer,
        dispatcher: TransitionDispatcher,
        waiter: ConfirmationWaiter,
        in_flight: InFlight,
        guesses: GuessSlot,
        session: Session,
        config: ClientConfig,
        policy: RetryPolicy,
    ):
        self.ledger = ledger
        self.synchronizer = synchronizer
        self.dispatcher = dispatcher
        self.waiter = waiter
        self.in_flight = in_flight
        self.guesses = guesses
        self.session = session
        self.config = config
        self.policy = policy

    def validate(self, value) -> int:
        """Return the guess as an int; the contract accepts lower <= guess < upper."""
        snapshot = self.synchronizer.snapshot
        if not snapshot.has_bounds:
            raise ValidationError("The guessing range is not known yet.")
        if isinstance(value, int) and not isinstance(value, bool):
            guess = value
        elif isinstance(value, str) and _WHOLE_NUMBER.fullmatch(value.strip()):
            guess = int(value)
        else:
            raise ValidationError(f"{value!r} is not a whole number.")
        if not snapshot.lower_bound <= guess < snapshot.upper_bound:
            raise ValidationError(
                f"Your guess must be between {snapshot.lower_bound} "
                f"and {snapshot.upper_bound - 1}."
            )
        return guess

    def tx_options(self, guess: int, more_gas: bool = False) -> TxOptions:
        value = guess * self.config.value_scale
        if more_gas:
            return TxOptions(
                sender=self.session.account_id,
                value=value,
                gas_price=self.config.gas_price,
                gas=self.config.gas,
            )
        return TxOptions(sender=self.session.account_id, value=value)

    async def submit(self, value, more_gas: bool = False) -> Optional[GuessAttempt]:
        """
        Validate and send a guess, then wait for it to be mined.

        Raises ValidationError (after telling the view) for an out-of-range
        guess. Returns None when the guess was not sent.
        """
        try:
            guess = self.validate(value)
        except ValidationError as exc:
            self.dispatcher.validation_error(str(exc))
            raise

        if not self.in_flight.try_acquire(GUESS):
            logger.warning("A guess is still being mined, ignoring %d", guess)
            return None

        attempt = GuessAttempt(value=guess)
        self.guesses.attempt = attempt
        try:
            try:
                handle = await self.ledger.send("guess", [], self.tx_options(guess, more_gas))
            except RemoteWriteError as exc:
                logger.error("Guess %d failed: %s", guess, exc)
                if self.guesses.attempt is attempt:
                    self.guesses.clear()
                self.dispatcher.write_error(GUESS, str(exc))
                return None

            attempt.pending_tx_handle = handle
            result = await self.waiter.await_confirmation(handle, self.policy)
            if result.confirmed:
                attempt.outcome = GuessOutcome.CONFIRMED
                logger.info("Guess done! Transaction ID: %s", handle)
            else:
                attempt.outcome = GuessOutcome.UNKNOWN
                if result.status is ConfirmationStatus.TIMED_OUT:
                    self.dispatcher.timed_out(GUESS)
            return attempt
        finally:
            self.in_flight.release(GUESS)

    def reset(self) -> None:
        self.guesses.clear()
